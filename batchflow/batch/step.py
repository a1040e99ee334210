"""
Chunk-oriented step definition.
"""

from typing import Any, Callable

from batchflow.core.errors import ConfigurationError
from batchflow.core.models import StepExecution
from batchflow.core.transformers import BaseTransformer, as_transformer
from batchflow.observability.metrics import MetricsCollector

from .chunk import ChunkProcessor
from .policies import RetryPolicy, SkipPolicy
from .readers import BaseReader
from .writers import BaseWriter

DEFAULT_CHUNK_SIZE = 10


class Step:
    """
    A named read-transform-write stage committing ``chunk_size`` records per transaction.

    The step itself holds no run state: every execute() produces a fresh
    StepExecution, so one Step can back any number of job runs.
    """

    def __init__(
        self,
        name: str,
        reader: BaseReader,
        transformer: BaseTransformer | Callable[[Any], Any],
        writer: BaseWriter,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        skip_policy: SkipPolicy | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        """
        Args:
            name: Step name
            reader: Record source
            transformer: Transformer, or a plain function of one record
            writer: Record sink
            chunk_size: Records per chunk transaction (>= 1)
            skip_policy: Item failure policy (default: abort on first bad record)
            retry_policy: Chunk failure policy (default: no retry)

        Raises:
            ConfigurationError: If the name is empty or chunk_size is not a positive int
        """
        if not name:
            raise ConfigurationError("Step name must not be empty")
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
            raise ConfigurationError(f"Chunk size must be an integer >= 1, got {chunk_size!r}")
        if not isinstance(reader, BaseReader):
            raise ConfigurationError(f"Step '{name}' reader is not a BaseReader: {reader!r}")
        if not isinstance(writer, BaseWriter):
            raise ConfigurationError(f"Step '{name}' writer is not a BaseWriter: {writer!r}")

        self.name = name
        self.reader = reader
        self.transformer = as_transformer(transformer)
        self.writer = writer
        self.chunk_size = chunk_size
        self.skip_policy = skip_policy or SkipPolicy.abort()
        self.retry_policy = retry_policy or RetryPolicy()

    def validate(self) -> None:
        """
        Check the collaborators' configuration before anything is read.

        Raises:
            ConfigurationError: If the reader or writer is misconfigured
        """
        self.reader.validate()
        self.writer.validate()

    def execute(self, job_name: str = "standalone", metrics: MetricsCollector | None = None) -> StepExecution:
        """Run the step to completion or failure."""
        return ChunkProcessor(self, job_name=job_name, metrics=metrics).process()

    def __repr__(self) -> str:
        return (
            f"Step(name={self.name!r}, chunk_size={self.chunk_size}, "
            f"reader={self.reader!r}, transformer={self.transformer!r}, writer={self.writer!r})"
        )
