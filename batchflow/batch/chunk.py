"""
Chunk engine: the read-transform-write loop of a step.

Flow per step run:
1. Read records one at a time from the step's reader
2. Transform each record; failed records go to the skip policy
3. Buffer transformed records until the chunk is full or the input ends
4. Write the chunk inside one writer transaction; a rolled-back chunk goes
   to the retry policy, and fails the step once retries are used up

A chunk is either committed as a whole or discarded as a whole.
"""

import time
from typing import TYPE_CHECKING, Any

from batchflow.core.errors import ParseError, PersistError, SkipLimitExceededError, TransformError
from batchflow.core.models import SkippedItem, StepExecution, StepStatus
from batchflow.observability.logger import bind, get_logger
from batchflow.observability.metrics import MetricsCollector

if TYPE_CHECKING:
    from .step import Step

logger = get_logger(__name__)

# Marks a record dropped by the skip policy
_SKIPPED = object()


class ChunkProcessor:
    """
    Executes one run of a Step and reports it as a StepExecution.

    Every failure, whatever its origin, ends the run in FAILED with the
    error recorded on the execution; the reader is closed on every path.
    """

    def __init__(self, step: "Step", job_name: str = "standalone", metrics: MetricsCollector | None = None):
        self.step = step
        self.job_name = job_name
        self.metrics = (metrics or MetricsCollector()).for_step(job_name, step.name)
        self._chunk: list[Any] = []
        self.log = bind(logger, job_name=job_name, step_name=step.name)

    def process(self) -> StepExecution:
        execution = StepExecution(step_name=self.step.name)
        self._chunk = []

        self.log.info(f"Executing step: [{self.step.name}] with chunk size {self.step.chunk_size}")

        try:
            execution.transition_to(StepStatus.READING)
            self.step.reader.open()
            try:
                self._run(execution)
            except Exception:
                self._close_reader_after_error()
                raise
            self.step.reader.close()
        except Exception as e:
            # Records still buffered were read but will never be committed
            execution.failed_count += len(self._chunk)
            self._chunk = []
            if not execution.is_terminal:
                execution.fail(e)
            self.log.error(
                f"Step [{self.step.name}] failed: {e}",
                extra=execution.summary.model_dump(),
                exc_info=True,
            )
            return execution

        self.log.info(
            f"Step: [{self.step.name}] completed: {execution.summary}",
            extra=execution.summary.model_dump(),
        )
        return execution

    def _close_reader_after_error(self) -> None:
        """Close the reader without letting a close error hide the step's failure."""
        try:
            self.step.reader.close()
        except Exception as e:
            self.log.warning(f"Could not close reader after failure: {e}", exc_info=True)

    def _run(self, execution: StepExecution) -> None:
        while True:
            record = self._read(execution)
            if record is None:
                break
            if record is _SKIPPED:
                continue

            execution.transition_to(StepStatus.TRANSFORMING)
            output = self._transform(execution, record)
            if output is not None and output is not _SKIPPED:
                self._chunk.append(output)

            if len(self._chunk) >= self.step.chunk_size:
                self._write(execution)
            execution.transition_to(StepStatus.READING)

        if self._chunk:
            self._write(execution)
        execution.transition_to(StepStatus.COMPLETED)

    def _read(self, execution: StepExecution) -> Any:
        try:
            record = self.step.reader.read()
        except ParseError as e:
            self._handle_item_error(execution, e)
            execution.read_skip_count += 1
            execution.skipped_items.append(
                SkippedItem(phase="read", line_number=e.line_number, item=e.raw_line, error=e.message)
            )
            self.metrics.record_skip("read")
            self.log.warning(f"Skipped unreadable record: {e}")
            return _SKIPPED

        if record is not None:
            execution.read_count += 1
            self.metrics.record_read()
        return record

    def _transform(self, execution: StepExecution, record: Any) -> Any:
        try:
            output = self.step.transformer.transform(record)
        except TransformError as e:
            self._handle_item_error(execution, e)
            execution.process_skip_count += 1
            execution.skipped_items.append(
                SkippedItem(
                    phase="transform",
                    line_number=self.step.reader.position,
                    item=str(record),
                    error=e.message,
                )
            )
            self.metrics.record_skip("transform")
            self.log.warning(f"Skipped record that failed to transform: {e}")
            return _SKIPPED

        if output is None:
            execution.filter_count += 1
            self.metrics.record_filter()
        else:
            execution.process_count += 1
        return output

    def _handle_item_error(self, execution: StepExecution, error: ParseError | TransformError) -> None:
        """Return if the skip policy lets the record go; otherwise count it as failed and re-raise."""
        try:
            skip = self.step.skip_policy.should_skip(error, execution.skip_count)
        except SkipLimitExceededError:
            execution.failed_count += 1
            raise
        if not skip:
            execution.failed_count += 1
            raise error

    def _write(self, execution: StepExecution) -> None:
        execution.transition_to(StepStatus.WRITING)
        chunk = self._chunk
        writer = self.step.writer

        attempt = 0
        while True:
            attempt += 1
            started = time.monotonic()
            try:
                with writer.transaction():
                    writer.write(chunk)
            except PersistError as e:
                execution.rollback_count += 1
                self.metrics.record_rollback(time.monotonic() - started)
                if not self.step.retry_policy.can_retry(attempt):
                    raise
                execution.retry_count += 1
                self.metrics.record_retry()
                self.log.warning(
                    f"Chunk of {len(chunk)} record(s) rolled back, retrying "
                    f"({attempt}/{self.step.retry_policy.retry_limit}): {e}"
                )
                continue
            except Exception:
                execution.rollback_count += 1
                self.metrics.record_rollback(time.monotonic() - started)
                raise

            execution.commit_count += 1
            execution.write_count += len(chunk)
            self.metrics.record_commit(len(chunk), time.monotonic() - started)
            self.log.debug(f"Committed chunk {execution.commit_count} with {len(chunk)} record(s)")
            self._chunk = []
            return
