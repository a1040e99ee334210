"""
Exception hierarchy for batch jobs.

Per-item errors (ParseError, TransformError) are handed to the step's skip
policy; everything else fails the step and, with it, the job run.
"""

from typing import Any


class BatchError(Exception):
    """Base class for all batchflow errors."""


class ConfigurationError(BatchError):
    """Invalid job, step or collaborator configuration. Raised before any record is read."""


class ParseError(BatchError):
    """Raised when a raw input record cannot be mapped to a record."""

    def __init__(self, line_number: int, raw_line: str, message: str):
        self.line_number = line_number
        self.raw_line = raw_line
        self.message = message
        super().__init__(f"Parsing error at line {line_number}: {message} (input: {raw_line!r})")


class TransformError(BatchError):
    """Raised by a transformer that cannot transform a given record."""

    def __init__(self, record: Any, message: str):
        self.record = record
        self.message = message
        super().__init__(f"Cannot transform ({record}): {message}")


class PersistError(BatchError):
    """Raised by a writer when a chunk could not be persisted. The chunk has been rolled back."""

    def __init__(self, chunk_size: int, message: str):
        self.chunk_size = chunk_size
        self.message = message
        super().__init__(f"Failed to persist chunk of {chunk_size} record(s): {message}")


class SkipLimitExceededError(BatchError):
    """Raised when a step skips more items than its skip policy allows."""

    def __init__(self, skip_limit: int, cause: BaseException):
        self.skip_limit = skip_limit
        self.cause = cause
        super().__init__(f"Skip limit of {skip_limit} exceeded: {cause}")


class StepStateError(BatchError):
    """Raised on an illegal step status transition."""
