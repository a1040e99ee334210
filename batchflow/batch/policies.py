"""
Failure policies for chunk steps.

SkipPolicy decides what happens to a record that fails to parse or
transform. RetryPolicy decides how often a rolled-back chunk is written
again before the step gives up.
"""

from typing import Literal

from batchflow.core.errors import (
    ConfigurationError,
    ParseError,
    SkipLimitExceededError,
    TransformError,
)

SKIPPABLE_ERRORS = (ParseError, TransformError)


class SkipPolicy:
    """
    Item-level failure policy.

    mode="abort" (the default) fails the step on the first bad record.
    mode="skip" drops bad records and keeps going, until more than
    ``skip_limit`` records have been skipped (no limit when None).
    """

    def __init__(self, mode: Literal["skip", "abort"] = "abort", skip_limit: int | None = None):
        if mode not in ("skip", "abort"):
            raise ConfigurationError(f"Unknown skip policy: {mode}")
        if skip_limit is not None and skip_limit < 0:
            raise ConfigurationError(f"skip_limit must be >= 0, got {skip_limit}")
        self.mode = mode
        self.skip_limit = skip_limit

    @classmethod
    def abort(cls) -> "SkipPolicy":
        return cls("abort")

    @classmethod
    def skip(cls, skip_limit: int | None = None) -> "SkipPolicy":
        return cls("skip", skip_limit)

    def should_skip(self, error: BaseException, skip_count: int) -> bool:
        """
        Decide whether a failed record may be skipped.

        Args:
            error: The error raised for the record
            skip_count: Records already skipped in this step run

        Returns:
            True to skip the record, False to fail the step with ``error``

        Raises:
            SkipLimitExceededError: If skipping would exceed the limit
        """
        if self.mode == "abort" or not isinstance(error, SKIPPABLE_ERRORS):
            return False
        if self.skip_limit is not None and skip_count >= self.skip_limit:
            raise SkipLimitExceededError(self.skip_limit, error)
        return True

    def __repr__(self) -> str:
        return f"SkipPolicy(mode={self.mode!r}, skip_limit={self.skip_limit})"


class RetryPolicy:
    """
    Chunk-level failure policy: a chunk whose write was rolled back is
    written again, in a fresh transaction, at most ``retry_limit`` times.
    """

    def __init__(self, retry_limit: int = 0):
        if retry_limit < 0:
            raise ConfigurationError(f"retry_limit must be >= 0, got {retry_limit}")
        self.retry_limit = retry_limit

    def can_retry(self, attempt: int) -> bool:
        """
        Args:
            attempt: Number of write attempts already made for the chunk (>= 1)
        """
        return attempt <= self.retry_limit

    def __repr__(self) -> str:
        return f"RetryPolicy(retry_limit={self.retry_limit})"
