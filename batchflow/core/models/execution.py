"""
Execution state of job runs and step runs (ephemeral, never persisted).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from batchflow.core.errors import StepStateError


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StepStatus(str, Enum):
    READY = "READY"
    READING = "READING"
    TRANSFORMING = "TRANSFORMING"
    WRITING = "WRITING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class JobStatus(str, Enum):
    STARTING = "STARTING"
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# Allowed status moves for a step run. COMPLETED and FAILED are terminal.
STEP_TRANSITIONS: dict[StepStatus, frozenset[StepStatus]] = {
    StepStatus.READY: frozenset({StepStatus.READING, StepStatus.FAILED}),
    StepStatus.READING: frozenset({
        StepStatus.TRANSFORMING,
        StepStatus.WRITING,
        StepStatus.COMPLETED,
        StepStatus.FAILED,
    }),
    StepStatus.TRANSFORMING: frozenset({
        StepStatus.READING,
        StepStatus.WRITING,
        StepStatus.FAILED,
    }),
    StepStatus.WRITING: frozenset({
        StepStatus.READING,
        StepStatus.COMPLETED,
        StepStatus.FAILED,
    }),
    StepStatus.COMPLETED: frozenset(),
    StepStatus.FAILED: frozenset(),
}


class RunSummary(BaseModel):
    """
    Record counts reported at the end of a run, whatever its status.

    Attributes:
        read: Records successfully read
        transformed: Records the transformer produced output for
        filtered: Records the transformer dropped by returning None
        written: Records committed to the sink
        skipped: Records dropped by the skip policy (read and transform)
        failed: Records lost to a fatal error (the failing item, or the
            records of a chunk that could not be persisted)
    """

    read: int = 0
    transformed: int = 0
    filtered: int = 0
    written: int = 0
    skipped: int = 0
    failed: int = 0

    def __add__(self, other: "RunSummary") -> "RunSummary":
        return RunSummary(
            read=self.read + other.read,
            transformed=self.transformed + other.transformed,
            filtered=self.filtered + other.filtered,
            written=self.written + other.written,
            skipped=self.skipped + other.skipped,
            failed=self.failed + other.failed,
        )

    def __str__(self) -> str:
        return (
            f"read={self.read} transformed={self.transformed} filtered={self.filtered} "
            f"written={self.written} skipped={self.skipped} failed={self.failed}"
        )


class SkippedItem(BaseModel):
    """
    An item dropped by the skip policy.

    Attributes:
        phase: Where the item failed ("read" or "transform")
        line_number: Input line or row number, when known
        item: Raw line or string form of the record
        error: Error message
    """

    phase: Literal["read", "transform"]
    line_number: int | None = None
    item: str
    error: str


class StepExecution(BaseModel):
    """
    State and counters of one step run.
    """

    step_name: str
    status: StepStatus = StepStatus.READY
    read_count: int = 0
    process_count: int = 0
    filter_count: int = 0
    write_count: int = 0
    read_skip_count: int = 0
    process_skip_count: int = 0
    failed_count: int = 0
    commit_count: int = 0
    rollback_count: int = 0
    retry_count: int = 0
    skipped_items: list[SkippedItem] = Field(default_factory=list)
    failure: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None

    @property
    def skip_count(self) -> int:
        return self.read_skip_count + self.process_skip_count

    @property
    def is_terminal(self) -> bool:
        return self.status in (StepStatus.COMPLETED, StepStatus.FAILED)

    def transition_to(self, status: StepStatus) -> None:
        """
        Move to a new status.

        Raises:
            StepStateError: If the move is not allowed from the current status
        """
        if status not in STEP_TRANSITIONS[self.status]:
            raise StepStateError(
                f"Step '{self.step_name}' cannot move from {self.status.value} to {status.value}"
            )
        self.status = status
        if status is StepStatus.READING and self.start_time is None:
            self.start_time = _now()
        if self.is_terminal:
            self.end_time = _now()

    def fail(self, error: BaseException) -> None:
        self.failure = f"{type(error).__name__}: {error}"
        self.transition_to(StepStatus.FAILED)

    @property
    def summary(self) -> RunSummary:
        return RunSummary(
            read=self.read_count,
            transformed=self.process_count,
            filtered=self.filter_count,
            written=self.write_count,
            skipped=self.skip_count,
            failed=self.failed_count,
        )


class JobExecution(BaseModel):
    """
    One run of a job, identified by its run id.
    """

    job_name: str
    run_id: int
    status: JobStatus = JobStatus.STARTING
    step_executions: list[StepExecution] = Field(default_factory=list)
    failure: str | None = None
    start_time: datetime = Field(default_factory=_now)
    end_time: datetime | None = None

    @property
    def summary(self) -> RunSummary:
        total = RunSummary()
        for step_execution in self.step_executions:
            total = total + step_execution.summary
        return total

    def finish(self) -> None:
        if self.end_time is None:
            self.end_time = _now()

    @property
    def exit_code(self) -> int:
        return 0 if self.status is JobStatus.COMPLETED else 1

    @property
    def duration_seconds(self) -> float:
        end = self.end_time or _now()
        return (end - self.start_time).total_seconds()
