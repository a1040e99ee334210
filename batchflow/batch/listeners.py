"""
Job completion listeners.

Listeners observe a run; they never steer it. after_job is called exactly
once per run with the final status and counts, and an exception raised by a
listener is logged without touching the run's status.
"""

from typing import Callable

from pydantic import BaseModel

from batchflow.core.models import JobExecution, JobStatus, Person, RunSummary
from batchflow.observability.logger import get_logger
from batchflow.warehouse.connection import DatabaseConnectionPool

logger = get_logger(__name__)


class JobExecutionListener:
    """Base listener. Override either hook."""

    def before_job(self, execution: JobExecution) -> None:
        pass

    def after_job(self, execution: JobExecution) -> None:
        pass


class CallbackListener(JobExecutionListener):
    """
    Adapts a plain function to the listener interface.

    The function is called as ``callback(run_id, status, summary)``.
    """

    def __init__(self, callback: Callable[[int, JobStatus, RunSummary], None]):
        self.callback = callback

    def after_job(self, execution: JobExecution) -> None:
        self.callback(execution.run_id, execution.status, execution.summary)


class LoggingJobListener(JobExecutionListener):
    """Logs the start and the outcome of every run."""

    def before_job(self, execution: JobExecution) -> None:
        logger.info(
            f"Job: [{execution.job_name}] run {execution.run_id} starting",
            extra={"job_name": execution.job_name, "run_id": execution.run_id},
        )

    def after_job(self, execution: JobExecution) -> None:
        extra = {
            "job_name": execution.job_name,
            "run_id": execution.run_id,
            "status": execution.status.value,
            "duration_seconds": round(execution.duration_seconds, 3),
            **execution.summary.model_dump(),
        }
        message = (
            f"Job: [{execution.job_name}] run {execution.run_id} finished with status "
            f"[{execution.status.value}]: {execution.summary}"
        )
        if execution.status is JobStatus.COMPLETED:
            logger.info(message, extra=extra)
        else:
            logger.error(f"{message} ({execution.failure})", extra=extra)


class TableVerificationListener(JobExecutionListener):
    """
    After a successful run, reads the target table back and logs every row.
    """

    def __init__(
        self,
        pool: DatabaseConnectionPool,
        query: str = "SELECT first_name, last_name FROM people ORDER BY person_id",
        record_type: type[BaseModel] = Person,
    ):
        self.pool = pool
        self.query = query
        self.record_type = record_type
        self.found: list[BaseModel] = []

    def after_job(self, execution: JobExecution) -> None:
        if execution.status is not JobStatus.COMPLETED:
            return

        logger.info("!!! JOB FINISHED! Time to verify the results")

        self.found = [self.record_type(**row) for row in self.pool.execute_query(self.query)]
        for record in self.found:
            logger.info(f"Found <{record}> in the database.")
