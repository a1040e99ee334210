"""
Job definition and launcher.

A Job is a long-lived template: a name, an ordered list of steps, a run id
incrementer and listeners. JobLauncher.run() turns it into one JobExecution.
"""

import logging
import threading
from typing import Iterable

from batchflow.core.errors import ConfigurationError
from batchflow.core.models import JobExecution, JobStatus, StepStatus
from batchflow.observability.logger import bind, get_logger
from batchflow.observability.metrics import MetricsCollector

from .listeners import JobExecutionListener
from .step import Step

logger = get_logger(__name__)


class RunIdIncrementer:
    """Hands out strictly increasing run ids for one job definition."""

    def __init__(self, start: int = 1):
        if start < 1:
            raise ConfigurationError(f"Run ids start at 1 or above, got {start}")
        self._next = start
        self._lock = threading.Lock()

    def next_run_id(self) -> int:
        with self._lock:
            run_id = self._next
            self._next += 1
            return run_id


class Job:
    """
    A named, restartable unit of work made of ordered steps.
    """

    def __init__(
        self,
        name: str,
        steps: Iterable[Step],
        incrementer: RunIdIncrementer | None = None,
        listeners: Iterable[JobExecutionListener] | None = None,
    ):
        """
        Args:
            name: Job name
            steps: Steps, run in order; a failed step stops the sequence
            incrementer: Run id source (default: ids from 1)
            listeners: Notified before and after every run

        Raises:
            ConfigurationError: If the job has no steps or duplicate step names
        """
        self.name = name
        self.steps = list(steps)
        self.incrementer = incrementer or RunIdIncrementer()
        self.listeners = list(listeners or [])

        if not name:
            raise ConfigurationError("Job name must not be empty")
        if not self.steps:
            raise ConfigurationError(f"Job '{name}' must have at least one step")
        step_names = [step.name for step in self.steps]
        if len(set(step_names)) != len(step_names):
            raise ConfigurationError(f"Job '{name}' has duplicate step names: {step_names}")

    def add_listener(self, listener: JobExecutionListener) -> "Job":
        self.listeners.append(listener)
        return self

    def validate(self) -> None:
        for step in self.steps:
            step.validate()

    def __repr__(self) -> str:
        return f"Job(name={self.name!r}, steps={[step.name for step in self.steps]})"


class JobLauncher:
    """
    Runs jobs synchronously: run() blocks until the run is COMPLETED or FAILED.
    """

    def __init__(self, metrics: MetricsCollector | None = None):
        self.metrics = metrics or MetricsCollector()

    def run(self, job: Job) -> JobExecution:
        """
        Execute one run of ``job``.

        Configuration problems fail the run before any step starts. Step
        failures end the run at the failed step. Either way the returned
        execution carries the final status and record counts.
        """
        execution = JobExecution(job_name=job.name, run_id=job.incrementer.next_run_id())
        log = bind(logger, job_name=job.name, run_id=execution.run_id)
        log.info(f"Job: [{job.name}] launched with run id {execution.run_id}")
        self._notify(job, "before_job", execution, log)

        try:
            job.validate()
        except ConfigurationError as e:
            execution.status = JobStatus.FAILED
            execution.failure = f"ConfigurationError: {e}"
            log.error(f"Job: [{job.name}] not started: {e}")
        else:
            execution.status = JobStatus.STARTED
            self._run_steps(job, execution)

        execution.finish()
        self.metrics.record_job_run(job.name, execution.status.value, execution.duration_seconds)
        self._notify(job, "after_job", execution, log)
        return execution

    def _run_steps(self, job: Job, execution: JobExecution) -> None:
        for step in job.steps:
            step_execution = step.execute(job_name=job.name, metrics=self.metrics)
            execution.step_executions.append(step_execution)
            if step_execution.status is StepStatus.FAILED:
                execution.status = JobStatus.FAILED
                execution.failure = f"Step '{step.name}' failed: {step_execution.failure}"
                return
        execution.status = JobStatus.COMPLETED

    def _notify(self, job: Job, hook: str, execution: JobExecution, log: logging.LoggerAdapter) -> None:
        for listener in job.listeners:
            try:
                getattr(listener, hook)(execution)
            except Exception:
                log.exception(f"Listener {listener!r} raised in {hook} for run {execution.run_id}")
