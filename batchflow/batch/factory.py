"""
Builds the import job from a JobConfig.

All wiring is explicit constructor composition: readers, transformers and
writers are built here and handed to the Step and Job.
"""

from batchflow.core.config import JobConfig
from batchflow.core.transformers import create_transformer
from batchflow.warehouse.connection import DatabaseConnectionPool

from .job import Job, RunIdIncrementer
from .listeners import JobExecutionListener, LoggingJobListener, TableVerificationListener
from .policies import RetryPolicy, SkipPolicy
from .readers import DelimitedFileReader
from .step import Step
from .writers import BaseWriter, LoggingWriter, SqlBatchWriter


def build_step(config: JobConfig, writer: BaseWriter) -> Step:
    reader = DelimitedFileReader(
        path=config.reader.path,
        names=config.reader.names,
        record_type=config.record_class(),
        delimiter=config.reader.delimiter,
        quotechar=config.reader.quotechar,
        lines_to_skip=config.reader.lines_to_skip,
        encoding=config.reader.encoding,
    )
    return Step(
        name=config.step_name,
        reader=reader,
        transformer=create_transformer(config.transformer),
        writer=writer,
        chunk_size=config.chunk_size,
        skip_policy=SkipPolicy(config.policy.skip_policy, config.policy.skip_limit),
        retry_policy=RetryPolicy(config.policy.retry_limit),
    )


def build_import_job(
    config: JobConfig,
    pool: DatabaseConnectionPool | None = None,
    dry_run: bool = False,
    incrementer: RunIdIncrementer | None = None,
) -> Job:
    """
    Compose the single-step import job described by ``config``.

    Args:
        config: Validated job configuration
        pool: Open connection pool (required unless dry_run)
        dry_run: Log chunks instead of writing them
        incrementer: Run id source shared across runs of this job

    Raises:
        ConfigurationError: If the configuration cannot be turned into a job
    """
    listeners: list[JobExecutionListener] = [LoggingJobListener()]

    if dry_run:
        writer: BaseWriter = LoggingWriter()
    else:
        if pool is None:
            raise ValueError("A connection pool is required unless dry_run is set")
        writer = SqlBatchWriter(pool, config.writer.sql, assert_updates=config.writer.assert_updates)
        listeners.append(TableVerificationListener(pool))

    return Job(
        name=config.job_name,
        steps=[build_step(config, writer)],
        incrementer=incrementer,
        listeners=listeners,
    )
