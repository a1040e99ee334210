"""
Chunk-oriented batch processing: steps, jobs and their collaborators.
"""

from .chunk import ChunkProcessor
from .factory import build_import_job, build_step
from .job import Job, JobLauncher, RunIdIncrementer
from .listeners import (
    CallbackListener,
    JobExecutionListener,
    LoggingJobListener,
    TableVerificationListener,
)
from .policies import RetryPolicy, SkipPolicy
from .readers import BaseReader, DelimitedFileReader, IterableReader, QueryCursorReader
from .step import Step
from .writers import BaseWriter, LoggingWriter, SqlBatchWriter

__all__ = [
    "ChunkProcessor",
    "Step",
    "Job",
    "JobLauncher",
    "RunIdIncrementer",
    "JobExecutionListener",
    "CallbackListener",
    "LoggingJobListener",
    "TableVerificationListener",
    "SkipPolicy",
    "RetryPolicy",
    "BaseReader",
    "DelimitedFileReader",
    "IterableReader",
    "QueryCursorReader",
    "BaseWriter",
    "LoggingWriter",
    "SqlBatchWriter",
    "build_import_job",
    "build_step",
]
