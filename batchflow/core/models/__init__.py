"""
Core data models for batch jobs.

All models use Pydantic for runtime validation and type safety.
"""

from .execution import (
    JobExecution,
    JobStatus,
    RunSummary,
    SkippedItem,
    StepExecution,
    StepStatus,
)
from .person import Person

__all__ = [
    "Person",
    "JobExecution",
    "JobStatus",
    "RunSummary",
    "SkippedItem",
    "StepExecution",
    "StepStatus",
]
