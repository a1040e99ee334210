"""
Batch record sinks.
"""

from .base_writer import BaseWriter
from .logging_writer import LoggingWriter
from .sql_writer import SqlBatchWriter

__all__ = [
    "BaseWriter",
    "LoggingWriter",
    "SqlBatchWriter",
]
