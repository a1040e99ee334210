"""
Batch record sources.
"""

from .base_reader import BaseReader
from .delimited_reader import DelimitedFileReader
from .iterable_reader import IterableReader
from .query_reader import QueryCursorReader

__all__ = [
    "BaseReader",
    "DelimitedFileReader",
    "IterableReader",
    "QueryCursorReader",
]
