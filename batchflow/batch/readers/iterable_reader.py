"""
In-memory reader over a finite sequence of records.
"""

from typing import Any, Iterable

from .base_reader import BaseReader


class IterableReader(BaseReader):
    """Reads records from an in-memory collection, restarting at the first on each open()."""

    def __init__(self, items: Iterable[Any]):
        self.items = list(items)
        self._index: int | None = None

    def open(self) -> None:
        self._index = 0

    def read(self) -> Any | None:
        if self._index is None:
            raise RuntimeError("Reader is not open. Call open() first.")
        if self._index >= len(self.items):
            return None
        item = self.items[self._index]
        self._index += 1
        return item

    def close(self) -> None:
        self._index = None

    @property
    def position(self) -> int | None:
        return self._index or None
