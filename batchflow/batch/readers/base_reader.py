"""
Base reader interface for all record sources.

A reader is opened once per step run, read until it returns None, and
closed on every exit path. Opening a closed reader again starts over at the
beginning of the resource.
"""

from abc import ABC, abstractmethod
from typing import Any


class BaseReader(ABC):
    """
    Abstract base class for record sources.

    Readers are context managers: ``with reader:`` opens and always closes.
    """

    def validate(self) -> None:
        """
        Check static configuration without consuming data.

        Raises:
            ConfigurationError: If the reader cannot possibly be opened
        """

    @abstractmethod
    def open(self) -> None:
        """Acquire the underlying resource and position before the first record."""
        pass

    @abstractmethod
    def read(self) -> Any | None:
        """
        Return the next record, or None once the data is exhausted.

        Raises:
            ParseError: If the next raw record is malformed. The reader stays
                usable and the following call continues after the bad record.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the underlying resource. Safe to call more than once."""
        pass

    @property
    def position(self) -> int | None:
        """Line or row number of the last record returned, if the source has one."""
        return None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
