"""
Base writer interface for all record sinks.

The chunk engine owns the transaction boundary: it enters transaction()
around write() for every chunk. Leaving the scope normally commits the
chunk; leaving it with an exception rolls it back. Writers never retry.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, Sequence


class BaseWriter(ABC):
    """
    Abstract base class for record sinks.
    """

    def validate(self) -> None:
        """
        Check static configuration before the step starts.

        Raises:
            ConfigurationError: If the writer cannot possibly persist records
        """

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """Transactional scope for one chunk. Writers without a transactional store have nothing to do."""
        yield None

    @abstractmethod
    def write(self, chunk: Sequence[Any]) -> None:
        """
        Persist a whole chunk as one unit.

        Raises:
            PersistError: If the chunk could not be persisted
        """
        pass
