"""
Base transformer interface.

A transformer maps one input record to one output record. Implementations
must be pure: no I/O, no shared mutable state. They signal a bad record by
raising TransformError and drop a record by returning None.
"""

from abc import ABC, abstractmethod
from typing import Any

from batchflow.core.errors import TransformError

__all__ = ["BaseTransformer", "TransformError"]


class BaseTransformer(ABC):
    """
    Abstract base class for all transformers.

    Each transformer implements one transformation (uppercase, field mapping,
    ...). Instances are callable so they can be used wherever a plain
    function is expected.
    """

    @abstractmethod
    def transform(self, record: Any) -> Any | None:
        """
        Transform a single record.

        Args:
            record: The input record

        Returns:
            The output record, or None to filter the record out

        Raises:
            TransformError: If the record cannot be transformed
        """
        pass

    @property
    @abstractmethod
    def transformer_type(self) -> str:
        """Return the transformer type identifier."""
        pass

    def __call__(self, record: Any) -> Any | None:
        return self.transform(record)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
