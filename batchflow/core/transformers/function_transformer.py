"""
Adapter turning a plain callable into a transformer.
"""

from typing import Any, Callable

from pydantic import ValidationError

from .base_transformer import BaseTransformer, TransformError

# Exceptions treated as "this record is bad" rather than as a bug in the function
DATA_ERRORS = (ValueError, TypeError, KeyError, ValidationError)


class FunctionTransformer(BaseTransformer):
    """
    Wraps a function of one record.

    Data errors raised by the function become TransformError so the skip
    policy can handle them; anything else propagates and fails the step.
    """

    def __init__(self, func: Callable[[Any], Any], name: str | None = None):
        if not callable(func):
            raise TypeError(f"Expected a callable, got {type(func).__name__}")
        self.func = func
        self.name = name or getattr(func, "__name__", "function")

    def transform(self, record: Any) -> Any | None:
        try:
            return self.func(record)
        except TransformError:
            raise
        except DATA_ERRORS as e:
            raise TransformError(record, f"{self.name}: {e}") from e

    @property
    def transformer_type(self) -> str:
        return "function"

    def __repr__(self) -> str:
        return f"FunctionTransformer({self.name})"
