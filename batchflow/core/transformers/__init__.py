"""
Record transformers.

Provides uppercase, passthrough, field-mapping and function-backed
transformers, plus lookup by configured name.
"""

from typing import Any, Callable

from batchflow.core.errors import ConfigurationError

from .base_transformer import BaseTransformer, TransformError
from .field_mapping_transformer import FieldMappingTransformer
from .function_transformer import FunctionTransformer
from .passthrough_transformer import PassthroughTransformer
from .uppercase_transformer import UppercaseTransformer

TRANSFORMER_REGISTRY: dict[str, type[BaseTransformer]] = {
    "uppercase": UppercaseTransformer,
    "passthrough": PassthroughTransformer,
}


def create_transformer(transformer_type: str) -> BaseTransformer:
    """
    Build a transformer from its configured name.

    Raises:
        ConfigurationError: If the name is unknown
    """
    transformer_class = TRANSFORMER_REGISTRY.get(transformer_type)
    if not transformer_class:
        known = ", ".join(sorted(TRANSFORMER_REGISTRY))
        raise ConfigurationError(f"Unknown transformer type: {transformer_type} (known: {known})")
    return transformer_class()


def as_transformer(transformer: BaseTransformer | Callable[[Any], Any]) -> BaseTransformer:
    """Accept either a transformer or a plain function of one record."""
    if isinstance(transformer, BaseTransformer):
        return transformer
    if callable(transformer):
        return FunctionTransformer(transformer)
    raise ConfigurationError(f"Not a transformer: {transformer!r}")


__all__ = [
    "BaseTransformer",
    "TransformError",
    "UppercaseTransformer",
    "PassthroughTransformer",
    "FieldMappingTransformer",
    "FunctionTransformer",
    "TRANSFORMER_REGISTRY",
    "create_transformer",
    "as_transformer",
]
