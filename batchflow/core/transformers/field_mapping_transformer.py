"""
Field mapping transformer: builds a record of another type from named source fields.
"""

from typing import Any

from pydantic import BaseModel, ValidationError

from .base_transformer import BaseTransformer, TransformError


class FieldMappingTransformer(BaseTransformer):
    """
    Maps source record fields onto a target record type.

    Example:
        FieldMappingTransformer(
            Contact,
            {"given_name": "first_name", "family_name": "last_name"},
        )
    """

    def __init__(self, target_type: type[BaseModel], mapping: dict[str, str]):
        """
        Args:
            target_type: Pydantic model class to build
            mapping: target field name -> source field name
        """
        if not mapping:
            raise ValueError("Field mapping must not be empty")
        self.target_type = target_type
        self.mapping = dict(mapping)

    def transform(self, record: Any) -> BaseModel:
        source = record.model_dump() if isinstance(record, BaseModel) else record
        if not isinstance(source, dict):
            raise TransformError(record, f"cannot read fields from {type(record).__name__}")

        missing = [name for name in self.mapping.values() if name not in source]
        if missing:
            raise TransformError(record, f"missing source field(s): {', '.join(missing)}")

        values = {target: source[name] for target, name in self.mapping.items()}
        try:
            return self.target_type(**values)
        except ValidationError as e:
            raise TransformError(record, str(e)) from e

    @property
    def transformer_type(self) -> str:
        return "field_mapping"

    def __repr__(self) -> str:
        return f"FieldMappingTransformer(target={self.target_type.__name__}, mapping={self.mapping})"
