"""
Uppercase transformer: case-folds every string field of a record.
"""

from pydantic import BaseModel, ValidationError

from batchflow.observability.logger import get_logger

from .base_transformer import BaseTransformer, TransformError

logger = get_logger(__name__)


class UppercaseTransformer(BaseTransformer):
    """
    Returns a new record of the same type with all string fields upper-cased.

    Non-string fields are carried over unchanged. Each conversion is logged
    at INFO as "Converting (<input>) into (<output>)".
    """

    def transform(self, record: BaseModel) -> BaseModel:
        if not isinstance(record, BaseModel):
            raise TransformError(record, f"expected a pydantic model, got {type(record).__name__}")

        values = {
            name: value.upper() if isinstance(value, str) else value
            for name, value in record.model_dump().items()
        }

        try:
            transformed = type(record)(**values)
        except ValidationError as e:
            raise TransformError(record, str(e)) from e

        logger.info(f"Converting ({record}) into ({transformed})")

        return transformed

    @property
    def transformer_type(self) -> str:
        return "uppercase"
