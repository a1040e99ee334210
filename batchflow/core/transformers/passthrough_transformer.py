"""
No-op transformer.
"""

from typing import Any

from .base_transformer import BaseTransformer


class PassthroughTransformer(BaseTransformer):
    """Returns every record unchanged. Used for straight copy jobs."""

    def transform(self, record: Any) -> Any:
        return record

    @property
    def transformer_type(self) -> str:
        return "passthrough"
