"""
Dry-run writer.
"""

from typing import Any, Sequence

from batchflow.observability.logger import get_logger

from .base_writer import BaseWriter

logger = get_logger(__name__)


class LoggingWriter(BaseWriter):
    """Logs every chunk instead of persisting it. Used by ``run --dry-run``."""

    def __init__(self):
        self.chunks_seen = 0

    def write(self, chunk: Sequence[Any]) -> None:
        self.chunks_seen += 1
        logger.info(f"DRY RUN: chunk {self.chunks_seen} with {len(chunk)} record(s) not written")
        for record in chunk:
            logger.info(f"DRY RUN: {record}")
