"""
Reader streaming records from a PostgreSQL query.
"""

from contextlib import ExitStack
from typing import Iterator

from pydantic import BaseModel, ValidationError

from batchflow.core.errors import ConfigurationError, ParseError
from batchflow.observability.logger import get_logger
from batchflow.warehouse.connection import DatabaseConnectionPool

from .base_reader import BaseReader

logger = get_logger(__name__)


class QueryCursorReader(BaseReader):
    """
    Streams rows through a server-side cursor and maps each row by column name.

    The cursor holds its own pooled connection for the whole step, so the pool
    needs at least one more connection than the step's writer uses.
    """

    def __init__(
        self,
        pool: DatabaseConnectionPool,
        query: str,
        record_type: type[BaseModel],
        params: tuple | dict | None = None,
        fetch_size: int = 100,
        cursor_name: str = "batchflow_reader",
    ):
        """
        Args:
            pool: Database connection pool
            query: SELECT statement whose column names match the record fields
            record_type: Pydantic model class built from each row
            params: Query parameters
            fetch_size: Rows fetched from the server-side cursor per round trip
            cursor_name: Server-side cursor name
        """
        if fetch_size < 1:
            raise ConfigurationError(f"fetch_size must be >= 1, got {fetch_size}")

        self.pool = pool
        self.query = query
        self.record_type = record_type
        self.params = params
        self.fetch_size = fetch_size
        self.cursor_name = cursor_name

        self._stack: ExitStack | None = None
        self._rows: Iterator[dict] | None = None
        self._row_number = 0

    def validate(self) -> None:
        if not self.query.strip():
            raise ConfigurationError("Query must not be empty")
        if not self.pool.is_open:
            raise ConfigurationError("Connection pool must be open before the reader is used")

    def open(self) -> None:
        self.validate()
        self.close()

        stack = ExitStack()
        try:
            conn = stack.enter_context(self.pool.get_connection())
            cursor = stack.enter_context(conn.cursor(name=self.cursor_name))
            cursor.itersize = self.fetch_size
            cursor.execute(self.query, self.params)
        except BaseException:
            stack.close()
            raise

        self._stack = stack
        self._rows = iter(cursor)
        self._row_number = 0

    def read(self) -> BaseModel | None:
        if self._rows is None:
            raise RuntimeError("Query reader is not open. Call open() first.")

        row = next(self._rows, None)
        if row is None:
            return None
        self._row_number += 1

        try:
            return self.record_type(**row)
        except ValidationError as e:
            raise ParseError(self._row_number, repr(row), str(e)) from e

    def close(self) -> None:
        if self._stack is not None:
            self._rows = None
            stack, self._stack = self._stack, None
            stack.close()

    @property
    def position(self) -> int | None:
        return self._row_number or None
