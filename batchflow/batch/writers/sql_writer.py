"""
Batch SQL writer: one parameterized statement executed for every record of a chunk.
"""

import re
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

import psycopg
from pydantic import BaseModel

from batchflow.core.errors import ConfigurationError, PersistError
from batchflow.observability.logger import get_logger
from batchflow.warehouse.connection import DatabaseConnectionPool

from .base_writer import BaseWriter

logger = get_logger(__name__)

NAMED_PARAMETER = re.compile(r"%\((\w+)\)s")


class SqlBatchWriter(BaseWriter):
    """
    Writes chunks with ``executemany`` inside a single transaction.

    Parameters are bound by name from each record's fields, so the statement
    text is independent of field order:

        INSERT INTO people (first_name, last_name)
        VALUES (%(first_name)s, %(last_name)s)
    """

    def __init__(self, pool: DatabaseConnectionPool, sql: str, assert_updates: bool = True):
        """
        Args:
            pool: Database connection pool
            sql: Statement with %(name)s placeholders
            assert_updates: Treat a chunk that affected fewer rows than it
                has records as a persistence failure
        """
        self.pool = pool
        self.sql = sql
        self.assert_updates = assert_updates
        self.parameter_names = list(dict.fromkeys(NAMED_PARAMETER.findall(sql)))

        self._connection: psycopg.Connection | None = None
        self._pending = 0

    def validate(self) -> None:
        if not self.parameter_names:
            raise ConfigurationError(
                f"Statement must use named %(field)s parameters: {self.sql!r}"
            )
        if not self.pool.is_open:
            raise ConfigurationError("Connection pool must be open before the writer is used")

    @contextmanager
    def transaction(self) -> Iterator[psycopg.Connection]:
        """
        Check out a connection for one chunk and run it in one transaction.

        A failing COMMIT surfaces as PersistError like any other write failure.
        """
        if self._connection is not None:
            raise RuntimeError("A chunk transaction is already active on this writer")

        try:
            with self.pool.transaction() as conn:
                self._connection = conn
                yield conn
        except psycopg.Error as e:
            raise PersistError(self._pending, str(e)) from e
        finally:
            self._connection = None
            self._pending = 0

    def write(self, chunk: Sequence[Any]) -> None:
        if not chunk:
            return

        if self._connection is None:
            with self.transaction():
                self.write(chunk)
            return

        parameters = [self._parameters(record) for record in chunk]
        self._pending = len(parameters)

        try:
            with self._connection.cursor() as cur:
                cur.executemany(self.sql, parameters)
                rowcount = cur.rowcount
        except psycopg.Error as e:
            raise PersistError(len(parameters), str(e)) from e

        if self.assert_updates and 0 <= rowcount < len(parameters):
            raise PersistError(
                len(parameters),
                f"statement updated {rowcount} row(s) for {len(parameters)} record(s)",
            )

        logger.debug(f"Executed batch of {len(parameters)} record(s)")

    def _parameters(self, record: Any) -> dict[str, Any]:
        values = record.model_dump() if isinstance(record, BaseModel) else dict(record)
        missing = [name for name in self.parameter_names if name not in values]
        if missing:
            raise PersistError(1, f"record ({record}) has no field(s): {', '.join(missing)}")
        return {name: values[name] for name in self.parameter_names}

    def __repr__(self) -> str:
        return f"SqlBatchWriter(sql={self.sql!r})"
