"""
PostgreSQL connection pooling on psycopg3 / psycopg_pool

Connections are checked out per chunk transaction and handed back at the
end of it; nothing in a job run holds a connection across chunk boundaries
except a QueryCursorReader, which keeps one for its server-side cursor.
"""
import os
import time
from contextlib import contextmanager
from typing import Any, Iterator

import psycopg
from psycopg import OperationalError
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from batchflow.core.errors import ConfigurationError
from batchflow.observability.logger import get_logger

logger = get_logger(__name__)

# setting -> (environment variable, fallback)
ENV_SETTINGS = {
    "host": ("DB_HOST", "localhost"),
    "port": ("DB_PORT", "5432"),
    "database": ("DB_NAME", "batchflow"),
    "user": ("DB_USER", "batchflow"),
    "password": ("DB_PASSWORD", None),
}


def _from_env(setting: str, value: Any) -> Any:
    if value:
        return value
    env_var, fallback = ENV_SETTINGS[setting]
    return os.getenv(env_var, fallback)


class DatabaseConnectionPool:
    """
    Pool of PostgreSQL connections returning rows as dicts.

    Connection settings left as None come from DB_HOST, DB_PORT, DB_NAME,
    DB_USER and DB_PASSWORD. The pool is created closed; open() connects.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        min_size: int = 1,
        max_size: int = 4,
        timeout: float = 30.0,
    ) -> None:
        """
        Args:
            min_size: Connections kept open
            max_size: Upper bound on concurrent checkouts
            timeout: Seconds to wait for a connection or a checkout

        Raises:
            ConfigurationError: If no password is set here or in DB_PASSWORD
        """
        self.host = _from_env("host", host)
        self.port = int(_from_env("port", port))
        self.database = _from_env("database", database)
        self.user = _from_env("user", user)
        self.password = _from_env("password", password)
        if not self.password:
            raise ConfigurationError("No database password: pass one in or set DB_PASSWORD")

        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self.conninfo = make_conninfo(
            host=self.host,
            port=self.port,
            dbname=self.database,
            user=self.user,
            password=self.password,
            connect_timeout=int(self.timeout),
        )
        self._pool: ConnectionPool | None = None

    @classmethod
    def from_config(cls, config) -> "DatabaseConnectionPool":
        """Build a pool from a DatabaseConfig."""
        return cls(**config.model_dump())

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    @property
    def dsn_label(self) -> str:
        """Connection target without the password, for logs."""
        return f"{self.user}@{self.host}:{self.port}/{self.database}"

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Connect, retrying while the server is not reachable yet.

        Opening an open pool does nothing.

        Raises:
            OperationalError: If the last of ``max_retries`` attempts fails
        """
        attempt = 0
        while self._pool is None:
            attempt += 1
            pool = ConnectionPool(
                conninfo=self.conninfo,
                min_size=self.min_size,
                max_size=self.max_size,
                timeout=self.timeout,
                kwargs={"row_factory": dict_row},
                open=False,
            )
            try:
                pool.open(wait=True, timeout=self.timeout)
            except OperationalError as e:
                pool.close()
                if attempt >= max_retries:
                    raise OperationalError(
                        f"Could not reach {self.dsn_label} after {max_retries} attempts: {e}"
                    ) from e
                logger.warning(f"Database not reachable (attempt {attempt}/{max_retries}): {e}")
                time.sleep(retry_delay)
            else:
                self._pool = pool
                logger.info(f"Connection pool open: {self.dsn_label}")

    def close(self) -> None:
        if self._pool is not None:
            pool, self._pool = self._pool, None
            pool.close()
            logger.debug(f"Connection pool closed: {self.dsn_label}")

    @contextmanager
    def get_connection(self) -> Iterator[psycopg.Connection]:
        """
        Check a connection out for the duration of the block.

        On exit the pool commits, or rolls back if the block raised.

        Raises:
            RuntimeError: If the pool is not open
        """
        if self._pool is None:
            raise RuntimeError(f"Connection pool for {self.dsn_label} is not open. Call open() first.")
        with self._pool.connection() as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Iterator[psycopg.Connection]:
        """Run the block in one transaction on a checked-out connection."""
        with self.get_connection() as conn, conn.transaction():
            yield conn

    def execute_query(self, query: str, params: tuple | dict | None = None) -> list[dict]:
        """Run a SELECT and return every row as a dict."""
        with self.get_connection() as conn, conn.cursor() as cur:
            cur.execute(query, params)
            return cur.fetchall()

    def execute_command(self, command: str, params: tuple | dict | None = None) -> int:
        """Run DDL or DML in its own transaction and return the affected row count."""
        with self.transaction() as conn, conn.cursor() as cur:
            cur.execute(command, params)
            return cur.rowcount

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
