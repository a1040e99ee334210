"""
Pytest configuration and fixtures for batchflow tests

Unit tests run against in-memory collaborators; integration and E2E tests
run against a PostgreSQL container started with testcontainers.
"""
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Sequence

import pytest

from batchflow.batch.writers import BaseWriter
from batchflow.core.errors import PersistError


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that run complete jobs"
    )


# =======================
# IN-MEMORY COLLABORATORS
# =======================

class InMemoryTableWriter(BaseWriter):
    """
    Transactional in-memory sink.

    Records written inside transaction() are staged and only become visible
    in ``rows`` when the scope exits normally. Write calls listed in
    ``fail_on_calls`` (1-based) fail halfway through their chunk.
    """

    def __init__(self, fail_on_calls: Sequence[int] = (), error: type[Exception] = PersistError):
        self.rows: list[Any] = []
        self.write_calls: list[list[Any]] = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_on_calls = set(fail_on_calls)
        self.error = error
        self._staged: list[Any] | None = None

    @contextmanager
    def transaction(self):
        self._staged = []
        try:
            yield self._staged
        except BaseException:
            self.rollbacks += 1
            raise
        else:
            self.rows.extend(self._staged)
            self.commits += 1
        finally:
            self._staged = None

    def write(self, chunk):
        self.write_calls.append(list(chunk))
        target = self._staged if self._staged is not None else self.rows
        failing = len(self.write_calls) in self.fail_on_calls
        for index, record in enumerate(chunk):
            if failing and index == len(chunk) // 2:
                if self.error is PersistError:
                    raise PersistError(len(chunk), "simulated failure")
                raise self.error("simulated failure")
            target.append(record)


@pytest.fixture
def table_writer() -> InMemoryTableWriter:
    """Writer that never fails"""
    return InMemoryTableWriter()


@pytest.fixture
def make_table_writer():
    """Factory for writers with scripted failures"""
    return InMemoryTableWriter


@pytest.fixture
def restore_logging():
    """Put the batchflow root logger back the way the test found it"""
    root = logging.getLogger("batchflow")
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# =======================
# FILE FIXTURES
# =======================

@pytest.fixture(scope="session")
def test_data_dir() -> Path:
    """Path to tests/fixtures"""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def write_csv(tmp_path):
    """Write lines to a temporary CSV file and return its path"""
    def _write(lines: Sequence[str], name: str = "input.csv") -> Path:
        path = tmp_path / name
        path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        return path
    return _write


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container():
    """
    Start a PostgreSQL container for integration tests

    Skips the requesting tests when Docker is not reachable.
    """
    from testcontainers.postgres import PostgresContainer

    container = PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_batchflow",
        password="test_password",
        dbname="test_batchflow",
    )
    try:
        container.start()
    except Exception as e:
        pytest.skip(f"Docker is not available: {e}")

    try:
        yield container
    finally:
        container.stop()


@pytest.fixture
def db_pool(postgres_container) -> Generator:
    """
    Open connection pool on the test database with the people table created

    Yields:
        DatabaseConnectionPool
    """
    from batchflow.warehouse import DatabaseConnectionPool, ensure_people_table

    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_batchflow",
        user="test_batchflow",
        password="test_password",
        min_size=1,
        max_size=4,
    )
    pool.open()
    ensure_people_table(pool)
    try:
        yield pool
    finally:
        pool.close()


@pytest.fixture
def clean_db(db_pool):
    """Connection pool with an empty people table"""
    from batchflow.warehouse import truncate_people_table

    truncate_people_table(db_pool)
    yield db_pool


@pytest.fixture
def db_env(postgres_container, monkeypatch):
    """Point the DB_* environment variables at the test container"""
    monkeypatch.setenv("DB_HOST", postgres_container.get_container_host_ip())
    monkeypatch.setenv("DB_PORT", str(postgres_container.get_exposed_port(5432)))
    monkeypatch.setenv("DB_NAME", "test_batchflow")
    monkeypatch.setenv("DB_USER", "test_batchflow")
    monkeypatch.setenv("DB_PASSWORD", "test_password")
    return dict(os.environ)
