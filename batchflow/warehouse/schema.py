"""
DDL for the import target table.
"""

from batchflow.observability.logger import get_logger

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)

PEOPLE_TABLE_DDL = """
    CREATE TABLE IF NOT EXISTS people (
        person_id BIGSERIAL PRIMARY KEY,
        first_name VARCHAR(20),
        last_name VARCHAR(20)
    )
"""


def ensure_people_table(pool: DatabaseConnectionPool) -> None:
    """Create the people table if it does not exist."""
    pool.execute_command(PEOPLE_TABLE_DDL)
    logger.info("Table 'people' is ready")


def truncate_people_table(pool: DatabaseConnectionPool) -> None:
    """Remove all rows from the people table (used before a fresh import)."""
    pool.execute_command("TRUNCATE TABLE people RESTART IDENTITY")
    logger.info("Table 'people' truncated")
