"""
PostgreSQL access: connection pooling and target table DDL.
"""

from .connection import DatabaseConnectionPool
from .schema import PEOPLE_TABLE_DDL, ensure_people_table, truncate_people_table

__all__ = [
    "DatabaseConnectionPool",
    "PEOPLE_TABLE_DDL",
    "ensure_people_table",
    "truncate_people_table",
]
