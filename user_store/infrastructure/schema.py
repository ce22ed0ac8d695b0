"""
Schema bootstrap for the user store.

Creates the tables the repositories rely on. Every statement is
`CREATE TABLE IF NOT EXISTS`, so running the bootstrap again is a no-op.
"""

from __future__ import annotations

from user_store.infrastructure.errors import SchemaBootstrapError, StatementError
from user_store.infrastructure.executor import PooledExecutor
from user_store.utils.logging import get_logger

log = get_logger(__name__)

USERS_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    fname VARCHAR(50) NOT NULL,
    lname VARCHAR(50) NOT NULL,
    age INT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""

SCHEMA_STATEMENTS = {
    "users": USERS_TABLE_DDL,
}


async def initialize_schema(executor: PooledExecutor) -> None:
    """
    Ensure every required table exists.

    Raises
    ------
    SchemaBootstrapError
        If any table cannot be created. Callers should treat this as fatal:
        the repositories assume the schema is present.
    """
    for table, ddl in SCHEMA_STATEMENTS.items():
        try:
            await executor.execute(ddl, intent=f"create table {table}")
        except StatementError as exc:
            log.critical("Schema bootstrap failed", extra={"table": table})
            raise SchemaBootstrapError(f"could not create table '{table}'", exc) from exc
        log.info("Table created or already exists", extra={"table": table})
    log.info("Database schema initialized")


__all__ = ["SCHEMA_STATEMENTS", "USERS_TABLE_DDL", "initialize_schema"]
