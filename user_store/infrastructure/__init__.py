"""
Infrastructure package for the user store.

Centralizes database connectivity concerns (pooled executor, lifecycle,
schema bootstrap, error taxonomy). Keep this layer focused on I/O and
resource management, decoupled from repository logic.
"""

from user_store.infrastructure.db_factory import build_dsn, create_executor, open_database
from user_store.infrastructure.errors import (
    AcquisitionTimeout,
    ExecutorClosedError,
    PoolFatalError,
    SchemaBootstrapError,
    StatementError,
    StatementValidationError,
    TransactionAbortFailure,
    UserStoreError,
)
from user_store.infrastructure.executor import PooledExecutor, RowSet, run_statement
from user_store.infrastructure.schema import initialize_schema

__all__ = [
    "build_dsn",
    "create_executor",
    "open_database",
    "initialize_schema",
    "PooledExecutor",
    "RowSet",
    "run_statement",
    # Errors
    "AcquisitionTimeout",
    "ExecutorClosedError",
    "PoolFatalError",
    "SchemaBootstrapError",
    "StatementError",
    "StatementValidationError",
    "TransactionAbortFailure",
    "UserStoreError",
]
