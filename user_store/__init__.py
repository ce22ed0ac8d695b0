"""
user-store - pooled PostgreSQL access for a small users table.

The package provides:

- A pool-backed executor with scoped connection checkout
- Transactional batch inserts (all rows or none)
- Single-statement insert, select, and delete operations
- Idempotent schema bootstrap and an explicit pool lifecycle
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from user_store.config import Settings, get_settings
from user_store.domain.models import NewUser, User
from user_store.infrastructure import (
    AcquisitionTimeout,
    PoolFatalError,
    PooledExecutor,
    RowSet,
    SchemaBootstrapError,
    StatementError,
    StatementValidationError,
    TransactionAbortFailure,
    UserStoreError,
    open_database,
)
from user_store.repositories.users import UserRepository
from user_store.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "NewUser",
    "User",
    # Database access
    "PooledExecutor",
    "RowSet",
    "open_database",
    "UserRepository",
    # Errors
    "AcquisitionTimeout",
    "PoolFatalError",
    "SchemaBootstrapError",
    "StatementError",
    "StatementValidationError",
    "TransactionAbortFailure",
    "UserStoreError",
    # Logging
    "configure_logging",
    "get_logger",
]
