"""
Database lifecycle helpers for the user store.

Builds the DSN and the PooledExecutor from settings, and provides
`open_database()`, the one place that owns the pool's lifetime: it opens
the pool, runs the schema bootstrap, hands the executor to the caller, and
closes every connection on the way out.

Example
-------
    async with open_database() as executor:
        users = await UserRepository(executor).select_all()
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import quote

from user_store.config import Settings, get_settings
from user_store.infrastructure.executor import PooledExecutor
from user_store.infrastructure.schema import initialize_schema


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a postgresql:// URL from settings."""
    settings = settings or get_settings()
    credentials = quote(settings.db_user, safe="")
    if settings.db_password:
        credentials += ":" + quote(settings.db_password, safe="")
    return (
        f"postgresql://{credentials}"
        f"@{settings.db_host}:{settings.db_port}/{quote(settings.db_name, safe='')}"
    )


def create_executor(
    settings: Optional[Settings] = None, dsn_override: Optional[str] = None
) -> PooledExecutor:
    """
    Build a closed PooledExecutor sized from settings.

    Parameters
    ----------
    settings : Settings, optional
        Settings to use. Defaults to the cached `get_settings()`.
    dsn_override : str, optional
        Connection string to use instead of the one built from settings.
    """
    settings = settings or get_settings()
    return PooledExecutor(
        dsn_override or build_dsn(settings),
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        max_idle=settings.pool_max_idle_seconds,
        acquire_timeout=settings.pool_acquire_timeout_seconds,
        statement_timeout_ms=settings.db_statement_timeout_ms,
    )


@asynccontextmanager
async def open_database(
    settings: Optional[Settings] = None,
    *,
    dsn_override: Optional[str] = None,
    bootstrap: bool = True,
) -> AsyncIterator[PooledExecutor]:
    """
    Open the pool, ensure the schema, and close the pool on exit.

    Raises
    ------
    AcquisitionTimeout
        If the database cannot be reached within the acquisition timeout.
    SchemaBootstrapError
        If the tables cannot be created.
    """
    executor = create_executor(settings, dsn_override=dsn_override)
    await executor.open()
    try:
        if bootstrap:
            await initialize_schema(executor)
        yield executor
    finally:
        await executor.close()


__all__ = ["build_dsn", "create_executor", "open_database"]
