"""
Pytest configuration for the user store.

Provides fixtures for:
- Settings override for integration tests
- Database availability checks and table cleanup
- A fake connection pool for unit tests
"""

from __future__ import annotations

import os
from typing import Generator

import psycopg
import pytest

from tests.fakes import FakeAsyncPool
from user_store.config import Settings, get_settings
from user_store.infrastructure.db_factory import build_dsn
from user_store.infrastructure.schema import USERS_TABLE_DDL


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_pool_cls(monkeypatch) -> type[FakeAsyncPool]:
    """
    Replace AsyncConnectionPool inside the executor with FakeAsyncPool.

    Pools built during the test are available as `FakeAsyncPool.instances`.
    """
    FakeAsyncPool.instances.clear()
    monkeypatch.setattr("user_store.infrastructure.executor.AsyncConnectionPool", FakeAsyncPool)
    return FakeAsyncPool


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("PGHOST", "localhost"),
        db_port=int(os.getenv("PGPORT", "5432")),
        db_user=os.getenv("PGUSER", "postgres"),
        db_password=os.getenv("PGPASSWORD", "postgres"),
        db_name=os.getenv("PGDATABASE", "postgres"),
        pool_max_size=5,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return build_dsn(test_settings)


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True)
    try:
        with conn.cursor() as cur:
            cur.execute(USERS_TABLE_DDL)
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def clean_users_table(db_connection: psycopg.Connection) -> Generator[None, None, None]:
    """
    Empty the users table before and after each test function.
    """
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE users RESTART IDENTITY;")
    yield
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE users RESTART IDENTITY;")


@pytest.fixture(scope="function")
def users_row_count(db_connection: psycopg.Connection):
    """
    Return a callable counting rows in the users table.
    """

    def count() -> int:
        with db_connection.cursor() as cur:
            cur.execute("SELECT COUNT(*) FROM users;")
            return cur.fetchone()[0]

    return count
