"""
Pool-backed statement executor.

Owns a psycopg AsyncConnectionPool and exposes two ways to reach the
database:

- `execute()` runs a single auto-committed statement on a pooled connection.
- `connection()` checks out a connection for a multi-statement unit of work.

Either way the connection goes back to the pool exactly once, whether the
caller's work succeeds, fails, or is cancelled. psycopg_pool resets or
discards returned connections that are left mid-transaction or broken.

Example
-------
    async with PooledExecutor(dsn, max_size=20) as executor:
        rows = await executor.execute("SELECT * FROM users WHERE id = %s", (1,))
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

import psycopg
from psycopg import AsyncConnection, sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from user_store.infrastructure.errors import (
    AcquisitionTimeout,
    ExecutorClosedError,
    PoolFatalError,
    StatementError,
    StatementValidationError,
)
from user_store.utils.logging import get_logger

log = get_logger(__name__)

ParamValue = Union[None, bool, int, float, Decimal, str, date, datetime]
Params = Sequence[ParamValue]

_PARAM_TYPES = (type(None), bool, int, float, Decimal, str, date, datetime)


@dataclass(frozen=True)
class RowSet:
    """
    Result of one statement: rows in server order plus the affected-row count.

    `rowcount` is the number of rows returned for queries and the number of
    rows touched for INSERT/UPDATE/DELETE. Statements without a count (DDL)
    report 0.
    """

    rows: List[Dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0

    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None


def validate_params(params: Params, intent: str, query: Optional[str] = None) -> tuple:
    """
    Check a positional parameter sequence before it is sent to the server.

    Raises
    ------
    StatementValidationError
        If `params` is not a sequence or holds a value of an unsupported type.
    """
    if isinstance(params, (str, bytes)) or not isinstance(params, Sequence):
        raise StatementValidationError(
            intent, f"parameters must be a sequence, got {type(params).__name__}", query
        )
    for position, value in enumerate(params, start=1):
        if not isinstance(value, _PARAM_TYPES):
            raise StatementValidationError(
                intent,
                f"parameter ${position} has unsupported type {type(value).__name__}",
                query,
            )
    return tuple(params)


async def run_statement(
    conn: AsyncConnection,
    query: str,
    params: Params = (),
    *,
    intent: Optional[str] = None,
) -> RowSet:
    """
    Run one statement on an already checked-out connection.

    Used both by `PooledExecutor.execute` and by callers that hold a
    connection for a transaction. `params` are sent as given; check untrusted
    values with `validate_params` first. psycopg errors are wrapped in
    StatementError; anything else (cancellation included) propagates as is.
    """
    intent = intent or "execute statement"
    bound = tuple(params)

    start = time.perf_counter()
    try:
        async with conn.cursor() as cur:
            await cur.execute(query, bound)
            rows = await cur.fetchall() if cur.description is not None else []
            rowcount = max(cur.rowcount, 0)
    except psycopg.Error as exc:
        log.error(
            "Statement failed",
            extra={"intent": intent, "query": query, "error": str(exc)},
        )
        raise StatementError(intent, exc, query) from exc

    duration_ms = (time.perf_counter() - start) * 1000
    log.debug(
        f"Executed statement: {intent}",
        extra={"intent": intent, "rowcount": rowcount, "duration_ms": round(duration_ms, 2)},
    )
    return RowSet(rows=list(rows), rowcount=rowcount)


class PooledExecutor:
    """
    Bounded pool of PostgreSQL connections with scoped checkout.

    Parameters
    ----------
    conninfo : str
        libpq connection string or URL.
    min_size : int
        Connections kept open while idle.
    max_size : int
        Upper bound on concurrently open connections.
    max_idle : float
        Seconds an unused connection may sit in the pool before it is closed
        (the pool never shrinks below `min_size`).
    acquire_timeout : float
        Seconds a caller waits for a free connection before AcquisitionTimeout.
    statement_timeout_ms : int
        Server-side `statement_timeout` applied to every new connection.
        0 disables it.
    name : str
        Pool name, shown in psycopg_pool's own log messages.
    """

    def __init__(
        self,
        conninfo: str,
        *,
        min_size: int = 1,
        max_size: int = 20,
        max_idle: float = 30.0,
        acquire_timeout: float = 5.0,
        statement_timeout_ms: int = 30_000,
        name: str = "user-store",
    ) -> None:
        self.acquire_timeout = acquire_timeout
        self.statement_timeout_ms = statement_timeout_ms
        self._fatal: Optional[PoolFatalError] = None
        self._open = False
        self._pool = AsyncConnectionPool(
            conninfo=conninfo,
            min_size=min_size,
            max_size=max_size,
            max_idle=max_idle,
            timeout=acquire_timeout,
            kwargs={"autocommit": True, "row_factory": dict_row},
            configure=self._configure_connection,
            check=AsyncConnectionPool.check_connection,
            reconnect_failed=self._on_reconnect_failed,
            name=name,
            open=False,
        )

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def is_fatal(self) -> bool:
        return self._fatal is not None

    async def open(self) -> None:
        """
        Open the pool and wait until its first connections are established.

        Raises
        ------
        AcquisitionTimeout
            If the pool cannot connect within `acquire_timeout`.
        """
        if self._open:
            return
        try:
            await self._pool.open(wait=True, timeout=self.acquire_timeout)
        except PoolTimeout as exc:
            await self._pool.close()
            raise AcquisitionTimeout(self.acquire_timeout, exc) from exc
        self._open = True
        log.info("Connection pool opened", extra={"pool": self._pool.name})

    async def close(self) -> None:
        """Close every pooled connection. Safe to call more than once."""
        if not self._open:
            return
        self._open = False
        await self._pool.close()
        log.info("Connection pool closed", extra={"pool": self._pool.name})

    async def __aenter__(self) -> "PooledExecutor":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _ensure_usable(self) -> None:
        if self._fatal is not None:
            raise self._fatal
        if not self._open:
            raise ExecutorClosedError("executor is not open")

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """
        Check out one connection for the duration of the block.

        The connection is exclusive to the caller until the block exits and is
        returned to the pool exactly once on every exit path.

        Raises
        ------
        AcquisitionTimeout
            If no connection frees up within `acquire_timeout`.
        PoolFatalError
            If the pool has already failed irrecoverably.
        """
        self._ensure_usable()
        try:
            conn = await self._pool.getconn(timeout=self.acquire_timeout)
        except PoolTimeout as exc:
            log.warning(
                "Timed out waiting for a pooled connection",
                extra={"timeout_seconds": self.acquire_timeout},
            )
            raise AcquisitionTimeout(self.acquire_timeout, exc) from exc
        try:
            yield conn
        finally:
            await self._pool.putconn(conn)

    async def execute(
        self,
        query: str,
        params: Params = (),
        *,
        intent: Optional[str] = None,
    ) -> RowSet:
        """
        Run a single auto-committed statement on a pooled connection.

        Parameters are checked before a connection is checked out, so bad
        input never holds a pool slot.

        Parameters
        ----------
        query : str
            SQL text with `%s` positional placeholders.
        params : sequence
            Positional parameter values.
        intent : str, optional
            Short description of what the statement does, used in logs and
            error messages (e.g. "insert user").

        Returns
        -------
        RowSet
            Rows returned by the statement plus the affected-row count.

        Raises
        ------
        StatementError
            If the database rejects or fails the statement.
        AcquisitionTimeout
            If no connection frees up within `acquire_timeout`.
        """
        bound = validate_params(params, intent or "execute statement", query)
        async with self.connection() as conn:
            return await run_statement(conn, query, bound, intent=intent)

    async def _configure_connection(self, conn: AsyncConnection) -> None:
        if self.statement_timeout_ms:
            await conn.execute(
                sql.SQL("SET statement_timeout = {}").format(
                    sql.Literal(self.statement_timeout_ms)
                )
            )
        log.debug("Connected to PostgreSQL database")

    def _on_reconnect_failed(self, pool: AsyncConnectionPool) -> None:
        self._fatal = PoolFatalError(
            f"connection pool '{pool.name}' could not reconnect to the database; "
            "refusing further work"
        )
        log.critical(
            "Connection pool failed irrecoverably",
            extra={"pool": pool.name},
        )


__all__ = [
    "Params",
    "ParamValue",
    "PooledExecutor",
    "RowSet",
    "run_statement",
    "validate_params",
]
