"""
Repository operations for the `users` table.

Each method is one unit of work. Single-record operations run one
auto-committed statement through `PooledExecutor.execute`; `insert_batch`
checks out one connection and wraps its inserts in an explicit transaction.

Failures propagate as StatementError (or a subclass). A zero, empty, or
False result always means the statement succeeded and matched nothing.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, List, Union

from pydantic import ValidationError

from user_store.domain.models import NewUser, User
from user_store.infrastructure.errors import StatementValidationError, TransactionAbortFailure
from user_store.infrastructure.executor import PooledExecutor, run_statement
from user_store.utils.logging import get_logger

log = get_logger(__name__)

UserInput = Union[NewUser, Mapping[str, Any]]

INSERT_USER_SQL = "INSERT INTO users (fname, lname, age) VALUES (%s, %s, %s) RETURNING id"
SELECT_ALL_SQL = "SELECT id, fname, lname, age, created_at FROM users ORDER BY id"
DELETE_BY_ID_SQL = "DELETE FROM users WHERE id = %s"
DELETE_BY_FNAME_SQL = "DELETE FROM users WHERE fname = %s"
DELETE_BY_AGE_RANGE_SQL = "DELETE FROM users WHERE age BETWEEN %s AND %s"
DELETE_ALL_SQL = "DELETE FROM users"


def _coerce(record: UserInput, intent: str) -> NewUser:
    if isinstance(record, NewUser):
        return record
    try:
        return NewUser.model_validate(record)
    except ValidationError as exc:
        raise StatementValidationError(intent, str(exc), INSERT_USER_SQL) from exc


class UserRepository:
    """
    Insert, list, and delete users through a pooled executor.
    """

    def __init__(self, executor: PooledExecutor) -> None:
        self.executor = executor

    async def insert_one(self, record: UserInput) -> int:
        """Insert one user and return the id storage assigned to it."""
        user = _coerce(record, "insert user")
        result = await self.executor.execute(
            INSERT_USER_SQL, user.insert_params(), intent="insert user"
        )
        user_id = result.rows[0]["id"]
        log.info(f"User inserted with ID: {user_id}", extra={"user_id": user_id})
        return user_id

    async def insert_batch(self, records: Iterable[UserInput]) -> List[int]:
        """
        Insert every record in one transaction, in input order.

        Either all rows are committed or none are. Every record is validated
        before a connection is checked out, so a malformed record fails the
        batch without touching the database.

        Returns
        -------
        list[int]
            The new ids, in the same order as `records`. Empty input commits an
            empty transaction and returns [].

        Raises
        ------
        StatementValidationError
            If a record is missing a required field or has a bad value.
        StatementError
            If an insert (or BEGIN/COMMIT) fails; the transaction is rolled back.
        TransactionAbortFailure
            If the rollback itself fails after an insert failed.
        """
        users = [
            _coerce(record, f"insert user #{index} of batch")
            for index, record in enumerate(records, start=1)
        ]

        ids: List[int] = []
        async with self.executor.connection() as conn:
            await run_statement(conn, "BEGIN", intent="begin transaction")
            try:
                for index, user in enumerate(users, start=1):
                    result = await run_statement(
                        conn,
                        INSERT_USER_SQL,
                        user.insert_params(),
                        intent=f"insert user #{index} of batch",
                    )
                    ids.append(result.rows[0]["id"])
                await run_statement(conn, "COMMIT", intent="commit transaction")
            except Exception as exc:
                await self._rollback(conn, exc)
                raise

        log.info(f"{len(ids)} users inserted successfully", extra={"rows": len(ids)})
        return ids

    async def _rollback(self, conn, cause: Exception) -> None:
        try:
            await run_statement(conn, "ROLLBACK", intent="roll back transaction")
        except Exception as rollback_exc:
            log.critical(
                "Rollback failed; batch durability unknown",
                extra={"error": str(cause), "rollback_error": str(rollback_exc)},
            )
            raise TransactionAbortFailure(cause, rollback_exc) from cause
        log.warning("Batch insert rolled back", extra={"error": str(cause)})

    async def select_all(self) -> List[User]:
        """Return every user, ordered by id."""
        result = await self.executor.execute(SELECT_ALL_SQL, intent="select users")
        log.info(f"Retrieved {len(result.rows)} users", extra={"rows": len(result.rows)})
        return [User.from_row(row) for row in result.rows]

    async def delete_by_id(self, user_id: int) -> bool:
        """Delete one user. Returns False when no user had that id."""
        result = await self.executor.execute(
            DELETE_BY_ID_SQL, (user_id,), intent=f"delete user {user_id}"
        )
        log.info(f"Deleted user with ID {user_id}", extra={"rows": result.rowcount})
        return result.rowcount > 0

    async def delete_by_first_name(self, fname: str) -> int:
        """Delete every user with this first name and return how many went."""
        result = await self.executor.execute(
            DELETE_BY_FNAME_SQL, (fname,), intent=f"delete users named '{fname}'"
        )
        log.info(
            f"Deleted {result.rowcount} user(s) with fname '{fname}'",
            extra={"rows": result.rowcount},
        )
        return result.rowcount

    async def delete_by_age_range(self, min_age: int, max_age: int) -> int:
        """
        Delete users whose age is within [min_age, max_age], inclusive.

        Users without an age are never matched. An inverted range matches nothing.
        """
        result = await self.executor.execute(
            DELETE_BY_AGE_RANGE_SQL,
            (min_age, max_age),
            intent=f"delete users aged {min_age}-{max_age}",
        )
        log.info(
            f"Deleted {result.rowcount} user(s) aged between {min_age} and {max_age}",
            extra={"rows": result.rowcount},
        )
        return result.rowcount

    async def delete_all(self) -> int:
        """Delete every user and return how many rows were removed."""
        result = await self.executor.execute(DELETE_ALL_SQL, intent="delete all users")
        log.info(f"Deleted {result.rowcount} users", extra={"rows": result.rowcount})
        return result.rowcount


__all__ = ["UserInput", "UserRepository"]
