"""
Error taxonomy for the user store.

Every failure raised by the executor, the repositories, or the schema
bootstrap derives from UserStoreError and keeps the underlying exception
(usually a psycopg error) available as `original` and as `__cause__`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class UserStoreError(Exception):
    """
    Base class for user store failures.

    Parameters
    ----------
    message : str
        Human-readable description of what failed.
    original : Exception, optional
        The exception that triggered this one.
    """

    def __init__(self, message: str, original: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original = original

    def __str__(self) -> str:
        if self.original is None:
            return self.message
        return f"{self.message}: {self.original}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for structured logs and CLI output."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "original": repr(self.original) if self.original else None,
        }


class AcquisitionTimeout(UserStoreError):
    """No pooled connection became available within the acquisition timeout."""

    def __init__(self, timeout: float, original: Optional[BaseException] = None) -> None:
        super().__init__(f"no database connection available within {timeout:g}s", original)
        self.timeout = timeout


class StatementError(UserStoreError):
    """
    The database rejected or failed a statement.

    Covers constraint violations, syntax errors, and connectivity lost while
    the statement was running.
    """

    def __init__(
        self,
        intent: str,
        original: Optional[BaseException] = None,
        query: Optional[str] = None,
    ) -> None:
        super().__init__(f"failed to {intent}", original)
        self.intent = intent
        self.query = query

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["intent"] = self.intent
        payload["query"] = self.query
        return payload


class StatementValidationError(StatementError):
    """Statement input was rejected before it was sent to the database."""

    def __init__(self, intent: str, reason: str, query: Optional[str] = None) -> None:
        super().__init__(intent, None, query)
        self.reason = reason
        self.message = f"failed to {intent}: {reason}"

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["reason"] = self.reason
        return payload


class TransactionAbortFailure(UserStoreError):
    """
    ROLLBACK itself failed after a statement inside a transaction failed.

    Whether the transaction's writes were discarded is unknown, so both the
    failure that triggered the rollback and the rollback's own error are kept.
    """

    def __init__(self, original: BaseException, rollback_error: BaseException) -> None:
        super().__init__(
            f"rollback failed ({rollback_error}) after transaction error", original
        )
        self.rollback_error = rollback_error

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["rollback_error"] = repr(self.rollback_error)
        return payload


class PoolFatalError(UserStoreError):
    """The connection pool lost its connections and could not restore them."""


class ExecutorClosedError(UserStoreError):
    """The executor was used after it was closed (or before it was opened)."""


class SchemaBootstrapError(UserStoreError):
    """The required tables could not be created at startup."""


__all__ = [
    "AcquisitionTimeout",
    "ExecutorClosedError",
    "PoolFatalError",
    "SchemaBootstrapError",
    "StatementError",
    "StatementValidationError",
    "TransactionAbortFailure",
    "UserStoreError",
]
