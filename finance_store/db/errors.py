"""Typed database errors shared by the connection manager, migrations and repositories."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from enum import Enum
from typing import Any, Generator, Optional, Sequence


class DatabaseErrorType(str, Enum):
    CONNECTION_FAILED = "CONNECTION_FAILED"
    MIGRATION_FAILED = "MIGRATION_FAILED"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    OPERATION_FAILED = "OPERATION_FAILED"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    VALIDATION_FAILED = "VALIDATION_FAILED"


class DatabaseError(Exception):
    """
    Base class for every error raised by the persistence layer.

    ``query`` is the shape of the statement that failed (never the values
    interpolated into it) and ``params`` the arguments it was called with, so
    callers can tell a legitimate conflict from a broken store.
    """

    type: DatabaseErrorType = DatabaseErrorType.TRANSACTION_FAILED

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        params: Optional[Sequence[Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.query = query
        self.params = list(params) if params is not None else None

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "query": self.query,
            "params": self.params,
        }


class ConnectionFailed(DatabaseError):
    type = DatabaseErrorType.CONNECTION_FAILED


class MigrationFailed(DatabaseError):
    type = DatabaseErrorType.MIGRATION_FAILED


class ConstraintViolation(DatabaseError):
    type = DatabaseErrorType.CONSTRAINT_VIOLATION


class TransactionFailed(DatabaseError):
    type = DatabaseErrorType.TRANSACTION_FAILED


class OperationFailed(DatabaseError):
    type = DatabaseErrorType.OPERATION_FAILED


class DuplicateEntry(DatabaseError):
    type = DatabaseErrorType.DUPLICATE_ENTRY


class ValidationFailed(DatabaseError, ValueError):
    type = DatabaseErrorType.VALIDATION_FAILED


@contextmanager
def database_errors(
    action: str,
    query: Optional[str] = None,
    params: Optional[Sequence[Any]] = None,
) -> Generator[None, None, None]:
    """Translate raw sqlite3 exceptions raised inside the block into typed errors."""
    try:
        yield
    except DatabaseError:
        raise
    except sqlite3.IntegrityError as exc:
        raise ConstraintViolation(f"Failed to {action}: {exc}", query, params) from exc
    except sqlite3.Error as exc:
        raise TransactionFailed(f"Failed to {action}: {exc}", query, params) from exc
