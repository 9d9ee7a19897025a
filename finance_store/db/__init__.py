"""Database layer: SQLite connection manager, schema migrations and repositories."""

from finance_store.db.database import Database, get_db, reset_db
from finance_store.db.errors import (
    ConnectionFailed,
    ConstraintViolation,
    DatabaseError,
    DatabaseErrorType,
    DuplicateEntry,
    MigrationFailed,
    OperationFailed,
    TransactionFailed,
    ValidationFailed,
)

__all__ = [
    "Database", "get_db", "reset_db",
    "DatabaseError", "DatabaseErrorType",
    "ConnectionFailed", "MigrationFailed", "ConstraintViolation",
    "TransactionFailed", "OperationFailed", "DuplicateEntry", "ValidationFailed",
]
