"""Migration unit definition, lifecycle states and shared schema helpers."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Sequence

from finance_store.db.errors import MigrationFailed

LEDGER_TABLE = "schema_metadata"

LEDGER_DDL = f"""
CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
    version     INTEGER PRIMARY KEY,
    applied_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
)
"""


class MigrationState(str, Enum):
    PENDING = "pending"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass(frozen=True)
class Migration:
    """One versioned schema/data change with its inverse."""

    version: int
    description: str
    up: Callable[[sqlite3.Connection], None]
    down: Callable[[sqlite3.Connection], None]


def validate_versions(migrations: Sequence[Migration]) -> None:
    """Versions must be exactly 1..N with no gaps or duplicates."""
    versions = sorted(m.version for m in migrations)
    expected = list(range(1, len(versions) + 1))
    if versions != expected:
        raise MigrationFailed(
            f"Migration validation failed: versions must be sequential starting from 1, "
            f"got {versions}"
        )


# -- schema helpers used by the units ------------------------------------------

def exec_all(conn: sqlite3.Connection, statements: Iterable[str]) -> None:
    for sql in statements:
        conn.execute(sql)


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
    ).fetchone()
    return row is not None


def table_sql(conn: sqlite3.Connection, table: str) -> str:
    row = conn.execute(
        "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
    ).fetchone()
    return row[0] if row and row[0] else ""


def column_names(conn: sqlite3.Connection, table: str) -> set[str]:
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def add_column_if_missing(conn: sqlite3.Connection, table: str, column: str, ddl: str) -> bool:
    if column in column_names(conn, table):
        return False
    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")
    return True


TRANSACTION_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(date)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_type ON transactions(type)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_amount ON transactions(amount)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_transactions_unique "
    "ON transactions(date, description, amount)",
)


def rebuild_transactions(conn: sqlite3.Connection, create_sql: str, columns: Sequence[str],
                         select_exprs: Sequence[str] | None = None,
                         extra_indexes: Sequence[str] = ()) -> None:
    """Recreate ``transactions`` with a new definition, carrying rows across.

    SQLite cannot drop columns or alter CHECK constraints in place, so the table
    is copied aside, recreated from ``create_sql`` and refilled.
    """
    cols = ", ".join(columns)
    exprs = ", ".join(select_exprs or columns)
    exec_all(conn, (
        "DROP TABLE IF EXISTS transactions_backup",
        f"CREATE TABLE transactions_backup AS SELECT {exprs} FROM transactions",
        "DROP TABLE transactions",
        create_sql,
        f"INSERT INTO transactions ({cols}) SELECT {cols} FROM transactions_backup",
        "DROP TABLE transactions_backup",
    ))
    exec_all(conn, TRANSACTION_INDEXES)
    exec_all(conn, extra_indexes)
