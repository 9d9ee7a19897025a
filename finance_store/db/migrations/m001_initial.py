"""Initial schema: the transactions table and its indexes."""

import sqlite3

from finance_store.db.migrations.base import TRANSACTION_INDEXES, Migration, exec_all

TRANSACTIONS_V1 = """
CREATE TABLE IF NOT EXISTS transactions (
    id          TEXT PRIMARY KEY,
    date        TEXT NOT NULL,
    description TEXT NOT NULL,
    amount      REAL NOT NULL,
    type        TEXT NOT NULL CHECK (type IN ('income', 'expense')),
    created_at  TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at  TEXT DEFAULT CURRENT_TIMESTAMP
)
"""


def up(conn: sqlite3.Connection) -> None:
    conn.execute(TRANSACTIONS_V1)
    exec_all(conn, TRANSACTION_INDEXES)


def down(conn: sqlite3.Connection) -> None:
    conn.execute("DROP TABLE IF EXISTS transactions")


migration = Migration(1, "Initial schema creation with transactions table", up, down)
