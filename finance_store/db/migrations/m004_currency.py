"""Optional currency code on transactions."""

import sqlite3

from finance_store.db.migrations.base import Migration, add_column_if_missing, rebuild_transactions
from finance_store.db.migrations.m002_transfer_type import TRANSACTIONS_V2

TRANSACTIONS_V3 = TRANSACTIONS_V2.replace(
    "    created_at  TEXT DEFAULT CURRENT_TIMESTAMP,",
    "    category_id TEXT REFERENCES categories(id),\n"
    "    created_at  TEXT DEFAULT CURRENT_TIMESTAMP,",
)

COLUMNS_V3 = ("id", "date", "description", "amount", "type", "category_id",
              "created_at", "updated_at")


def up(conn: sqlite3.Connection) -> None:
    add_column_if_missing(conn, "transactions", "currency", "TEXT")


def down(conn: sqlite3.Connection) -> None:
    rebuild_transactions(
        conn, TRANSACTIONS_V3, COLUMNS_V3,
        extra_indexes=(
            "CREATE INDEX IF NOT EXISTS idx_transactions_category ON transactions(category_id)",
        ),
    )


migration = Migration(4, "Add optional 'currency' column to transactions", up, down)
