"""Allow 'transfer' as a transaction type."""

import sqlite3

from finance_store.db.migrations.base import Migration, rebuild_transactions, table_sql
from finance_store.db.migrations.m001_initial import TRANSACTIONS_V1

TRANSACTIONS_V2 = TRANSACTIONS_V1.replace(
    "CHECK (type IN ('income', 'expense'))",
    "CHECK (type IN ('income', 'expense', 'transfer'))",
)

COLUMNS = ("id", "date", "description", "amount", "type", "created_at", "updated_at")


def up(conn: sqlite3.Connection) -> None:
    if "'transfer'" in table_sql(conn, "transactions"):
        return
    rebuild_transactions(conn, TRANSACTIONS_V2, COLUMNS)


def down(conn: sqlite3.Connection) -> None:
    # transfer rows cannot satisfy the narrower CHECK
    conn.execute("DELETE FROM transactions WHERE type = 'transfer'")
    rebuild_transactions(conn, TRANSACTIONS_V1, COLUMNS)


migration = Migration(2, "Add 'transfer' to the allowed transaction types", up, down)
