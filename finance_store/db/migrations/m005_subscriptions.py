"""Subscriptions, their matching patterns and subscription flags on transactions."""

import sqlite3

from finance_store.db.migrations.base import (
    Migration,
    add_column_if_missing,
    exec_all,
    rebuild_transactions,
)
from finance_store.db.migrations.m004_currency import TRANSACTIONS_V3

TRANSACTIONS_V4 = TRANSACTIONS_V3.replace(
    "    category_id TEXT REFERENCES categories(id),",
    "    currency    TEXT,\n"
    "    category_id TEXT REFERENCES categories(id),",
)

COLUMNS_V4 = ("id", "date", "description", "amount", "type", "currency", "category_id",
              "created_at", "updated_at")

_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS subscriptions (
        id                    TEXT PRIMARY KEY,
        name                  TEXT NOT NULL,
        description           TEXT,
        amount                REAL NOT NULL,
        currency              TEXT NOT NULL DEFAULT 'NOK',
        billing_frequency     TEXT NOT NULL
                              CHECK (billing_frequency IN ('monthly', 'quarterly', 'annually', 'custom')),
        custom_frequency_days INTEGER,
        next_payment_date     TEXT NOT NULL,
        category_id           TEXT NOT NULL REFERENCES categories(id),
        is_active             INTEGER NOT NULL DEFAULT 1,
        start_date            TEXT NOT NULL,
        end_date              TEXT,
        notes                 TEXT,
        website               TEXT,
        cancellation_url      TEXT,
        last_used_date        TEXT,
        usage_rating          INTEGER CHECK (usage_rating BETWEEN 1 AND 5),
        created_at            TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at            TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS subscription_patterns (
        id               TEXT PRIMARY KEY,
        subscription_id  TEXT NOT NULL REFERENCES subscriptions(id) ON DELETE CASCADE,
        pattern          TEXT NOT NULL,
        pattern_type     TEXT NOT NULL
                         CHECK (pattern_type IN ('exact', 'contains', 'starts_with', 'regex')),
        confidence_score REAL NOT NULL DEFAULT 1.0
                         CHECK (confidence_score >= 0 AND confidence_score <= 1),
        created_by       TEXT NOT NULL CHECK (created_by IN ('user', 'system')),
        is_active        INTEGER NOT NULL DEFAULT 1,
        created_at       TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at       TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
)

_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_subscriptions_active ON subscriptions(is_active)",
    "CREATE INDEX IF NOT EXISTS idx_subscriptions_category ON subscriptions(category_id)",
    "CREATE INDEX IF NOT EXISTS idx_subscriptions_next_payment ON subscriptions(next_payment_date)",
    "CREATE INDEX IF NOT EXISTS idx_subscriptions_billing_frequency "
    "ON subscriptions(billing_frequency)",
    "CREATE INDEX IF NOT EXISTS idx_subscription_patterns_subscription "
    "ON subscription_patterns(subscription_id)",
    "CREATE INDEX IF NOT EXISTS idx_subscription_patterns_active ON subscription_patterns(is_active)",
    "CREATE INDEX IF NOT EXISTS idx_subscription_patterns_type ON subscription_patterns(pattern_type)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_subscription ON transactions(subscription_id)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_is_subscription ON transactions(is_subscription)",
)


def up(conn: sqlite3.Connection) -> None:
    exec_all(conn, _TABLES)
    add_column_if_missing(conn, "transactions", "is_subscription", "INTEGER DEFAULT 0")
    add_column_if_missing(
        conn, "transactions", "subscription_id", "TEXT REFERENCES subscriptions(id)"
    )
    exec_all(conn, _INDEXES)


def down(conn: sqlite3.Connection) -> None:
    # transactions must stop referencing subscriptions before the table goes
    rebuild_transactions(
        conn, TRANSACTIONS_V4, COLUMNS_V4,
        extra_indexes=(
            "CREATE INDEX IF NOT EXISTS idx_transactions_category ON transactions(category_id)",
        ),
    )
    exec_all(conn, (
        "DROP TABLE IF EXISTS subscription_patterns",
        "DROP TABLE IF EXISTS subscriptions",
    ))


migration = Migration(
    5,
    "Add subscriptions and subscription_patterns tables, extend transactions with subscription fields",
    up,
    down,
)
