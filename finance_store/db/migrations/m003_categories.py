"""Categories, categorization rules and the default category set."""

import sqlite3
import uuid

from finance_store.db.migrations.base import (
    Migration,
    add_column_if_missing,
    exec_all,
    rebuild_transactions,
)
from finance_store.db.migrations.m002_transfer_type import COLUMNS, TRANSACTIONS_V2

DEFAULT_CATEGORIES = (
    ("cat_groceries", "Groceries", "Food and household items", "#10B981", "shopping-cart"),
    ("cat_transportation", "Transportation", "Travel, fuel, public transport", "#3B82F6", "car"),
    ("cat_utilities", "Utilities", "Electricity, water, gas, internet", "#F59E0B", "zap"),
    ("cat_rent", "Rent/Mortgage", "Housing payments", "#EF4444", "home"),
    ("cat_dining", "Dining Out", "Restaurants, cafes, takeout", "#8B5CF6", "utensils"),
    ("cat_entertainment", "Entertainment", "Movies, streaming, games", "#EC4899", "film"),
    ("cat_shopping", "Shopping", "Clothes, electronics, general purchases", "#06B6D4", "shopping-bag"),
    ("cat_healthcare", "Healthcare", "Medical, dental, pharmacy", "#84CC16", "heart"),
    ("cat_banking", "Banking/Fees", "ATM fees, bank charges", "#6B7280", "credit-card"),
    ("cat_insurance", "Insurance", "Health, auto, home insurance", "#9333EA", "shield"),
    ("cat_investments", "Investments", "Stocks, bonds, retirement", "#059669", "trending-up"),
    ("cat_uncategorized", "Uncategorized", "Transactions without a category", "#9CA3AF", "help-circle"),
)

# (category_id, pattern, pattern_type, confidence)
DEFAULT_RULES = (
    ("cat_transportation", "UBER", "contains", 0.95),
    ("cat_transportation", "LYFT", "contains", 0.95),
    ("cat_transportation", "TAXI", "contains", 0.9),
    ("cat_transportation", "GAS STATION", "contains", 0.85),
    ("cat_transportation", "SHELL", "contains", 0.8),
    ("cat_transportation", "BP ", "contains", 0.8),
    ("cat_shopping", "AMAZON", "contains", 0.9),
    ("cat_shopping", "WALMART", "contains", 0.85),
    ("cat_shopping", "TARGET", "contains", 0.85),
    ("cat_shopping", "EBAY", "contains", 0.9),
    ("cat_groceries", "GROCERY", "contains", 0.9),
    ("cat_groceries", "SUPERMARKET", "contains", 0.9),
    ("cat_groceries", "WHOLE FOODS", "contains", 0.95),
    ("cat_groceries", "SAFEWAY", "contains", 0.95),
    ("cat_dining", "RESTAURANT", "contains", 0.85),
    ("cat_dining", "STARBUCKS", "contains", 0.9),
    ("cat_dining", "MCDONALDS", "contains", 0.95),
    ("cat_dining", "PIZZA", "contains", 0.85),
    ("cat_entertainment", "NETFLIX", "contains", 0.95),
    ("cat_entertainment", "SPOTIFY", "contains", 0.95),
    ("cat_entertainment", "CINEMA", "contains", 0.9),
    ("cat_entertainment", "MOVIE", "contains", 0.8),
    ("cat_banking", "ATM", "starts_with", 0.95),
    ("cat_banking", "BANK FEE", "contains", 0.95),
    ("cat_banking", "OVERDRAFT", "contains", 0.95),
    ("cat_utilities", "ELECTRIC", "contains", 0.9),
    ("cat_utilities", "WATER DEPT", "contains", 0.95),
    ("cat_utilities", "INTERNET", "contains", 0.85),
    ("cat_utilities", "PHONE BILL", "contains", 0.9),
)

_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS categories (
        id          TEXT PRIMARY KEY,
        name        TEXT NOT NULL UNIQUE,
        description TEXT,
        color       TEXT NOT NULL,
        icon        TEXT NOT NULL,
        parent_id   TEXT REFERENCES categories(id),
        is_active   INTEGER NOT NULL DEFAULT 1,
        created_at  TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at  TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS category_rules (
        id               TEXT PRIMARY KEY,
        category_id      TEXT NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
        pattern          TEXT NOT NULL,
        pattern_type     TEXT NOT NULL
                         CHECK (pattern_type IN ('exact', 'contains', 'starts_with', 'regex')),
        confidence_score REAL NOT NULL DEFAULT 1.0
                         CHECK (confidence_score >= 0 AND confidence_score <= 1),
        usage_count      INTEGER NOT NULL DEFAULT 0,
        last_used_at     TEXT,
        created_by       TEXT NOT NULL CHECK (created_by IN ('user', 'system')),
        is_active        INTEGER NOT NULL DEFAULT 1,
        created_at       TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at       TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
)

_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_categories_parent ON categories(parent_id)",
    "CREATE INDEX IF NOT EXISTS idx_categories_active ON categories(is_active)",
    "CREATE INDEX IF NOT EXISTS idx_category_rules_category ON category_rules(category_id)",
    "CREATE INDEX IF NOT EXISTS idx_category_rules_pattern ON category_rules(pattern)",
    "CREATE INDEX IF NOT EXISTS idx_category_rules_active ON category_rules(is_active)",
    "CREATE INDEX IF NOT EXISTS idx_category_rules_confidence "
    "ON category_rules(confidence_score DESC)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_category ON transactions(category_id)",
)


def up(conn: sqlite3.Connection) -> None:
    exec_all(conn, _TABLES)
    add_column_if_missing(conn, "transactions", "category_id", "TEXT REFERENCES categories(id)")
    exec_all(conn, _INDEXES)

    conn.executemany(
        "INSERT OR IGNORE INTO categories (id, name, description, color, icon, is_active) "
        "VALUES (?, ?, ?, ?, ?, 1)",
        DEFAULT_CATEGORIES,
    )
    for category_id, pattern, pattern_type, confidence in DEFAULT_RULES:
        conn.execute(
            """
            INSERT INTO category_rules
                (id, category_id, pattern, pattern_type, confidence_score, usage_count,
                 created_by, is_active)
            SELECT ?, ?, ?, ?, ?, 0, 'system', 1
            WHERE NOT EXISTS (
                SELECT 1 FROM category_rules
                WHERE category_id = ? AND pattern = ? AND pattern_type = ?
            )
            """,
            (str(uuid.uuid4()), category_id, pattern, pattern_type, confidence,
             category_id, pattern, pattern_type),
        )


def down(conn: sqlite3.Connection) -> None:
    rebuild_transactions(conn, TRANSACTIONS_V2, COLUMNS)
    exec_all(conn, (
        "DROP TABLE IF EXISTS category_rules",
        "DROP TABLE IF EXISTS categories",
    ))


migration = Migration(
    3, "Add categories and category rules tables for intelligent categorization", up, down
)
