"""Budget scenarios, budgets and budget alerts."""

import sqlite3

from finance_store.db.migrations.base import Migration, exec_all

_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS budget_scenarios (
        id          TEXT PRIMARY KEY CHECK (id != ''),
        name        TEXT NOT NULL CHECK (name != ''),
        description TEXT,
        is_active   INTEGER NOT NULL DEFAULT 0 CHECK (is_active IN (0, 1)),
        created_at  TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at  TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS budgets (
        id               TEXT PRIMARY KEY CHECK (id != ''),
        name             TEXT NOT NULL CHECK (name != ''),
        description      TEXT,
        category_id      TEXT NOT NULL CHECK (category_id != ''),
        amount           REAL NOT NULL CHECK (amount >= 0),
        currency         TEXT NOT NULL DEFAULT 'NOK' CHECK (currency != ''),
        period           TEXT NOT NULL CHECK (period IN ('monthly', 'yearly')),
        start_date       TEXT NOT NULL,
        end_date         TEXT NOT NULL,
        is_active        INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0, 1)),
        alert_thresholds TEXT,
        scenario_id      TEXT,
        created_at       TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at       TEXT DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE CASCADE,
        FOREIGN KEY (scenario_id) REFERENCES budget_scenarios(id) ON DELETE SET NULL,
        CHECK (start_date <= end_date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS budget_alerts (
        id                   TEXT PRIMARY KEY CHECK (id != ''),
        budget_id            TEXT NOT NULL CHECK (budget_id != ''),
        alert_type           TEXT NOT NULL CHECK (alert_type IN ('threshold', 'projection', 'exceeded')),
        threshold_percentage INTEGER
                             CHECK (threshold_percentage IS NULL
                                    OR (threshold_percentage >= 0 AND threshold_percentage <= 100)),
        message              TEXT NOT NULL CHECK (message != ''),
        is_read              INTEGER NOT NULL DEFAULT 0 CHECK (is_read IN (0, 1)),
        created_at           TEXT DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (budget_id) REFERENCES budgets(id) ON DELETE CASCADE
    )
    """,
)

_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_budgets_category ON budgets(category_id)",
    "CREATE INDEX IF NOT EXISTS idx_budgets_period ON budgets(start_date, end_date)",
    "CREATE INDEX IF NOT EXISTS idx_budgets_active ON budgets(is_active)",
    "CREATE INDEX IF NOT EXISTS idx_budgets_scenario ON budgets(scenario_id)",
    "CREATE INDEX IF NOT EXISTS idx_budget_alerts_budget ON budget_alerts(budget_id)",
    "CREATE INDEX IF NOT EXISTS idx_budget_alerts_unread ON budget_alerts(is_read, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_budget_scenarios_active ON budget_scenarios(is_active)",
)


def up(conn: sqlite3.Connection) -> None:
    exec_all(conn, _TABLES)
    exec_all(conn, _INDEXES)


def down(conn: sqlite3.Connection) -> None:
    exec_all(conn, (
        "DROP TABLE IF EXISTS budget_alerts",
        "DROP TABLE IF EXISTS budgets",
        "DROP TABLE IF EXISTS budget_scenarios",
    ))


migration = Migration(6, "Add budget management tables", up, down)
