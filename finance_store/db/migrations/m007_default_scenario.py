"""Default "General" budget scenario."""

import sqlite3

from finance_store.db.migrations.base import Migration

DEFAULT_SCENARIO_ID = "default-scenario"


def up(conn: sqlite3.Connection) -> None:
    # only becomes active when no other scenario already is
    conn.execute(
        """
        INSERT OR IGNORE INTO budget_scenarios (id, name, description, is_active)
        VALUES (?, 'General', 'Default scenario for general budget management',
                CASE WHEN EXISTS (SELECT 1 FROM budget_scenarios WHERE is_active = 1)
                     THEN 0 ELSE 1 END)
        """,
        (DEFAULT_SCENARIO_ID,),
    )
    conn.execute(
        "UPDATE budgets SET scenario_id = ? WHERE scenario_id IS NULL", (DEFAULT_SCENARIO_ID,)
    )


def down(conn: sqlite3.Connection) -> None:
    conn.execute(
        "UPDATE budgets SET scenario_id = NULL WHERE scenario_id = ?", (DEFAULT_SCENARIO_ID,)
    )
    conn.execute("DELETE FROM budget_scenarios WHERE id = ?", (DEFAULT_SCENARIO_ID,))


migration = Migration(7, "Add default budget scenario", up, down)
