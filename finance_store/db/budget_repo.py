"""Repository for ``budgets``, ``budget_scenarios`` and ``budget_alerts``."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from finance_store.db.database import Database
from finance_store.db.errors import OperationFailed, ValidationFailed, database_errors
from finance_store.db.helpers import coerce_update, insert_row, update_row
from finance_store.models.budget import Budget, BudgetAlert, BudgetScenario
from finance_store.models.fields import DateLike, date_to_db, now_iso, to_date
from finance_store.models.updates import BudgetScenarioUpdate, BudgetUpdate

logger = logging.getLogger(__name__)


def _check_budget(start: date, end: date, amount: float) -> None:
    if start > end:
        raise ValidationFailed(f"Budget start date {start} is after end date {end}")
    if amount < 0:
        raise ValidationFailed(f"Budget amount must be >= 0, got {amount}")


class BudgetRepository:
    """Budgets plus the scenarios that group them and the alerts raised against them."""

    def __init__(self, db: Database):
        self._db = db

    def _budgets(self, action: str, sql: str, params: tuple = ()) -> list[Budget]:
        with database_errors(action, " ".join(sql.split()), list(params)):
            rows = self._db.fetchall(sql, params)
        return [Budget.from_row(r) for r in rows]

    # -- Budgets: create / read ------------------------------------------------

    def create_budget(self, budget: Budget) -> Budget:
        _check_budget(budget.start_date, budget.end_date, budget.amount)
        with database_errors("create budget", "INSERT INTO budgets", [budget.id, budget.name]):
            with self._db.transaction() as conn:
                insert_row(conn, "budgets", budget.to_dict())
        logger.info(f"Created budget {budget.id}: {budget.name}")
        return budget

    def find_all_budgets(self) -> list[Budget]:
        return self._budgets("fetch budgets", "SELECT * FROM budgets ORDER BY created_at DESC")

    def find_budget_by_id(self, budget_id: str) -> Optional[Budget]:
        found = self._budgets("fetch budget", "SELECT * FROM budgets WHERE id = ?", (budget_id,))
        return found[0] if found else None

    def find_budgets_by_category(self, category_id: str) -> list[Budget]:
        return self._budgets(
            "fetch budgets by category",
            "SELECT * FROM budgets WHERE category_id = ? ORDER BY created_at DESC",
            (category_id,),
        )

    def find_active_budgets(self) -> list[Budget]:
        return self._budgets(
            "fetch active budgets",
            "SELECT * FROM budgets WHERE is_active = 1 ORDER BY created_at DESC",
        )

    def find_budgets_by_active_scenario(self) -> list[Budget]:
        """Active budgets of the active scenario, or scenario-less budgets when none is active."""
        with database_errors("fetch active scenario", "SELECT FROM budget_scenarios"):
            active = self._db.fetchone(
                "SELECT id FROM budget_scenarios WHERE is_active = 1 LIMIT 1"
            )
        if active:
            return self._budgets(
                "fetch budgets by active scenario",
                """SELECT * FROM budgets
                   WHERE is_active = 1 AND scenario_id = ?
                   ORDER BY created_at DESC""",
                (active["id"],),
            )
        return self._budgets(
            "fetch budgets without scenario",
            """SELECT * FROM budgets
               WHERE is_active = 1 AND scenario_id IS NULL
               ORDER BY created_at DESC""",
        )

    def find_budgets_by_period(self, start: DateLike, end: DateLike) -> list[Budget]:
        """Budgets whose stored window overlaps ``[start, end]``."""
        s, e = date_to_db(start), date_to_db(end)
        return self._budgets(
            "fetch budgets by period",
            """SELECT * FROM budgets
               WHERE (start_date <= ? AND end_date >= ?)
                  OR (start_date >= ? AND start_date <= ?)
               ORDER BY start_date ASC""",
            (e, s, s, e),
        )

    def find_budgets_by_scenario(self, scenario_id: str) -> list[Budget]:
        return self._budgets(
            "fetch budgets by scenario",
            "SELECT * FROM budgets WHERE scenario_id = ? ORDER BY created_at DESC",
            (scenario_id,),
        )

    # -- Budgets: update / delete ----------------------------------------------

    def update_budget(
        self, budget_id: str, update: Optional[BudgetUpdate] = None, **fields: Any
    ) -> Optional[Budget]:
        payload = coerce_update(BudgetUpdate, update, fields)
        existing = self.find_budget_by_id(budget_id)
        if existing is None:
            return None
        columns = payload.to_columns()
        _check_budget(
            to_date(columns.get("start_date", existing.start_date)),  # type: ignore[arg-type]
            to_date(columns.get("end_date", existing.end_date)),  # type: ignore[arg-type]
            columns.get("amount", existing.amount),
        )
        with database_errors("update budget", "UPDATE budgets", [budget_id, columns]):
            with self._db.transaction() as conn:
                update_row(conn, "budgets", budget_id, columns)
        return self.find_budget_by_id(budget_id)

    def delete_budget(self, budget_id: str) -> bool:
        """Remove a budget and its alerts atomically."""
        with database_errors("delete budget", "DELETE CASCADE budget and related data",
                             [budget_id]):
            with self._db.transaction() as conn:
                conn.execute("DELETE FROM budget_alerts WHERE budget_id = ?", (budget_id,))
                cursor = conn.execute("DELETE FROM budgets WHERE id = ?", (budget_id,))
        return cursor.rowcount > 0

    # -- Scenarios -------------------------------------------------------------

    def _hydrate(self, scenario: BudgetScenario) -> BudgetScenario:
        scenario.budgets = self.find_budgets_by_scenario(scenario.id)
        return scenario

    def create_budget_scenario(self, scenario: BudgetScenario) -> BudgetScenario:
        if not scenario.name or not scenario.name.strip():
            raise ValidationFailed("Scenario name must not be empty")
        with database_errors("create budget scenario", "INSERT INTO budget_scenarios",
                             [scenario.id, scenario.name]):
            with self._db.transaction() as conn:
                if scenario.is_active:
                    # keep at most one active scenario
                    conn.execute("UPDATE budget_scenarios SET is_active = 0, updated_at = ?",
                                 (now_iso(),))
                insert_row(conn, "budget_scenarios", scenario.to_dict())
        scenario.budgets = []
        return scenario

    def find_all_budget_scenarios(self) -> list[BudgetScenario]:
        with database_errors("fetch budget scenarios", "SELECT FROM budget_scenarios"):
            rows = self._db.fetchall("SELECT * FROM budget_scenarios ORDER BY created_at DESC")
        return [self._hydrate(BudgetScenario.from_row(r)) for r in rows]

    def find_budget_scenario_by_id(self, scenario_id: str) -> Optional[BudgetScenario]:
        with database_errors("fetch budget scenario", "SELECT FROM budget_scenarios WHERE id = ?",
                             [scenario_id]):
            row = self._db.fetchone("SELECT * FROM budget_scenarios WHERE id = ?",
                                    (scenario_id,))
        return self._hydrate(BudgetScenario.from_row(row)) if row else None

    def update_budget_scenario(
        self, scenario_id: str, update: Optional[BudgetScenarioUpdate] = None, **fields: Any
    ) -> Optional[BudgetScenario]:
        columns = coerce_update(BudgetScenarioUpdate, update, fields).to_columns()
        if self.find_budget_scenario_by_id(scenario_id) is None:
            return None
        with database_errors("update budget scenario", "UPDATE budget_scenarios",
                             [scenario_id, columns]):
            with self._db.transaction() as conn:
                update_row(conn, "budget_scenarios", scenario_id, columns)
        return self.find_budget_scenario_by_id(scenario_id)

    def delete_budget_scenario(self, scenario_id: str) -> bool:
        """Delete a scenario. Its budgets survive with ``scenario_id`` cleared."""
        with database_errors("delete budget scenario", "DELETE FROM budget_scenarios",
                             [scenario_id]):
            with self._db.transaction() as conn:
                conn.execute(
                    "UPDATE budgets SET scenario_id = NULL, updated_at = ? WHERE scenario_id = ?",
                    (now_iso(), scenario_id),
                )
                cursor = conn.execute("DELETE FROM budget_scenarios WHERE id = ?",
                                      (scenario_id,))
        return cursor.rowcount > 0

    def activate_budget_scenario(self, scenario_id: str) -> None:
        """Make one scenario the only active one."""
        with database_errors("activate budget scenario", "UPDATE budget_scenarios",
                             [scenario_id]):
            with self._db.transaction() as conn:
                exists = conn.execute(
                    "SELECT 1 FROM budget_scenarios WHERE id = ?", (scenario_id,)
                ).fetchone()
                if exists is None:
                    raise OperationFailed(
                        f"Budget scenario not found: {scenario_id}",
                        "UPDATE budget_scenarios", [scenario_id],
                    )
                now = now_iso()
                conn.execute("UPDATE budget_scenarios SET is_active = 0, updated_at = ?", (now,))
                conn.execute(
                    "UPDATE budget_scenarios SET is_active = 1, updated_at = ? WHERE id = ?",
                    (now, scenario_id),
                )
        logger.info(f"Activated budget scenario {scenario_id}")

    # -- Alerts ----------------------------------------------------------------

    def create_budget_alert(self, alert: BudgetAlert) -> BudgetAlert:
        pct = alert.threshold_percentage
        if pct is not None and not 0 <= pct <= 100:
            raise ValidationFailed(f"Threshold percentage must be within [0, 100], got {pct}")
        with database_errors("create budget alert", "INSERT INTO budget_alerts",
                             [alert.budget_id, alert.alert_type.value]):
            with self._db.transaction() as conn:
                insert_row(conn, "budget_alerts", alert.to_dict())
        return alert

    def find_budget_alerts(self, budget_id: Optional[str] = None) -> list[BudgetAlert]:
        if budget_id is None:
            sql, params = "SELECT * FROM budget_alerts ORDER BY created_at DESC", ()
        else:
            sql = "SELECT * FROM budget_alerts WHERE budget_id = ? ORDER BY created_at DESC"
            params = (budget_id,)
        with database_errors("fetch budget alerts", "SELECT FROM budget_alerts", list(params)):
            rows = self._db.fetchall(sql, params)
        return [BudgetAlert.from_row(r) for r in rows]

    def find_unread_budget_alerts(self) -> list[BudgetAlert]:
        with database_errors("fetch unread budget alerts", "SELECT FROM budget_alerts"):
            rows = self._db.fetchall(
                "SELECT * FROM budget_alerts WHERE is_read = 0 ORDER BY created_at DESC"
            )
        return [BudgetAlert.from_row(r) for r in rows]

    def mark_budget_alert_as_read(self, alert_id: str) -> bool:
        with database_errors("mark budget alert as read", "UPDATE budget_alerts", [alert_id]):
            with self._db.transaction() as conn:
                changed = update_row(conn, "budget_alerts", alert_id, {"is_read": 1}, touch=False)
        return changed > 0

    def delete_budget_alert(self, alert_id: str) -> bool:
        with database_errors("delete budget alert", "DELETE FROM budget_alerts", [alert_id]):
            with self._db.transaction() as conn:
                cursor = conn.execute("DELETE FROM budget_alerts WHERE id = ?", (alert_id,))
        return cursor.rowcount > 0
