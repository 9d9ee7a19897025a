"""Tests for budgets, budget scenarios and budget alerts."""

import unittest
from datetime import date

from finance_store.config import DatabaseConfig
from finance_store.db.database import Database
from finance_store.db.errors import OperationFailed, ValidationFailed
from finance_store.db.migrations.m007_default_scenario import DEFAULT_SCENARIO_ID
from finance_store.models.budget import (
    AlertType,
    Budget,
    BudgetAlert,
    BudgetPeriod,
    BudgetScenario,
)
from finance_store.models.updates import BudgetUpdate
from finance_store.repository import FinanceRepository


def _make_repo() -> FinanceRepository:
    repo = FinanceRepository(Database(DatabaseConfig(filename=":memory:")))
    repo.initialize()
    return repo


def _sample_budget(**overrides) -> Budget:
    defaults = dict(
        name="Food",
        category_id="cat_groceries",
        amount=1000.0,
        period=BudgetPeriod.MONTHLY,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 31),
    )
    defaults.update(overrides)
    return Budget(**defaults)


def _active_ids(repo: FinanceRepository) -> list[str]:
    return [s.id for s in repo.find_all_budget_scenarios() if s.is_active]


# ===========================================================================
# Budgets
# ===========================================================================

class TestBudgets(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()

    def tearDown(self):
        self.repo.close()

    def test_create_and_fetch(self):
        budget = self.repo.create_budget(_sample_budget(alert_thresholds=[50, 80, 100]))
        got = self.repo.find_budget_by_id(budget.id)
        self.assertEqual(got.name, "Food")
        self.assertEqual(got.period, BudgetPeriod.MONTHLY)
        self.assertEqual(got.start_date, date(2024, 1, 1))
        self.assertEqual(got.end_date, date(2024, 1, 31))
        self.assertEqual(got.alert_thresholds, [50, 80, 100])
        self.assertTrue(got.is_active)
        self.assertIsNone(self.repo.find_budget_by_id("nope"))

    def test_start_after_end(self):
        with self.assertRaises(ValidationFailed):
            self.repo.create_budget(_sample_budget(start_date=date(2024, 2, 1)))

    def test_negative_amount(self):
        with self.assertRaises(ValidationFailed):
            self.repo.create_budget(_sample_budget(amount=-1.0))

    def test_lookups(self):
        food = self.repo.create_budget(_sample_budget())
        fun = self.repo.create_budget(_sample_budget(
            name="Fun", category_id="cat_entertainment",
            start_date=date(2024, 3, 1), end_date=date(2024, 3, 31)))
        off = self.repo.create_budget(_sample_budget(name="Off", is_active=False))

        self.assertEqual({b.id for b in self.repo.find_all_budgets()}, {food.id, fun.id, off.id})
        self.assertEqual({b.id for b in self.repo.find_active_budgets()}, {food.id, fun.id})
        self.assertEqual([b.id for b in self.repo.find_budgets_by_category("cat_entertainment")],
                         [fun.id])

        overlapping = self.repo.find_budgets_by_period(date(2024, 1, 15), date(2024, 2, 15))
        self.assertEqual({b.id for b in overlapping}, {food.id, off.id})
        inside = self.repo.find_budgets_by_period(date(2024, 2, 20), date(2024, 4, 30))
        self.assertEqual([b.id for b in inside], [fun.id])

    def test_update(self):
        budget = self.repo.create_budget(_sample_budget())
        got = self.repo.update_budget(budget.id, BudgetUpdate(amount=1200.0))
        self.assertEqual(got.amount, 1200.0)
        self.assertEqual(got.name, "Food")
        self.assertIsNone(self.repo.update_budget("nope", amount=1.0))

    def test_update_checks_merged_dates(self):
        budget = self.repo.create_budget(_sample_budget())
        with self.assertRaises(ValidationFailed):
            self.repo.update_budget(budget.id, end_date=date(2023, 12, 31))
        self.assertEqual(self.repo.find_budget_by_id(budget.id).end_date, date(2024, 1, 31))

    def test_update_rejects_null_for_required_columns(self):
        budget = self.repo.create_budget(_sample_budget())
        for field in ("amount", "start_date", "end_date", "period", "name",
                      "category_id", "currency"):
            with self.subTest(field=field):
                with self.assertRaises(ValidationFailed):
                    self.repo.update_budget(budget.id, **{field: None})
        stored = self.repo.find_budget_by_id(budget.id)
        self.assertEqual(stored.amount, 1000.0)
        self.assertEqual(stored.end_date, date(2024, 1, 31))

    def test_delete_removes_alerts(self):
        budget = self.repo.create_budget(_sample_budget())
        self.repo.create_budget_alert(BudgetAlert(
            budget_id=budget.id, alert_type=AlertType.THRESHOLD, message="50% used",
            threshold_percentage=50))

        self.assertTrue(self.repo.delete_budget(budget.id))
        self.assertEqual(self.repo.find_budget_alerts(), [])
        self.assertFalse(self.repo.delete_budget(budget.id))


# ===========================================================================
# Scenarios
# ===========================================================================

class TestScenarios(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()

    def tearDown(self):
        self.repo.close()

    def test_default_scenario(self):
        self.assertEqual(_active_ids(self.repo), [DEFAULT_SCENARIO_ID])

    def test_activate_leaves_exactly_one_active(self):
        created = [self.repo.create_budget_scenario(BudgetScenario(name=f"Plan {i}"))
                   for i in range(3)]
        self.repo.activate_budget_scenario(created[1].id)
        self.assertEqual(_active_ids(self.repo), [created[1].id])

        self.repo.activate_budget_scenario(created[2].id)
        self.assertEqual(_active_ids(self.repo), [created[2].id])

    def test_activate_missing_changes_nothing(self):
        with self.assertRaises(OperationFailed):
            self.repo.activate_budget_scenario("nope")
        self.assertEqual(_active_ids(self.repo), [DEFAULT_SCENARIO_ID])

    def test_create_active_deactivates_others(self):
        lean = self.repo.create_budget_scenario(BudgetScenario(name="Lean", is_active=True))
        self.assertEqual(_active_ids(self.repo), [lean.id])

    def test_blank_name(self):
        with self.assertRaises(ValidationFailed):
            self.repo.create_budget_scenario(BudgetScenario(name=" "))

    def test_scenario_carries_its_budgets(self):
        plan = self.repo.create_budget_scenario(BudgetScenario(name="Plan"))
        self.repo.create_budget(_sample_budget(scenario_id=plan.id, amount=400.0))
        self.repo.create_budget(_sample_budget(scenario_id=plan.id, amount=600.0,
                                               category_id="cat_dining"))

        got = self.repo.find_budget_scenario_by_id(plan.id)
        self.assertEqual(len(got.budgets), 2)
        self.assertEqual(got.total_budgeted, 1000.0)
        self.assertEqual(len(self.repo.find_budgets_by_scenario(plan.id)), 2)

    def test_budgets_by_active_scenario(self):
        plan = self.repo.create_budget_scenario(BudgetScenario(name="Plan"))
        in_default = self.repo.create_budget(_sample_budget(scenario_id=DEFAULT_SCENARIO_ID))
        in_plan = self.repo.create_budget(_sample_budget(scenario_id=plan.id))
        loose = self.repo.create_budget(_sample_budget())

        self.assertEqual([b.id for b in self.repo.find_budgets_by_active_scenario()],
                         [in_default.id])
        self.repo.activate_budget_scenario(plan.id)
        self.assertEqual([b.id for b in self.repo.find_budgets_by_active_scenario()],
                         [in_plan.id])

        # no active scenario left: fall back to budgets outside any scenario
        self.repo.delete_budget_scenario(plan.id)
        found = {b.id for b in self.repo.find_budgets_by_active_scenario()}
        self.assertEqual(found, {in_plan.id, loose.id})

    def test_update_and_delete(self):
        plan = self.repo.create_budget_scenario(BudgetScenario(name="Plan"))
        budget = self.repo.create_budget(_sample_budget(scenario_id=plan.id))

        got = self.repo.update_budget_scenario(plan.id, description="Tight month")
        self.assertEqual(got.description, "Tight month")
        self.assertEqual(got.name, "Plan")
        self.assertIsNone(self.repo.update_budget_scenario("nope", name="x"))

        self.assertTrue(self.repo.delete_budget_scenario(plan.id))
        self.assertIsNone(self.repo.find_budget_scenario_by_id(plan.id))
        self.assertIsNone(self.repo.find_budget_by_id(budget.id).scenario_id)
        self.assertFalse(self.repo.delete_budget_scenario(plan.id))


# ===========================================================================
# Alerts
# ===========================================================================

class TestAlerts(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()
        self.budget = self.repo.create_budget(_sample_budget())

    def tearDown(self):
        self.repo.close()

    def _alert(self, **overrides) -> BudgetAlert:
        defaults = dict(budget_id=self.budget.id, alert_type=AlertType.THRESHOLD,
                        message="80% of budget used", threshold_percentage=80)
        defaults.update(overrides)
        return self.repo.create_budget_alert(BudgetAlert(**defaults))

    def test_unread_then_read(self):
        alert = self._alert()
        self.assertEqual([a.id for a in self.repo.find_unread_budget_alerts()], [alert.id])

        self.assertTrue(self.repo.mark_budget_alert_as_read(alert.id))
        self.assertEqual(self.repo.find_unread_budget_alerts(), [])
        self.assertTrue(self.repo.find_budget_alerts(self.budget.id)[0].is_read)
        self.assertFalse(self.repo.mark_budget_alert_as_read("nope"))

    def test_filter_by_budget(self):
        other = self.repo.create_budget(_sample_budget(name="Other"))
        self._alert()
        self._alert(budget_id=other.id, alert_type=AlertType.EXCEEDED, message="Over",
                    threshold_percentage=None)
        self.assertEqual(len(self.repo.find_budget_alerts()), 2)
        self.assertEqual(len(self.repo.find_budget_alerts(other.id)), 1)

    def test_threshold_range(self):
        with self.assertRaises(ValidationFailed):
            self._alert(threshold_percentage=150)

    def test_delete(self):
        alert = self._alert()
        self.assertTrue(self.repo.delete_budget_alert(alert.id))
        self.assertFalse(self.repo.delete_budget_alert(alert.id))


if __name__ == "__main__":
    unittest.main()
