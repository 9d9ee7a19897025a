"""
Tests for derived metrics: financial summary, budget progress and historical
spending analysis. Date-dependent calculations are pinned with ``today``.
"""

import statistics
import unittest
from datetime import date

from finance_store.config import DatabaseConfig
from finance_store.db.analytics_repo import effective_period, months_before
from finance_store.db.database import Database
from finance_store.db.errors import ValidationFailed
from finance_store.models.budget import (
    INDEFINITE_END_DATE,
    Budget,
    BudgetPeriod,
    BudgetStatus,
)
from finance_store.models.category import Category
from finance_store.models.subscription import BillingFrequency, Subscription
from finance_store.models.transaction import Transaction, TransactionType
from finance_store.repository import FinanceRepository


def _make_repo() -> FinanceRepository:
    repo = FinanceRepository(Database(DatabaseConfig(filename=":memory:")))
    repo.initialize()
    return repo


def _expense(day: date, amount: float, category_id: str = "cat_groceries",
             description: str = "") -> Transaction:
    return Transaction(date=day, description=description or f"Spend {day} {amount}",
                       amount=-amount, type=TransactionType.EXPENSE, category_id=category_id)


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


def _monthly_subscription(amount: float, category_id: str = "cat_groceries") -> Subscription:
    return Subscription(name="Meal box", amount=amount, billing_frequency=BillingFrequency.MONTHLY,
                        next_payment_date=date(2024, 2, 1), category_id=category_id,
                        start_date=date(2023, 1, 1))


# ===========================================================================
# Summary
# ===========================================================================

class TestSummary(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()

    def tearDown(self):
        self.repo.close()

    def test_empty_store(self):
        summary = self.repo.calculate_summary()
        self.assertEqual(summary.total_income, 0)
        self.assertEqual(summary.total_expenses, 0)
        self.assertEqual(summary.net_amount, 0)
        self.assertEqual(summary.transaction_count, 0)

    def test_start_after_end_is_rejected_before_querying(self):
        self.repo.close()
        with self.assertRaises(ValidationFailed):
            self.repo.calculate_summary(date(2024, 2, 1), date(2024, 1, 1))

    def test_date_window(self):
        self.repo.create_many([
            _expense(date(2024, 1, 5), 10),
            _expense(date(2024, 2, 5), 20),
            Transaction(date=date(2024, 2, 6), description="Move money", amount=-500,
                        type=TransactionType.TRANSFER),
        ])
        summary = self.repo.calculate_summary("2024-02-01", "2024-02-29")
        self.assertEqual(summary.total_expenses, 20)
        self.assertEqual(summary.total_income, 0)
        self.assertEqual(summary.transaction_count, 2)


class TestEndToEnd(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()

    def tearDown(self):
        self.repo.close()

    def test_summary_and_history(self):
        for name in ("A", "B"):
            self.repo.create_category(Category(id=name, name=name, color="#000000", icon="tag"))
        self.repo.create_many([
            Transaction(date=date(2024, 1, 1), description="Salary", amount=100,
                        type=TransactionType.INCOME),
            _expense(date(2024, 1, 2), 50, category_id="A"),
            _expense(date(2024, 1, 3), 30, category_id="A"),
        ])

        summary = self.repo.calculate_summary()
        self.assertEqual(summary.total_income, 100)
        self.assertEqual(summary.total_expenses, 80)
        self.assertEqual(summary.net_amount, 20)
        self.assertEqual(summary.transaction_count, 3)

        analysis = self.repo.analyze_historical_spending("A", 1, today=date(2024, 1, 31))
        self.assertEqual(analysis.average_monthly, 80)
        self.assertEqual(analysis.max_monthly, 80)
        self.assertEqual(analysis.standard_deviation, 0)
        self.assertEqual(analysis.trend, 0)

        self.assertEqual(self.repo.analyze_historical_spending("B", 1, today=date(2024, 1, 31))
                         .average_monthly, 0)


# ===========================================================================
# Budget progress
# ===========================================================================

class TestBudgetProgress(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()
        self.budget = self.repo.create_budget(_sample_budget())

    def tearDown(self):
        self.repo.close()

    def _progress(self, today=date(2024, 1, 20)):
        return self.repo.calculate_budget_progress(self.budget.id, today=today)

    def test_at_risk(self):
        self.repo.create(_expense(date(2024, 1, 10), 850))
        progress = self._progress()
        self.assertEqual(progress.status, BudgetStatus.AT_RISK)
        self.assertAlmostEqual(progress.percentage_spent, 85.0)
        self.assertEqual(progress.remaining_amount, 150.0)

    def test_over_budget(self):
        self.repo.create(_expense(date(2024, 1, 10), 1000))
        progress = self._progress()
        self.assertEqual(progress.status, BudgetStatus.OVER_BUDGET)
        self.assertEqual(progress.remaining_amount, 0.0)

    def test_on_track_projection(self):
        self.repo.create_many([
            _expense(date(2024, 1, 3), 100),
            _expense(date(2024, 1, 9), 200),
            _expense(date(2023, 12, 31), 999),
            _expense(date(2024, 1, 5), 50, category_id="cat_dining"),
            Transaction(date=date(2024, 1, 4), description="Refund", amount=40,
                        type=TransactionType.INCOME, category_id="cat_groceries"),
        ])
        progress = self._progress(today=date(2024, 1, 11))

        self.assertEqual(progress.status, BudgetStatus.ON_TRACK)
        self.assertEqual(progress.current_spent, 300.0)
        self.assertEqual(progress.days_remaining, 21)
        self.assertAlmostEqual(progress.average_daily_spend, 30.0)
        self.assertAlmostEqual(progress.projected_spent, 930.0)
        self.assertEqual(progress.period_start, date(2024, 1, 1))
        self.assertEqual(progress.period_end, date(2024, 1, 31))

    def test_after_period_end(self):
        self.repo.create(_expense(date(2024, 1, 10), 310))
        progress = self._progress(today=date(2024, 3, 1))
        self.assertEqual(progress.days_remaining, 0)
        self.assertEqual(progress.projected_spent, 310.0)
        self.assertAlmostEqual(progress.average_daily_spend, 310.0 / 31)

    def test_subscription_allocation(self):
        self.repo.create_subscription(_monthly_subscription(30.44))
        self.repo.create(_expense(date(2024, 1, 10), 300))
        progress = self._progress()
        self.assertAlmostEqual(progress.subscription_allocated, 31.0)
        self.assertAlmostEqual(progress.variable_spent, 269.0)

    def test_missing_budget(self):
        self.assertIsNone(self.repo.calculate_budget_progress("nope", today=date(2024, 1, 1)))

    def test_zero_amount_budget(self):
        budget = self.repo.create_budget(_sample_budget(amount=0.0))
        progress = self.repo.calculate_budget_progress(budget.id, today=date(2024, 1, 2))
        self.assertEqual(progress.percentage_spent, 0.0)
        self.assertEqual(progress.status, BudgetStatus.ON_TRACK)


class TestIndefiniteBudgets(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()
        self.repo.create_many([
            _expense(date(2024, 1, 20), 100),
            _expense(date(2024, 2, 10), 200),
        ])

    def tearDown(self):
        self.repo.close()

    def test_monthly_uses_current_month(self):
        budget = self.repo.create_budget(_sample_budget(start_date=date(2020, 1, 1),
                                                        end_date=INDEFINITE_END_DATE))
        progress = self.repo.calculate_budget_progress(budget.id, today=date(2024, 2, 15))
        self.assertEqual((progress.period_start, progress.period_end),
                         (date(2024, 2, 1), date(2024, 2, 29)))
        self.assertEqual(progress.current_spent, 200.0)

    def test_yearly_uses_current_year(self):
        budget = self.repo.create_budget(_sample_budget(period=BudgetPeriod.YEARLY,
                                                        start_date=date(2020, 1, 1),
                                                        end_date=INDEFINITE_END_DATE))
        progress = self.repo.calculate_budget_progress(budget.id, today=date(2024, 2, 15))
        self.assertEqual((progress.period_start, progress.period_end),
                         (date(2024, 1, 1), date(2024, 12, 31)))
        self.assertEqual(progress.current_spent, 300.0)

    def test_effective_period_of_bounded_budget(self):
        budget = _sample_budget()
        self.assertEqual(effective_period(budget, date(2030, 6, 1)),
                         (date(2024, 1, 1), date(2024, 1, 31)))


# ===========================================================================
# Historical analysis
# ===========================================================================

class TestHistoricalSpending(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()

    def tearDown(self):
        self.repo.close()

    def test_empty_window(self):
        analysis = self.repo.analyze_historical_spending("cat_groceries", 6,
                                                         today=date(2024, 1, 15))
        self.assertEqual(analysis.period_months, 6)
        self.assertEqual(analysis.average_monthly, 0)
        self.assertEqual(analysis.confidence, 0)

    def test_invalid_months(self):
        with self.assertRaises(ValidationFailed):
            self.repo.analyze_historical_spending("cat_groceries", 0)

    def test_three_months(self):
        self.repo.create_many([
            _expense(date(2023, 10, 5), 100),
            _expense(date(2023, 11, 5), 150),
            _expense(date(2023, 11, 20), 50),
            _expense(date(2023, 12, 5), 300),
            _expense(date(2023, 6, 1), 5000),
        ])
        self.repo.create_subscription(_monthly_subscription(40.0))

        analysis = self.repo.analyze_historical_spending("cat_groceries", 6,
                                                         today=date(2024, 1, 15))

        stdev = statistics.pstdev([100, 200, 300])
        self.assertAlmostEqual(analysis.average_monthly, 200.0)
        self.assertEqual(analysis.min_monthly, 0.0)
        self.assertEqual(analysis.max_monthly, 300.0)
        self.assertAlmostEqual(analysis.standard_deviation, stdev)
        self.assertAlmostEqual(analysis.trend, 150.0)
        self.assertAlmostEqual(analysis.subscription_costs, 40.0)
        self.assertAlmostEqual(analysis.variable_spending, 160.0)
        expected_confidence = (3 / 6 + 4 / 20 + (1 - stdev / 200)) / 3
        self.assertAlmostEqual(analysis.confidence, expected_confidence)

    def test_months_before_clamps_day(self):
        self.assertEqual(months_before(date(2024, 3, 31), 1), date(2024, 2, 29))
        self.assertEqual(months_before(date(2024, 1, 15), 6), date(2023, 7, 15))
        self.assertEqual(months_before(date(2024, 1, 31), 13), date(2022, 12, 31))


if __name__ == "__main__":
    unittest.main()
