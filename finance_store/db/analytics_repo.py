"""
Derived financial metrics computed from stored rows.

All date-dependent calculations take an optional ``today`` so that the
effective budget window and the lookback window can be pinned in tests.
"""

from __future__ import annotations

import calendar
import statistics
from datetime import date
from typing import Optional

from finance_store.db.budget_repo import BudgetRepository
from finance_store.db.database import Database
from finance_store.db.errors import ValidationFailed, database_errors
from finance_store.db.subscription_repo import SubscriptionRepository
from finance_store.models.budget import (
    Budget,
    BudgetPeriod,
    BudgetProgress,
    BudgetStatus,
    SpendingAnalysis,
)
from finance_store.models.fields import DateLike, to_date
from finance_store.models.subscription import DAYS_PER_MONTH
from finance_store.models.transaction import FinancialSummary

SUMMARY_SQL = """
SELECT
    COALESCE(SUM(CASE WHEN type = 'income' THEN amount ELSE 0 END), 0) AS total_income,
    COALESCE(SUM(CASE WHEN type = 'expense' THEN ABS(amount) ELSE 0 END), 0) AS total_expenses,
    COUNT(*) AS transaction_count
FROM transactions
"""

CATEGORY_SPEND_SQL = """
SELECT COALESCE(SUM(ABS(amount)), 0) AS total_spent
FROM transactions
WHERE category_id = ? AND type = 'expense' AND date >= ? AND date <= ?
"""


def months_before(day: date, months: int) -> date:
    """Same day-of-month ``months`` earlier, clamped to the target month's length."""
    index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def effective_period(budget: Budget, today: date) -> tuple[date, date]:
    """Window used for progress: the stored dates, or the current month/year if open-ended."""
    if not budget.is_indefinite:
        return budget.start_date, budget.end_date
    if budget.period == BudgetPeriod.MONTHLY:
        last = calendar.monthrange(today.year, today.month)[1]
        return date(today.year, today.month, 1), date(today.year, today.month, last)
    return date(today.year, 1, 1), date(today.year, 12, 31)


class AnalyticsRepository:
    def __init__(
        self,
        db: Database,
        budgets: Optional[BudgetRepository] = None,
        subscriptions: Optional[SubscriptionRepository] = None,
    ):
        self._db = db
        self._budgets = budgets or BudgetRepository(db)
        self._subscriptions = subscriptions or SubscriptionRepository(db)

    # -- Summary ---------------------------------------------------------------

    def calculate_summary(
        self, start: Optional[DateLike] = None, end: Optional[DateLike] = None
    ) -> FinancialSummary:
        start_d, end_d = to_date(start), to_date(end)
        if start_d and end_d and start_d > end_d:
            raise ValidationFailed(
                "Invalid date range: start date must be before or equal to end date",
                "calculate_summary validation",
                [start_d.isoformat(), end_d.isoformat()],
            )

        clauses, params = [], []
        if start_d:
            clauses.append("date >= ?")
            params.append(start_d.isoformat())
        if end_d:
            clauses.append("date <= ?")
            params.append(end_d.isoformat())
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        with database_errors("calculate financial summary", "SELECT SUM FROM transactions",
                             params):
            row = self._db.fetchone(SUMMARY_SQL + where, tuple(params))

        if not row:
            return FinancialSummary()
        income = float(row["total_income"])
        expenses = float(row["total_expenses"])
        return FinancialSummary(
            total_income=income,
            total_expenses=expenses,
            net_amount=income - expenses,
            transaction_count=int(row["transaction_count"]),
        )

    # -- Budget progress -------------------------------------------------------

    def _category_spend(self, category_id: str, start: date, end: date) -> float:
        params = (category_id, start.isoformat(), end.isoformat())
        with database_errors("calculate category spend", "SELECT budget progress calculations",
                             params):
            row = self._db.fetchone(CATEGORY_SPEND_SQL, params)
        return float(row["total_spent"]) if row else 0.0

    def calculate_budget_progress(
        self, budget_id: str, today: Optional[date] = None
    ) -> Optional[BudgetProgress]:
        budget = self._budgets.find_budget_by_id(budget_id)
        if budget is None:
            return None
        today = today or date.today()
        start, end = effective_period(budget, today)

        spent = self._category_spend(budget.category_id, start, end)
        remaining = max(0.0, budget.amount - spent)
        percentage = spent / budget.amount * 100 if budget.amount > 0 else 0.0

        # whole-day counts, both ends inclusive
        days_remaining = max(0, (end - today).days + 1)
        total_days = (end - start).days + 1
        days_elapsed = max(1, total_days - days_remaining)
        average_daily = spent / days_elapsed
        projected = spent + average_daily * days_remaining if days_remaining > 0 else spent

        monthly_subs = self._subscriptions.monthly_cost_for_category(budget.category_id)
        allocated = monthly_subs * (total_days / DAYS_PER_MONTH)

        return BudgetProgress(
            budget_id=budget.id,
            budget=budget,
            period_start=start,
            period_end=end,
            current_spent=spent,
            remaining_amount=remaining,
            percentage_spent=percentage,
            status=BudgetStatus.for_percentage(percentage),
            projected_spent=projected,
            days_remaining=days_remaining,
            average_daily_spend=average_daily,
            subscription_allocated=allocated,
            variable_spent=max(0.0, spent - allocated),
        )

    # -- Historical analysis ---------------------------------------------------

    def analyze_historical_spending(
        self, category_id: str, months: int, today: Optional[date] = None
    ) -> SpendingAnalysis:
        """Month-bucketed expense statistics for one category over the last ``months``."""
        if months < 1:
            raise ValidationFailed(f"months must be >= 1, got {months}")
        today = today or date.today()
        window = (category_id, months_before(today, months).isoformat(), today.isoformat())

        with database_errors("analyze historical spending", "SELECT historical spending analysis",
                             [category_id, months]):
            rows = self._db.fetchall(
                """SELECT amount, date FROM transactions
                   WHERE category_id = ? AND type = 'expense' AND date >= ? AND date <= ?
                   ORDER BY date ASC""",
                window,
            )
        if not rows:
            return SpendingAnalysis(category_id=category_id, period_months=months)

        buckets: dict[str, float] = {}
        for r in rows:
            key = str(r["date"])[:7]
            buckets[key] = buckets.get(key, 0.0) + abs(r["amount"])
        amounts = list(buckets.values())

        average = statistics.fmean(amounts)
        stdev = statistics.pstdev(amounts)
        trend = 0.0
        if len(amounts) >= 2:
            half = len(amounts) // 2
            trend = statistics.fmean(amounts[half:]) - statistics.fmean(amounts[:half])

        subscription_costs = self._subscriptions.monthly_cost_for_category(category_id)
        factors = (
            min(1.0, len(amounts) / 6),
            min(1.0, len(rows) / 20),
            max(0.0, 1 - stdev / max(1.0, average)),
        )
        confidence = sum(factors) / len(factors)

        return SpendingAnalysis(
            category_id=category_id,
            period_months=months,
            average_monthly=average,
            min_monthly=min(*amounts, 0.0),
            max_monthly=max(*amounts, 0.0),
            standard_deviation=stdev,
            trend=trend,
            subscription_costs=subscription_costs,
            variable_spending=max(0.0, average - subscription_costs),
            confidence=max(0.1, min(1.0, confidence)),
        )
