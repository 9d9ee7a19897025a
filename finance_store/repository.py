"""Finance repository: the single entry point business code uses for persistence.

Composes the per-table repositories over one injected ``Database`` and owns
the store lifecycle (open + migrate on ``initialize()``, ``close()``).
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional

from finance_store.db.analytics_repo import AnalyticsRepository
from finance_store.db.budget_repo import BudgetRepository
from finance_store.db.category_repo import CategoryRepository
from finance_store.db.database import Database, get_db
from finance_store.db.subscription_repo import SubscriptionRepository
from finance_store.db.transaction_repo import TransactionRepository
from finance_store.models.budget import (
    Budget,
    BudgetAlert,
    BudgetProgress,
    BudgetScenario,
    SpendingAnalysis,
)
from finance_store.models.category import Category, CategoryRule
from finance_store.models.fields import DateLike
from finance_store.models.subscription import Subscription, SubscriptionPattern
from finance_store.models.transaction import (
    CreateManyResult,
    DuplicateInfo,
    FinancialSummary,
    PaginatedResult,
    PaginationOptions,
    Transaction,
)

logger = logging.getLogger(__name__)


class FinanceRepository:
    """
    Facade over transactions, categories, subscriptions, budgets and analytics.

    Every method either fully succeeds or raises a ``DatabaseError`` subclass;
    multi-row writes run inside a single store transaction.
    """

    def __init__(self, db: Optional[Database] = None):
        self._db = db or get_db()
        self.transactions = TransactionRepository(self._db)
        self.categories = CategoryRepository(self._db)
        self.subscriptions = SubscriptionRepository(self._db)
        self.budgets = BudgetRepository(self._db)
        self.analytics = AnalyticsRepository(self._db, self.budgets, self.subscriptions)

    @property
    def db(self) -> Database:
        return self._db

    # -- Lifecycle -------------------------------------------------------------

    def initialize(self) -> None:
        """Open the store if needed and apply any pending schema migrations."""
        self._db.initialize()
        applied = self._db.run_migrations()
        if applied:
            logger.info(f"Applied schema migrations {applied}")

    def close(self) -> None:
        self._db.close()

    # -- Transactions ----------------------------------------------------------

    def create(self, txn: Transaction) -> Transaction:
        return self.transactions.create(txn)

    def create_many(self, txns: Iterable[Transaction]) -> CreateManyResult:
        return self.transactions.create_many(txns)

    def find_all(self) -> list[Transaction]:
        return self.transactions.find_all()

    def find_by_id(self, txn_id: str) -> Optional[Transaction]:
        return self.transactions.find_by_id(txn_id)

    def find_by_date_range(self, start: DateLike, end: DateLike) -> list[Transaction]:
        return self.transactions.find_by_date_range(start, end)

    def find_with_pagination(
        self, options: Optional[PaginationOptions] = None
    ) -> PaginatedResult[Transaction]:
        return self.transactions.find_with_pagination(options)

    def update(self, txn_id: str, update: Any = None, **fields: Any) -> Optional[Transaction]:
        return self.transactions.update(txn_id, update, **fields)

    def delete(self, txn_id: str) -> bool:
        return self.transactions.delete(txn_id)

    def check_duplicates(self, txns: Iterable[Transaction]) -> list[DuplicateInfo]:
        return self.transactions.check_duplicates(txns)

    def flag_transaction_as_subscription(self, txn_id: str, subscription_id: str) -> bool:
        return self.transactions.flag_as_subscription(txn_id, subscription_id)

    def unflag_transaction_as_subscription(self, txn_id: str) -> bool:
        return self.transactions.unflag_as_subscription(txn_id)

    def find_subscription_transactions(self, subscription_id: str) -> list[Transaction]:
        return self.transactions.find_subscription_transactions(subscription_id)

    # -- Categories and rules --------------------------------------------------

    def get_categories(self) -> list[Category]:
        return self.categories.get_categories()

    def get_category_by_id(self, category_id: str) -> Optional[Category]:
        return self.categories.get_category_by_id(category_id)

    def create_category(self, category: Category) -> Category:
        return self.categories.create_category(category)

    def update_category(self, category_id: str, update: Any = None,
                        **fields: Any) -> Optional[Category]:
        return self.categories.update_category(category_id, update, **fields)

    def delete_category(self, category_id: str) -> bool:
        return self.categories.delete_category(category_id)

    def get_category_rules(self) -> list[CategoryRule]:
        return self.categories.get_category_rules()

    def create_category_rule(self, rule: CategoryRule) -> CategoryRule:
        return self.categories.create_category_rule(rule)

    def update_rule_usage(self, rule_id: str, was_correct: bool) -> Optional[CategoryRule]:
        return self.categories.update_rule_usage(rule_id, was_correct)

    def delete_category_rule(self, rule_id: str) -> bool:
        return self.categories.delete_category_rule(rule_id)

    # -- Subscriptions and patterns --------------------------------------------

    def create_subscription(self, sub: Subscription) -> Subscription:
        return self.subscriptions.create_subscription(sub)

    def find_all_subscriptions(self) -> list[Subscription]:
        return self.subscriptions.find_all_subscriptions()

    def find_subscription_by_id(self, sub_id: str) -> Optional[Subscription]:
        return self.subscriptions.find_subscription_by_id(sub_id)

    def find_subscriptions_by_category(self, category_id: str) -> list[Subscription]:
        return self.subscriptions.find_subscriptions_by_category(category_id)

    def update_subscription(self, sub_id: str, update: Any = None,
                            **fields: Any) -> Optional[Subscription]:
        return self.subscriptions.update_subscription(sub_id, update, **fields)

    def delete_subscription(self, sub_id: str) -> bool:
        return self.subscriptions.delete_subscription(sub_id)

    def find_active_subscriptions(self) -> list[Subscription]:
        return self.subscriptions.find_active_subscriptions()

    def find_upcoming_payments(self, days: int, today: Optional[date] = None) -> list[Subscription]:
        return self.subscriptions.find_upcoming_payments(days, today)

    def find_unused_subscriptions(self, days_since_last_use: int,
                                  today: Optional[date] = None) -> list[Subscription]:
        return self.subscriptions.find_unused_subscriptions(days_since_last_use, today)

    def calculate_total_monthly_cost(self) -> float:
        return self.subscriptions.calculate_total_monthly_cost()

    def create_subscription_pattern(self, pattern: SubscriptionPattern) -> SubscriptionPattern:
        return self.subscriptions.create_subscription_pattern(pattern)

    def find_patterns_by_subscription(self, sub_id: str) -> list[SubscriptionPattern]:
        return self.subscriptions.find_patterns_by_subscription(sub_id)

    def update_pattern_usage(self, pattern_id: str,
                             was_correct: bool) -> Optional[SubscriptionPattern]:
        return self.subscriptions.update_pattern_usage(pattern_id, was_correct)

    def delete_subscription_pattern(self, pattern_id: str) -> bool:
        return self.subscriptions.delete_subscription_pattern(pattern_id)

    # -- Budgets ---------------------------------------------------------------

    def create_budget(self, budget: Budget) -> Budget:
        return self.budgets.create_budget(budget)

    def find_all_budgets(self) -> list[Budget]:
        return self.budgets.find_all_budgets()

    def find_budget_by_id(self, budget_id: str) -> Optional[Budget]:
        return self.budgets.find_budget_by_id(budget_id)

    def find_budgets_by_category(self, category_id: str) -> list[Budget]:
        return self.budgets.find_budgets_by_category(category_id)

    def update_budget(self, budget_id: str, update: Any = None,
                      **fields: Any) -> Optional[Budget]:
        return self.budgets.update_budget(budget_id, update, **fields)

    def delete_budget(self, budget_id: str) -> bool:
        return self.budgets.delete_budget(budget_id)

    def find_active_budgets(self) -> list[Budget]:
        return self.budgets.find_active_budgets()

    def find_budgets_by_active_scenario(self) -> list[Budget]:
        return self.budgets.find_budgets_by_active_scenario()

    def find_budgets_by_period(self, start: DateLike, end: DateLike) -> list[Budget]:
        return self.budgets.find_budgets_by_period(start, end)

    def find_budgets_by_scenario(self, scenario_id: str) -> list[Budget]:
        return self.budgets.find_budgets_by_scenario(scenario_id)

    def calculate_budget_progress(self, budget_id: str,
                                  today: Optional[date] = None) -> Optional[BudgetProgress]:
        return self.analytics.calculate_budget_progress(budget_id, today)

    def analyze_historical_spending(self, category_id: str, months: int,
                                    today: Optional[date] = None) -> SpendingAnalysis:
        return self.analytics.analyze_historical_spending(category_id, months, today)

    # -- Budget scenarios ------------------------------------------------------

    def create_budget_scenario(self, scenario: BudgetScenario) -> BudgetScenario:
        return self.budgets.create_budget_scenario(scenario)

    def find_all_budget_scenarios(self) -> list[BudgetScenario]:
        return self.budgets.find_all_budget_scenarios()

    def find_budget_scenario_by_id(self, scenario_id: str) -> Optional[BudgetScenario]:
        return self.budgets.find_budget_scenario_by_id(scenario_id)

    def update_budget_scenario(self, scenario_id: str, update: Any = None,
                               **fields: Any) -> Optional[BudgetScenario]:
        return self.budgets.update_budget_scenario(scenario_id, update, **fields)

    def delete_budget_scenario(self, scenario_id: str) -> bool:
        return self.budgets.delete_budget_scenario(scenario_id)

    def activate_budget_scenario(self, scenario_id: str) -> None:
        self.budgets.activate_budget_scenario(scenario_id)

    # -- Budget alerts ---------------------------------------------------------

    def create_budget_alert(self, alert: BudgetAlert) -> BudgetAlert:
        return self.budgets.create_budget_alert(alert)

    def find_budget_alerts(self, budget_id: Optional[str] = None) -> list[BudgetAlert]:
        return self.budgets.find_budget_alerts(budget_id)

    def find_unread_budget_alerts(self) -> list[BudgetAlert]:
        return self.budgets.find_unread_budget_alerts()

    def mark_budget_alert_as_read(self, alert_id: str) -> bool:
        return self.budgets.mark_budget_alert_as_read(alert_id)

    def delete_budget_alert(self, alert_id: str) -> bool:
        return self.budgets.delete_budget_alert(alert_id)

    # -- Summary ---------------------------------------------------------------

    def calculate_summary(self, start: Optional[DateLike] = None,
                          end: Optional[DateLike] = None) -> FinancialSummary:
        return self.analytics.calculate_summary(start, end)
