"""Domain models for the finance tracker persistence core."""

from finance_store.models.budget import (
    AlertType,
    Budget,
    BudgetAlert,
    BudgetPeriod,
    BudgetProgress,
    BudgetScenario,
    BudgetStatus,
    SpendingAnalysis,
)
from finance_store.models.category import Category, CategoryRule, PatternType, RuleSource
from finance_store.models.subscription import BillingFrequency, Subscription, SubscriptionPattern
from finance_store.models.transaction import (
    CreateManyResult,
    DuplicateInfo,
    FinancialSummary,
    PageInfo,
    PaginatedResult,
    PaginationOptions,
    Transaction,
    TransactionType,
)
from finance_store.models.updates import (
    BudgetScenarioUpdate,
    BudgetUpdate,
    CategoryUpdate,
    SubscriptionUpdate,
    TransactionUpdate,
)

__all__ = [
    "Transaction", "TransactionType", "DuplicateInfo", "CreateManyResult",
    "PaginationOptions", "PaginatedResult", "PageInfo", "FinancialSummary",
    "Category", "CategoryRule", "PatternType", "RuleSource",
    "Subscription", "SubscriptionPattern", "BillingFrequency",
    "Budget", "BudgetScenario", "BudgetAlert", "BudgetPeriod", "AlertType",
    "BudgetProgress", "BudgetStatus", "SpendingAnalysis",
    "TransactionUpdate", "CategoryUpdate", "SubscriptionUpdate",
    "BudgetUpdate", "BudgetScenarioUpdate",
]
