"""Ordered list of every schema migration shipped with the package."""

from finance_store.db.migrations import (
    m001_initial,
    m002_transfer_type,
    m003_categories,
    m004_currency,
    m005_subscriptions,
    m006_budgets,
    m007_default_scenario,
)
from finance_store.db.migrations.base import validate_versions

MIGRATIONS = (
    m001_initial.migration,
    m002_transfer_type.migration,
    m003_categories.migration,
    m004_currency.migration,
    m005_subscriptions.migration,
    m006_budgets.migration,
    m007_default_scenario.migration,
)

validate_versions(MIGRATIONS)
