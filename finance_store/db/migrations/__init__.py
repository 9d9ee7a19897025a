from finance_store.db.migrations.base import Migration, MigrationState, validate_versions
from finance_store.db.migrations.registry import MIGRATIONS
from finance_store.db.migrations.runner import MigrationRunner

__all__ = ["MIGRATIONS", "Migration", "MigrationRunner", "MigrationState", "validate_versions"]
