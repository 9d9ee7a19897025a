"""Persistence core of a personal finance tracker, backed by SQLite."""

from finance_store.config import DatabaseConfig, get_database_config
from finance_store.db.database import Database, get_db, reset_db
from finance_store.repository import FinanceRepository

__version__ = "0.1.0"

__all__ = [
    "DatabaseConfig", "get_database_config",
    "Database", "get_db", "reset_db",
    "FinanceRepository",
]
