"""
Migration engine.

Applies pending units in ascending version order inside one transaction and
records each one in the ``schema_metadata`` ledger. A failing unit rolls the
whole batch back, so the ledger and the schema never disagree.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Optional, Sequence

from finance_store.db.database import Database
from finance_store.db.errors import MigrationFailed, ValidationFailed
from finance_store.db.migrations.base import (
    LEDGER_DDL,
    LEDGER_TABLE,
    Migration,
    MigrationState,
    table_exists,
    validate_versions,
)
from finance_store.db.migrations.registry import MIGRATIONS

logger = logging.getLogger(__name__)


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class MigrationRunner:
    def __init__(self, db: Database, migrations: Optional[Sequence[Migration]] = None):
        migrations = MIGRATIONS if migrations is None else tuple(migrations)
        validate_versions(migrations)
        self._db = db
        self._migrations = sorted(migrations, key=lambda m: m.version)
        self._states: dict[int, MigrationState] = {}

    # -- ledger ----------------------------------------------------------------

    def _ensure_ledger(self, conn: sqlite3.Connection) -> None:
        conn.execute(LEDGER_DDL)

    def get_applied_migrations(self) -> list[int]:
        conn = self._db.connection()
        try:
            if not table_exists(conn, LEDGER_TABLE):
                return []
            rows = conn.execute(
                f"SELECT version FROM {LEDGER_TABLE} ORDER BY version"
            ).fetchall()
        except sqlite3.Error as exc:
            raise MigrationFailed(f"Failed to read migration ledger: {exc}") from exc
        return [row[0] for row in rows]

    def get_current_version(self) -> int:
        applied = self.get_applied_migrations()
        return max(applied) if applied else 0

    def get_pending_migrations(self) -> list[Migration]:
        applied = set(self.get_applied_migrations())
        return [m for m in self._migrations if m.version not in applied]

    def validate_migrations(self) -> bool:
        try:
            validate_versions(self._migrations)
        except MigrationFailed as exc:
            logger.error(str(exc))
            return False
        return True

    def status(self) -> dict[int, MigrationState]:
        applied = set(self.get_applied_migrations())
        result = {}
        for m in self._migrations:
            if m.version in applied:
                result[m.version] = MigrationState.APPLIED
            else:
                result[m.version] = self._states.get(m.version, MigrationState.PENDING)
        return result

    # -- apply / revert --------------------------------------------------------

    def run_pending_migrations(self) -> list[int]:
        """Apply every unit missing from the ledger. Returns the versions applied."""
        pending = self.get_pending_migrations()
        if not pending:
            logger.info("Database schema is up to date")
            return []

        logger.info(f"Applying {len(pending)} migration(s): {[m.version for m in pending]}")
        current: Optional[Migration] = None
        try:
            with self._db.transaction() as conn:
                self._ensure_ledger(conn)
                for current in pending:
                    self._states[current.version] = MigrationState.APPLYING
                    current.up(conn)
                    conn.execute(
                        f"INSERT OR IGNORE INTO {LEDGER_TABLE} (version, applied_at) VALUES (?, ?)",
                        (current.version, _utcnow()),
                    )
                    self._states[current.version] = MigrationState.APPLIED
                    logger.info(f"Applied migration {current.version}: {current.description}")
        except Exception as exc:
            # the batch was rolled back as a whole
            for m in pending:
                self._states[m.version] = MigrationState.PENDING
            version = current.version if current is not None else None
            if version is not None:
                self._states[version] = MigrationState.FAILED
            logger.error(f"Migration {version} failed, batch rolled back: {exc}")
            if isinstance(exc, MigrationFailed):
                raise
            raise MigrationFailed(
                f"Migration {version} failed: {exc}", "migration.up", [version]
            ) from exc

        return [m.version for m in pending]

    def rollback_to_version(self, target: int) -> list[int]:
        """Revert applied units newer than ``target``, newest first. Returns the versions reverted."""
        if target < 0:
            raise ValidationFailed(f"Rollback target must be >= 0, got {target}")
        applied = set(self.get_applied_migrations())
        to_revert = [
            m for m in reversed(self._migrations) if m.version > target and m.version in applied
        ]
        if not to_revert:
            logger.info(f"Nothing to roll back above version {target}")
            return []

        current: Optional[Migration] = None
        try:
            with self._db.transaction() as conn:
                for current in to_revert:
                    current.down(conn)
                    conn.execute(
                        f"DELETE FROM {LEDGER_TABLE} WHERE version = ?", (current.version,)
                    )
                    self._states[current.version] = MigrationState.PENDING
                    logger.info(f"Rolled back migration {current.version}: {current.description}")
        except Exception as exc:
            for m in to_revert:
                self._states.pop(m.version, None)
            version = current.version if current is not None else None
            logger.error(f"Rollback of migration {version} failed, nothing reverted: {exc}")
            raise MigrationFailed(
                f"Rollback of migration {version} failed: {exc}", "migration.down", [version]
            ) from exc

        return [m.version for m in to_revert]
