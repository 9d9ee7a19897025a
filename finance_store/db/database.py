"""Core database connection with ACID transaction support."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Generator, Optional

from finance_store.config import DatabaseConfig, get_database_config
from finance_store.db.errors import ConnectionFailed, MigrationFailed

logger = logging.getLogger(__name__)


class Database:
    """
    Owner of the single embedded SQLite handle.

    Implements the Unit-of-Work pattern: every multi-statement mutation goes
    through ``transaction()``, which commits on success and rolls back on
    failure. The connection runs in autocommit mode and transactions are
    opened explicitly, so schema changes participate in them too.
    """

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self._config: DatabaseConfig = config or get_database_config()
        self._conn: Optional[sqlite3.Connection] = None
        self._ready = False
        self._savepoints = 0
        self._lock = threading.RLock()

    # -- connection lifecycle --------------------------------------------------

    def _ensure_dir(self) -> None:
        path = self._config.path
        if path is not None and self._config.create and not self._config.readonly:
            path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        cfg = self._config
        timeout_s = cfg.timeout / 1000
        if cfg.is_memory:
            return sqlite3.connect(
                cfg.filename, timeout=timeout_s, isolation_level=None, check_same_thread=False
            )
        if cfg.readonly:
            mode = "ro"
        elif cfg.create:
            mode = "rwc"
        else:
            mode = "rw"
        uri = f"{cfg.path.resolve().as_uri()}?mode={mode}"  # type: ignore[union-attr]
        return sqlite3.connect(
            uri, timeout=timeout_s, isolation_level=None, check_same_thread=False, uri=True
        )

    def _apply_pragmas(self, conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute(f"PRAGMA busy_timeout = {int(self._config.timeout)}")
        if not self._config.is_memory and not self._config.readonly:
            conn.execute("PRAGMA journal_mode = WAL")
        conn.execute(
            f"PRAGMA ignore_check_constraints = {'OFF' if self._config.strict else 'ON'}"
        )

    def initialize(self) -> None:
        """Open the store and apply session settings (idempotent)."""
        if self.is_ready():
            return
        try:
            self._ensure_dir()
            conn = self._connect()
            conn.row_factory = sqlite3.Row
            self._apply_pragmas(conn)
        except (sqlite3.Error, OSError) as exc:
            raise ConnectionFailed(
                f"Failed to initialize database at {self._config.filename}: {exc}"
            ) from exc
        self._conn = conn
        self._ready = True
        logger.info(f"Opened database {self._config.filename}")

    def connection(self) -> sqlite3.Connection:
        if self._conn is None or not self._ready:
            raise ConnectionFailed("Database not initialized. Call initialize() first.")
        return self._conn

    def is_ready(self) -> bool:
        return self._ready and self._conn is not None

    def is_healthy(self) -> bool:
        if not self.is_ready():
            return False
        try:
            row = self._conn.execute("SELECT 1 AS health_check").fetchone()  # type: ignore[union-attr]
        except sqlite3.Error:
            return False
        return row is not None and row[0] == 1

    def close(self) -> None:
        """Close the handle. Safe to call repeatedly or after an external close."""
        conn, self._conn = self._conn, None
        self._ready = False
        if conn is None:
            return
        try:
            conn.close()
        except sqlite3.Error as exc:
            logger.warning(f"Ignoring error while closing {self._config.filename}: {exc}")
            return
        logger.info(f"Closed database {self._config.filename}")

    def get_config(self) -> DatabaseConfig:
        return replace(self._config)

    def run_migrations(self) -> list[int]:
        """Apply every pending schema migration."""
        if not self.is_ready():
            raise MigrationFailed("Database must be initialized before running migrations")
        from finance_store.db.migrations import MigrationRunner

        return MigrationRunner(self).run_pending_migrations()

    # -- transaction helpers ---------------------------------------------------

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """ACID transaction: commits on success, rolls back on exception.

        Nested calls from the thread that owns the open transaction run inside
        a SAVEPOINT of it. Other threads wait until the outermost transaction
        has committed or rolled back.
        """
        with self._lock:
            conn = self.connection()
            if conn.in_transaction:
                self._savepoints += 1
                name = f"sp_{self._savepoints}"
                conn.execute(f"SAVEPOINT {name}")
                try:
                    yield conn
                    conn.execute(f"RELEASE {name}")
                except BaseException:
                    conn.execute(f"ROLLBACK TO {name}")
                    conn.execute(f"RELEASE {name}")
                    raise
                return

            conn.execute("BEGIN" if self._config.readonly else "BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    # -- low-level query helpers -----------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            return self.connection().execute(sql, params)

    def fetchone(self, sql: str, params: tuple = ()) -> Optional[dict[str, Any]]:
        with self._lock:
            row = self.connection().execute(sql, params).fetchone()
        return dict(row) if row else None

    def fetchall(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        with self._lock:
            rows = self.connection().execute(sql, params).fetchall()
        return [dict(r) for r in rows]


# -- module singleton ----------------------------------------------------------

_default_db: Optional[Database] = None


def get_db(config: Optional[DatabaseConfig] = None) -> Database:
    """Return (and lazily construct) the process-wide Database.

    ``config`` only takes effect on the call that constructs the instance.
    """
    global _default_db
    if _default_db is None:
        _default_db = Database(config)
    return _default_db


def reset_db() -> None:
    """Close and discard the singleton (useful in tests)."""
    global _default_db
    if _default_db is not None:
        _default_db.close()
        _default_db = None
