"""
Central configuration loader.
Reads database settings from environment variables (via .env) and merges
explicit overrides on top.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Load .env from repo root (if present)
# ---------------------------------------------------------------------------
_REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(_REPO_ROOT / ".env")

MEMORY_FILENAME = ":memory:"
DEFAULT_TIMEOUT_MS = 5000


def _get(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    val = os.getenv(key, default)
    if required and not val:
        raise EnvironmentError(f"Missing required environment variable: {key}")
    return val


def _get_bool(key: str, default: bool) -> bool:
    raw = _get(key)
    if raw is None or raw == "":
        return default
    return raw.lower() in ("1", "true", "yes")


# ---------------------------------------------------------------------------
# Database config
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class DatabaseConfig:
    filename: str
    readonly: bool = False
    create: bool = True
    strict: bool = True
    timeout: int = DEFAULT_TIMEOUT_MS

    def __post_init__(self) -> None:
        if not self.filename:
            raise ValueError("Database filename must not be empty")
        if not isinstance(self.timeout, int) or self.timeout < 0:
            raise ValueError(f"Busy timeout must be a non-negative integer, got {self.timeout!r}")

    @property
    def is_memory(self) -> bool:
        return MEMORY_FILENAME in self.filename

    @property
    def path(self) -> Optional[Path]:
        return None if self.is_memory else Path(self.filename)

    def with_overrides(self, **overrides: Any) -> "DatabaseConfig":
        return replace(self, **overrides)


def _default_filename() -> str:
    if (_get("FINANCE_ENV", default="") or "").lower() == "test":
        return MEMORY_FILENAME
    return str(get_db_path())


def get_database_config(**overrides: Any) -> DatabaseConfig:
    """Build the effective config: defaults < environment < explicit overrides."""
    raw_timeout = _get("FINANCE_DB_TIMEOUT_MS", default=str(DEFAULT_TIMEOUT_MS))
    try:
        timeout = int(raw_timeout)  # type: ignore[arg-type]
    except ValueError:
        raise ValueError(f"FINANCE_DB_TIMEOUT_MS must be an integer, got {raw_timeout!r}")

    config = DatabaseConfig(
        filename=_get("FINANCE_DB_PATH") or _default_filename(),
        readonly=_get_bool("FINANCE_DB_READONLY", False),
        create=_get_bool("FINANCE_DB_CREATE", True),
        strict=_get_bool("FINANCE_DB_STRICT", True),
        timeout=timeout,
    )
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return config.with_overrides(**overrides) if overrides else config


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
def get_repo_root() -> Path:
    return _REPO_ROOT


def get_db_path() -> Path:
    return _REPO_ROOT / "data" / "finance-tracker.db"
