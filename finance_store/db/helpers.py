"""Statement builders shared by the repositories."""

from __future__ import annotations

import sqlite3
from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import ValidationError

from finance_store.db.errors import ValidationFailed
from finance_store.models.fields import now_iso
from finance_store.models.updates import PartialUpdate

U = TypeVar("U", bound=PartialUpdate)


def coerce_update(model: Type[U], update: Optional[U], fields: Mapping[str, Any]) -> U:
    """Accept either a typed update or plain keyword fields, validated through ``model``."""
    if update is not None and fields:
        raise ValidationFailed("Pass either an update model or keyword fields, not both")
    if update is not None:
        if not isinstance(update, model):
            raise ValidationFailed(f"Expected {model.__name__}, got {type(update).__name__}")
        return update
    try:
        return model(**fields)
    except ValidationError as exc:
        raise ValidationFailed(f"Invalid {model.__name__}: {exc}") from exc


def update_row(
    conn: sqlite3.Connection,
    table: str,
    row_id: str,
    columns: Mapping[str, Any],
    touch: bool = True,
) -> int:
    """UPDATE ``table`` by id with ``columns`` (plus ``updated_at``). Returns rows changed."""
    values = dict(columns)
    if touch:
        values["updated_at"] = now_iso()
    if not values:
        return 0
    assignments = ", ".join(f"{col} = ?" for col in values)
    cursor = conn.execute(
        f"UPDATE {table} SET {assignments} WHERE id = ?",
        (*values.values(), row_id),
    )
    return cursor.rowcount


def insert_row(conn: sqlite3.Connection, table: str, row: Mapping[str, Any]) -> None:
    cols = ", ".join(row)
    marks = ", ".join("?" for _ in row)
    conn.execute(f"INSERT INTO {table} ({cols}) VALUES ({marks})", tuple(row.values()))


def is_unique_violation(exc: sqlite3.IntegrityError) -> bool:
    return "UNIQUE constraint failed" in str(exc)


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so ``term`` matches literally under ``ESCAPE '\\'``."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
