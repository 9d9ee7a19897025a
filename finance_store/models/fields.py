"""Conversions between stored column values and in-memory field types.

Dates are stored as ``YYYY-MM-DD`` text, timestamps as ISO-8601 UTC text,
flags as 0/1 integers and ordered number lists as JSON arrays.
"""

from __future__ import annotations

import json
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

DateLike = Union[date, datetime, str]

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def now_iso() -> str:
    return utcnow().strftime(TIMESTAMP_FORMAT)


def to_date(value: Optional[DateLike]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # stored values may carry a time part from older imports
    return date.fromisoformat(str(value)[:10])


def date_to_db(value: Optional[DateLike]) -> Optional[str]:
    parsed = to_date(value)
    return parsed.isoformat() if parsed else None


def to_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).replace("Z", "+00:00")
    if " " in text and "T" not in text:
        # SQLite CURRENT_TIMESTAMP uses a space separator and no zone
        text = text.replace(" ", "T") + "+00:00"
    return datetime.fromisoformat(text)


def timestamp_to_db(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)


def to_bool(value: Any) -> bool:
    return bool(value) if value is not None else False


def bool_to_db(value: Optional[bool]) -> Optional[int]:
    return None if value is None else int(bool(value))


def to_number_list(raw: Optional[str]) -> list[float]:
    if not raw:
        return []
    try:
        values = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    return [v for v in values if isinstance(v, (int, float))] if isinstance(values, list) else []


def number_list_to_db(values: Optional[list[float]]) -> Optional[str]:
    return None if values is None else json.dumps(list(values))


def value_to_db(value: Any) -> Any:
    """Convert one typed field value to its column representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return timestamp_to_db(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value))
    return value
