"""Category and categorization-rule models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from finance_store.models.fields import (
    bool_to_db,
    new_id,
    timestamp_to_db,
    to_bool,
    to_timestamp,
    utcnow,
)

MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0


class PatternType(str, Enum):
    EXACT = "exact"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    REGEX = "regex"


class RuleSource(str, Enum):
    USER = "user"
    SYSTEM = "system"


def adjust_confidence(confidence: float, was_correct: bool) -> float:
    """Feedback step: approach 1.0 by a tenth of the gap, or drop by 0.15 (floored)."""
    if was_correct:
        return min(MAX_CONFIDENCE, confidence + 0.1 * (1 - confidence))
    return max(MIN_CONFIDENCE, confidence - 0.15)


@dataclass
class Category:
    name: str
    color: str
    icon: str
    id: str = field(default_factory=new_id)
    description: Optional[str] = None
    parent_id: Optional[str] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "icon": self.icon,
            "parent_id": self.parent_id,
            "is_active": bool_to_db(self.is_active),
            "created_at": timestamp_to_db(self.created_at),
            "updated_at": timestamp_to_db(self.updated_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Category":
        return cls(
            id=row["id"],
            name=row["name"],
            description=row.get("description"),
            color=row["color"],
            icon=row["icon"],
            parent_id=row.get("parent_id"),
            is_active=to_bool(row.get("is_active")),
            created_at=to_timestamp(row.get("created_at")) or utcnow(),
            updated_at=to_timestamp(row.get("updated_at")) or utcnow(),
        )


@dataclass
class CategoryRule:
    """A description pattern that suggests a category, with learned confidence."""

    category_id: str
    pattern: str
    pattern_type: PatternType
    id: str = field(default_factory=new_id)
    confidence_score: float = 1.0
    usage_count: int = 0
    last_used_at: Optional[datetime] = None
    created_by: RuleSource = RuleSource.USER
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.pattern_type = PatternType(self.pattern_type)
        self.created_by = RuleSource(self.created_by)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "pattern": self.pattern,
            "pattern_type": self.pattern_type.value,
            "confidence_score": self.confidence_score,
            "usage_count": self.usage_count,
            "last_used_at": timestamp_to_db(self.last_used_at),
            "created_by": self.created_by.value,
            "is_active": bool_to_db(self.is_active),
            "created_at": timestamp_to_db(self.created_at),
            "updated_at": timestamp_to_db(self.updated_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CategoryRule":
        return cls(
            id=row["id"],
            category_id=row["category_id"],
            pattern=row["pattern"],
            pattern_type=PatternType(row["pattern_type"]),
            confidence_score=row.get("confidence_score", 1.0),
            usage_count=row.get("usage_count", 0),
            last_used_at=to_timestamp(row.get("last_used_at")),
            created_by=RuleSource(row.get("created_by", "user")),
            is_active=to_bool(row.get("is_active")),
            created_at=to_timestamp(row.get("created_at")) or utcnow(),
            updated_at=to_timestamp(row.get("updated_at")) or utcnow(),
        )
