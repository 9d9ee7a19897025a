"""Recurring subscription and subscription-matching pattern models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from finance_store.models.category import PatternType, RuleSource
from finance_store.models.fields import (
    bool_to_db,
    date_to_db,
    new_id,
    timestamp_to_db,
    to_bool,
    to_date,
    to_timestamp,
    utcnow,
)

DAYS_PER_MONTH = 30.44


class BillingFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"
    CUSTOM = "custom"


def monthly_equivalent(amount: float, frequency: BillingFrequency,
                       custom_days: Optional[int] = None) -> float:
    """Normalize a charge to its cost per month.

    A custom frequency without a day count has no meaningful rate and yields 0.
    """
    frequency = BillingFrequency(frequency)
    if frequency == BillingFrequency.MONTHLY:
        return amount
    if frequency == BillingFrequency.QUARTERLY:
        return amount / 3
    if frequency == BillingFrequency.ANNUALLY:
        return amount / 12
    if not custom_days:
        return 0.0
    return amount / (custom_days / DAYS_PER_MONTH)


@dataclass
class Subscription:
    name: str
    amount: float
    billing_frequency: BillingFrequency
    next_payment_date: date
    category_id: str
    start_date: date
    id: str = field(default_factory=new_id)
    description: Optional[str] = None
    currency: str = "NOK"
    custom_frequency_days: Optional[int] = None
    is_active: bool = True
    end_date: Optional[date] = None
    notes: Optional[str] = None
    website: Optional[str] = None
    cancellation_url: Optional[str] = None
    last_used_date: Optional[date] = None
    usage_rating: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.billing_frequency = BillingFrequency(self.billing_frequency)
        self.next_payment_date = to_date(self.next_payment_date)  # type: ignore[assignment]
        self.start_date = to_date(self.start_date)  # type: ignore[assignment]
        self.end_date = to_date(self.end_date)
        self.last_used_date = to_date(self.last_used_date)

    def monthly_equivalent(self) -> float:
        return monthly_equivalent(self.amount, self.billing_frequency, self.custom_frequency_days)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "amount": self.amount,
            "currency": self.currency,
            "billing_frequency": self.billing_frequency.value,
            "custom_frequency_days": self.custom_frequency_days,
            "next_payment_date": date_to_db(self.next_payment_date),
            "category_id": self.category_id,
            "is_active": bool_to_db(self.is_active),
            "start_date": date_to_db(self.start_date),
            "end_date": date_to_db(self.end_date),
            "notes": self.notes,
            "website": self.website,
            "cancellation_url": self.cancellation_url,
            "last_used_date": date_to_db(self.last_used_date),
            "usage_rating": self.usage_rating,
            "created_at": timestamp_to_db(self.created_at),
            "updated_at": timestamp_to_db(self.updated_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Subscription":
        return cls(
            id=row["id"],
            name=row["name"],
            description=row.get("description"),
            amount=row["amount"],
            currency=row.get("currency") or "NOK",
            billing_frequency=BillingFrequency(row["billing_frequency"]),
            custom_frequency_days=row.get("custom_frequency_days"),
            next_payment_date=to_date(row["next_payment_date"]),  # type: ignore[arg-type]
            category_id=row["category_id"],
            is_active=to_bool(row.get("is_active")),
            start_date=to_date(row["start_date"]),  # type: ignore[arg-type]
            end_date=to_date(row.get("end_date")),
            notes=row.get("notes"),
            website=row.get("website"),
            cancellation_url=row.get("cancellation_url"),
            last_used_date=to_date(row.get("last_used_date")),
            usage_rating=row.get("usage_rating"),
            created_at=to_timestamp(row.get("created_at")) or utcnow(),
            updated_at=to_timestamp(row.get("updated_at")) or utcnow(),
        )


@dataclass
class SubscriptionPattern:
    subscription_id: str
    pattern: str
    pattern_type: PatternType
    id: str = field(default_factory=new_id)
    confidence_score: float = 1.0
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
            "subscription_id": self.subscription_id,
            "pattern": self.pattern,
            "pattern_type": self.pattern_type.value,
            "confidence_score": self.confidence_score,
            "created_by": self.created_by.value,
            "is_active": bool_to_db(self.is_active),
            "created_at": timestamp_to_db(self.created_at),
            "updated_at": timestamp_to_db(self.updated_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SubscriptionPattern":
        return cls(
            id=row["id"],
            subscription_id=row["subscription_id"],
            pattern=row["pattern"],
            pattern_type=PatternType(row["pattern_type"]),
            confidence_score=row.get("confidence_score", 1.0),
            created_by=RuleSource(row.get("created_by", "user")),
            is_active=to_bool(row.get("is_active")),
            created_at=to_timestamp(row.get("created_at")) or utcnow(),
            updated_at=to_timestamp(row.get("updated_at")) or utcnow(),
        )
