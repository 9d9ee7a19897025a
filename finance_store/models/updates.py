"""
Typed partial-update payloads.

Every field is optional. Only the fields a caller explicitly sets end up in
``to_columns()``, so passing ``None`` clears a nullable column while leaving a
field out keeps the stored value. Columns that are NOT NULL in the schema
reject an explicit ``None``.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator, model_validator

from finance_store.models.budget import BudgetPeriod
from finance_store.models.fields import value_to_db
from finance_store.models.subscription import BillingFrequency
from finance_store.models.transaction import TransactionType


def _required(v: Any, info: ValidationInfo) -> Any:
    if v is None:
        raise ValueError(f"{info.field_name} cannot be set to null")
    return v


class PartialUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    def to_columns(self) -> dict[str, Any]:
        return {k: value_to_db(v) for k, v in self.model_dump(exclude_unset=True).items()}


class TransactionUpdate(PartialUpdate):
    date: Optional[dt.date] = None
    description: Optional[str] = None
    amount: Optional[float] = None
    type: Optional[TransactionType] = None
    currency: Optional[str] = None
    category_id: Optional[str] = None

    _not_null = field_validator("date", "description", "amount", "type")(_required)


class CategoryUpdate(PartialUpdate):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[str] = None
    is_active: Optional[bool] = None

    _not_null = field_validator("name", "color", "icon", "is_active")(_required)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Category name must not be empty")
        return v


class SubscriptionUpdate(PartialUpdate):
    name: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    billing_frequency: Optional[BillingFrequency] = None
    custom_frequency_days: Optional[int] = None
    next_payment_date: Optional[dt.date] = None
    category_id: Optional[str] = None
    is_active: Optional[bool] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    notes: Optional[str] = None
    website: Optional[str] = None
    cancellation_url: Optional[str] = None
    last_used_date: Optional[dt.date] = None
    usage_rating: Optional[int] = None

    _not_null = field_validator(
        "name", "amount", "currency", "billing_frequency", "next_payment_date",
        "category_id", "is_active", "start_date",
    )(_required)

    @field_validator("usage_rating")
    @classmethod
    def _rating_in_range(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 1 <= v <= 5:
            raise ValueError(f"Usage rating must be between 1 and 5, got {v}")
        return v

    @field_validator("custom_frequency_days")
    @classmethod
    def _positive_days(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError(f"Custom frequency days must be positive, got {v}")
        return v


class BudgetUpdate(PartialUpdate):
    name: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    period: Optional[BudgetPeriod] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    is_active: Optional[bool] = None
    alert_thresholds: Optional[list[float]] = None
    scenario_id: Optional[str] = None

    _not_null = field_validator(
        "name", "category_id", "amount", "currency", "period",
        "start_date", "end_date", "is_active",
    )(_required)

    @field_validator("amount")
    @classmethod
    def _non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError(f"Budget amount must be >= 0, got {v}")
        return v

    @model_validator(mode="after")
    def _ordered_dates(self) -> "BudgetUpdate":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("Budget start_date must not be after end_date")
        return self


class BudgetScenarioUpdate(PartialUpdate):
    name: Optional[str] = None
    description: Optional[str] = None

    _not_null = field_validator("name")(_required)
