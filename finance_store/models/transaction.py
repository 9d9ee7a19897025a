"""Transaction domain model plus the result shapes of transaction queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

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

T = TypeVar("T")


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


@dataclass
class Transaction:
    """A single ledger line. ``(date, description, amount)`` is its natural key."""

    date: date
    description: str
    amount: float
    type: TransactionType
    id: str = field(default_factory=new_id)
    currency: Optional[str] = None
    category_id: Optional[str] = None
    is_subscription: bool = False
    subscription_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.date = to_date(self.date)  # type: ignore[assignment]
        self.type = TransactionType(self.type)

    @property
    def identifier(self) -> str:
        """Human-readable natural key, e.g. ``2024-01-02: Coffee (-3.50)``."""
        sign = "+" if self.type == TransactionType.INCOME else ""
        return f"{self.date.isoformat()}: {self.description} ({sign}{self.amount:.2f})"

    @property
    def natural_key(self) -> tuple[str, str, float]:
        return (self.date.isoformat(), self.description, float(self.amount))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": date_to_db(self.date),
            "description": self.description,
            "amount": self.amount,
            "type": self.type.value,
            "currency": self.currency,
            "category_id": self.category_id,
            "is_subscription": bool_to_db(self.is_subscription),
            "subscription_id": self.subscription_id,
            "created_at": timestamp_to_db(self.created_at),
            "updated_at": timestamp_to_db(self.updated_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Transaction":
        return cls(
            id=row["id"],
            date=to_date(row["date"]),  # type: ignore[arg-type]
            description=row["description"],
            amount=row["amount"],
            type=TransactionType(row["type"]),
            currency=row.get("currency"),
            category_id=row.get("category_id"),
            is_subscription=to_bool(row.get("is_subscription")),
            subscription_id=row.get("subscription_id"),
            created_at=to_timestamp(row.get("created_at")) or utcnow(),
            updated_at=to_timestamp(row.get("updated_at")) or utcnow(),
        )


@dataclass
class DuplicateInfo:
    date: date
    description: str
    amount: float
    type: TransactionType
    identifier: str

    @classmethod
    def of(cls, txn: Transaction) -> "DuplicateInfo":
        return cls(
            date=txn.date,
            description=txn.description,
            amount=txn.amount,
            type=txn.type,
            identifier=txn.identifier,
        )


@dataclass
class CreateManyResult:
    created: list[Transaction] = field(default_factory=list)
    duplicates: list[DuplicateInfo] = field(default_factory=list)
    total_processed: int = 0


SORT_FIELDS = ("date", "description", "amount", "type")


@dataclass
class PaginationOptions:
    """Filters, sort and paging for ``find_with_pagination``.

    ``transaction_type`` accepts ``"all"`` or any TransactionType value.
    ``category_ids`` restricts to those categories; with ``include_uncategorized``
    uncategorized rows are added, and on its own it selects only them.
    """

    page: int = 1
    limit: int = 25
    sort_by: str = "date"
    sort_order: str = "DESC"
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    transaction_type: str = "all"
    search_term: Optional[str] = None
    category_ids: Optional[list[str]] = None
    include_uncategorized: bool = False


@dataclass
class PageInfo:
    current_page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


@dataclass
class PaginatedResult(Generic[T]):
    data: list[T]
    pagination: PageInfo


@dataclass
class FinancialSummary:
    total_income: float = 0.0
    total_expenses: float = 0.0
    net_amount: float = 0.0
    transaction_count: int = 0
