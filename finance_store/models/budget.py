"""Budget, scenario and alert models, plus derived budget metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from finance_store.models.fields import (
    bool_to_db,
    date_to_db,
    new_id,
    number_list_to_db,
    timestamp_to_db,
    to_bool,
    to_date,
    to_number_list,
    to_timestamp,
    utcnow,
)

# end dates at or past this year mean "no end": progress uses the current month/year
INDEFINITE_YEAR = 9999
INDEFINITE_END_DATE = date(INDEFINITE_YEAR, 12, 31)

AT_RISK_PERCENT = 85.0
OVER_BUDGET_PERCENT = 100.0


class BudgetPeriod(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class AlertType(str, Enum):
    THRESHOLD = "threshold"
    PROJECTION = "projection"
    EXCEEDED = "exceeded"


class BudgetStatus(str, Enum):
    ON_TRACK = "on-track"
    AT_RISK = "at-risk"
    OVER_BUDGET = "over-budget"

    @classmethod
    def for_percentage(cls, percentage: float) -> "BudgetStatus":
        if percentage >= OVER_BUDGET_PERCENT:
            return cls.OVER_BUDGET
        if percentage >= AT_RISK_PERCENT:
            return cls.AT_RISK
        return cls.ON_TRACK


@dataclass
class Budget:
    name: str
    category_id: str
    amount: float
    period: BudgetPeriod
    start_date: date
    end_date: date
    id: str = field(default_factory=new_id)
    description: Optional[str] = None
    currency: str = "NOK"
    is_active: bool = True
    alert_thresholds: list[float] = field(default_factory=list)
    scenario_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.period = BudgetPeriod(self.period)
        self.start_date = to_date(self.start_date)  # type: ignore[assignment]
        self.end_date = to_date(self.end_date)  # type: ignore[assignment]

    @property
    def is_indefinite(self) -> bool:
        return self.end_date.year >= INDEFINITE_YEAR

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category_id": self.category_id,
            "amount": self.amount,
            "currency": self.currency,
            "period": self.period.value,
            "start_date": date_to_db(self.start_date),
            "end_date": date_to_db(self.end_date),
            "is_active": bool_to_db(self.is_active),
            "alert_thresholds": number_list_to_db(self.alert_thresholds),
            "scenario_id": self.scenario_id,
            "created_at": timestamp_to_db(self.created_at),
            "updated_at": timestamp_to_db(self.updated_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Budget":
        return cls(
            id=row["id"],
            name=row["name"],
            description=row.get("description"),
            category_id=row["category_id"],
            amount=row["amount"],
            currency=row.get("currency") or "NOK",
            period=BudgetPeriod(row["period"]),
            start_date=to_date(row["start_date"]),  # type: ignore[arg-type]
            end_date=to_date(row["end_date"]),  # type: ignore[arg-type]
            is_active=to_bool(row.get("is_active")),
            alert_thresholds=to_number_list(row.get("alert_thresholds")),
            scenario_id=row.get("scenario_id"),
            created_at=to_timestamp(row.get("created_at")) or utcnow(),
            updated_at=to_timestamp(row.get("updated_at")) or utcnow(),
        )


@dataclass
class BudgetScenario:
    """A named set of budgets. At most one scenario is active at a time."""

    name: str
    id: str = field(default_factory=new_id)
    description: Optional[str] = None
    is_active: bool = False
    budgets: list[Budget] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def total_budgeted(self) -> float:
        return sum(b.amount for b in self.budgets)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": bool_to_db(self.is_active),
            "created_at": timestamp_to_db(self.created_at),
            "updated_at": timestamp_to_db(self.updated_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "BudgetScenario":
        return cls(
            id=row["id"],
            name=row["name"],
            description=row.get("description"),
            is_active=to_bool(row.get("is_active")),
            created_at=to_timestamp(row.get("created_at")) or utcnow(),
            updated_at=to_timestamp(row.get("updated_at")) or utcnow(),
        )


@dataclass
class BudgetAlert:
    budget_id: str
    alert_type: AlertType
    message: str
    id: str = field(default_factory=new_id)
    threshold_percentage: Optional[int] = None
    is_read: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.alert_type = AlertType(self.alert_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "budget_id": self.budget_id,
            "alert_type": self.alert_type.value,
            "threshold_percentage": self.threshold_percentage,
            "message": self.message,
            "is_read": bool_to_db(self.is_read),
            "created_at": timestamp_to_db(self.created_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "BudgetAlert":
        return cls(
            id=row["id"],
            budget_id=row["budget_id"],
            alert_type=AlertType(row["alert_type"]),
            threshold_percentage=row.get("threshold_percentage"),
            message=row["message"],
            is_read=to_bool(row.get("is_read")),
            created_at=to_timestamp(row.get("created_at")) or utcnow(),
        )


@dataclass
class BudgetProgress:
    budget_id: str
    budget: Budget
    period_start: date
    period_end: date
    current_spent: float
    remaining_amount: float
    percentage_spent: float
    status: BudgetStatus
    projected_spent: float
    days_remaining: int
    average_daily_spend: float
    subscription_allocated: float
    variable_spent: float
    last_updated: datetime = field(default_factory=utcnow)


@dataclass
class SpendingAnalysis:
    category_id: str
    period_months: int
    average_monthly: float = 0.0
    min_monthly: float = 0.0
    max_monthly: float = 0.0
    standard_deviation: float = 0.0
    trend: float = 0.0
    subscription_costs: float = 0.0
    variable_spending: float = 0.0
    confidence: float = 0.0
