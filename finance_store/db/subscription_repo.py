"""Repository for ``subscriptions`` and ``subscription_patterns``."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Optional

from finance_store.db.database import Database
from finance_store.db.errors import ValidationFailed, database_errors
from finance_store.db.helpers import coerce_update, insert_row, update_row
from finance_store.models.category import adjust_confidence
from finance_store.models.fields import now_iso
from finance_store.models.subscription import (
    DAYS_PER_MONTH,
    BillingFrequency,
    Subscription,
    SubscriptionPattern,
    monthly_equivalent,
)
from finance_store.models.updates import SubscriptionUpdate

logger = logging.getLogger(__name__)

# Monthly-equivalent cost of active subscriptions in one category. A custom
# frequency without a day count is treated as a 30-day cycle here.
CATEGORY_MONTHLY_COST_SQL = f"""
SELECT COALESCE(SUM(
    CASE
        WHEN billing_frequency = 'monthly' THEN amount
        WHEN billing_frequency = 'quarterly' THEN amount / 3.0
        WHEN billing_frequency = 'annually' THEN amount / 12.0
        ELSE amount / (COALESCE(custom_frequency_days, 30) / {DAYS_PER_MONTH})
    END
), 0) AS monthly_cost
FROM subscriptions
WHERE category_id = ? AND is_active = 1
"""


def _check_frequency(frequency: BillingFrequency, custom_days: Optional[int]) -> None:
    if frequency == BillingFrequency.CUSTOM and (custom_days is None or custom_days <= 0):
        raise ValidationFailed("A custom billing frequency needs a positive custom_frequency_days")


class SubscriptionRepository:
    """Subscription persistence, including the delete cascade onto patterns and transactions."""

    def __init__(self, db: Database):
        self._db = db

    # -- Create ----------------------------------------------------------------

    def create_subscription(self, sub: Subscription) -> Subscription:
        _check_frequency(sub.billing_frequency, sub.custom_frequency_days)
        if sub.usage_rating is not None and not 1 <= sub.usage_rating <= 5:
            raise ValidationFailed(f"Usage rating must be between 1 and 5, got {sub.usage_rating}")
        with database_errors("create subscription", "INSERT INTO subscriptions",
                             [sub.id, sub.name]):
            with self._db.transaction() as conn:
                insert_row(conn, "subscriptions", sub.to_dict())
        logger.info(f"Created subscription {sub.id}: {sub.name}")
        return sub

    # -- Read ------------------------------------------------------------------

    def _query(self, action: str, sql: str, params: tuple = ()) -> list[Subscription]:
        with database_errors(action, " ".join(sql.split()), list(params)):
            rows = self._db.fetchall(sql, params)
        return [Subscription.from_row(r) for r in rows]

    def find_all_subscriptions(self) -> list[Subscription]:
        return self._query("fetch subscriptions", "SELECT * FROM subscriptions ORDER BY name")

    def find_subscription_by_id(self, sub_id: str) -> Optional[Subscription]:
        found = self._query("fetch subscription",
                            "SELECT * FROM subscriptions WHERE id = ?", (sub_id,))
        return found[0] if found else None

    def find_subscriptions_by_category(self, category_id: str) -> list[Subscription]:
        return self._query(
            "fetch subscriptions by category",
            "SELECT * FROM subscriptions WHERE category_id = ? ORDER BY name",
            (category_id,),
        )

    def find_active_subscriptions(self) -> list[Subscription]:
        return self._query(
            "fetch active subscriptions",
            "SELECT * FROM subscriptions WHERE is_active = 1 ORDER BY next_payment_date ASC",
        )

    def find_upcoming_payments(self, days: int, today: Optional[date] = None) -> list[Subscription]:
        horizon = (today or date.today()) + timedelta(days=days)
        return self._query(
            "fetch upcoming payments",
            """SELECT * FROM subscriptions
               WHERE is_active = 1 AND next_payment_date <= ?
               ORDER BY next_payment_date ASC""",
            (horizon.isoformat(),),
        )

    def find_unused_subscriptions(
        self, days_since_last_use: int, today: Optional[date] = None
    ) -> list[Subscription]:
        cutoff = (today or date.today()) - timedelta(days=days_since_last_use)
        return self._query(
            "fetch unused subscriptions",
            """SELECT * FROM subscriptions
               WHERE is_active = 1 AND (last_used_date IS NULL OR last_used_date < ?)
               ORDER BY amount DESC""",
            (cutoff.isoformat(),),
        )

    # -- Cost ------------------------------------------------------------------

    def calculate_total_monthly_cost(self) -> float:
        with database_errors("calculate total monthly cost",
                             "SELECT FROM subscriptions (monthly cost calculation)"):
            rows = self._db.fetchall(
                """SELECT amount, billing_frequency, custom_frequency_days
                   FROM subscriptions WHERE is_active = 1"""
            )
        return float(sum(
            monthly_equivalent(r["amount"], BillingFrequency(r["billing_frequency"]),
                               r["custom_frequency_days"])
            for r in rows
        ))

    def monthly_cost_for_category(self, category_id: str) -> float:
        with database_errors("calculate category subscription cost",
                             "SELECT FROM subscriptions (category monthly cost)", [category_id]):
            row = self._db.fetchone(CATEGORY_MONTHLY_COST_SQL, (category_id,))
        return float(row["monthly_cost"]) if row else 0.0

    # -- Update ----------------------------------------------------------------

    def update_subscription(
        self, sub_id: str, update: Optional[SubscriptionUpdate] = None, **fields: Any
    ) -> Optional[Subscription]:
        payload = coerce_update(SubscriptionUpdate, update, fields)
        existing = self.find_subscription_by_id(sub_id)
        if existing is None:
            return None
        columns = payload.to_columns()
        _check_frequency(
            BillingFrequency(columns.get("billing_frequency", existing.billing_frequency)),
            columns.get("custom_frequency_days", existing.custom_frequency_days),
        )
        with database_errors("update subscription", "UPDATE subscriptions", [sub_id, columns]):
            with self._db.transaction() as conn:
                update_row(conn, "subscriptions", sub_id, columns)
        return self.find_subscription_by_id(sub_id)

    # -- Delete ----------------------------------------------------------------

    def delete_subscription(self, sub_id: str) -> bool:
        """Remove a subscription with its patterns and detach its transactions, atomically."""
        with database_errors("delete subscription",
                             "DELETE CASCADE subscription and related data", [sub_id]):
            with self._db.transaction() as conn:
                conn.execute("DELETE FROM subscription_patterns WHERE subscription_id = ?",
                             (sub_id,))
                unflagged = conn.execute(
                    """UPDATE transactions
                       SET is_subscription = 0, subscription_id = NULL, updated_at = ?
                       WHERE subscription_id = ?""",
                    (now_iso(), sub_id),
                ).rowcount
                cursor = conn.execute("DELETE FROM subscriptions WHERE id = ?", (sub_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted subscription {sub_id}, unflagged {unflagged} transaction(s)")
        return deleted

    # -- Patterns --------------------------------------------------------------

    def create_subscription_pattern(self, pattern: SubscriptionPattern) -> SubscriptionPattern:
        if not 0.0 <= pattern.confidence_score <= 1.0:
            raise ValidationFailed(
                f"Confidence score must be within [0, 1], got {pattern.confidence_score}"
            )
        with database_errors("create subscription pattern", "INSERT INTO subscription_patterns",
                             [pattern.subscription_id, pattern.pattern]):
            with self._db.transaction() as conn:
                insert_row(conn, "subscription_patterns", pattern.to_dict())
        return pattern

    def find_patterns_by_subscription(self, sub_id: str) -> list[SubscriptionPattern]:
        with database_errors("fetch subscription patterns",
                             "SELECT FROM subscription_patterns WHERE subscription_id = ?",
                             [sub_id]):
            rows = self._db.fetchall(
                """SELECT * FROM subscription_patterns
                   WHERE subscription_id = ? AND is_active = 1
                   ORDER BY confidence_score DESC""",
                (sub_id,),
            )
        return [SubscriptionPattern.from_row(r) for r in rows]

    def find_pattern_by_id(self, pattern_id: str) -> Optional[SubscriptionPattern]:
        with database_errors("fetch subscription pattern",
                             "SELECT FROM subscription_patterns WHERE id = ?", [pattern_id]):
            row = self._db.fetchone("SELECT * FROM subscription_patterns WHERE id = ?",
                                    (pattern_id,))
        return SubscriptionPattern.from_row(row) if row else None

    def update_pattern_usage(
        self, pattern_id: str, was_correct: bool
    ) -> Optional[SubscriptionPattern]:
        with database_errors("update pattern usage", "UPDATE subscription_patterns",
                             [pattern_id, was_correct]):
            with self._db.transaction() as conn:
                row = conn.execute(
                    "SELECT confidence_score FROM subscription_patterns WHERE id = ?",
                    (pattern_id,),
                ).fetchone()
                if row is None:
                    return None
                update_row(conn, "subscription_patterns", pattern_id, {
                    "confidence_score": adjust_confidence(row["confidence_score"], was_correct),
                })
        return self.find_pattern_by_id(pattern_id)

    def delete_subscription_pattern(self, pattern_id: str) -> bool:
        with database_errors("delete subscription pattern", "DELETE FROM subscription_patterns",
                             [pattern_id]):
            with self._db.transaction() as conn:
                cursor = conn.execute("DELETE FROM subscription_patterns WHERE id = ?",
                                      (pattern_id,))
        return cursor.rowcount > 0

