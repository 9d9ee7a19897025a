"""Repository for ``categories`` and ``category_rules``."""

from __future__ import annotations

import sqlite3
from typing import Any, Optional

from finance_store.db.database import Database
from finance_store.db.errors import (
    ConstraintViolation,
    TransactionFailed,
    ValidationFailed,
    database_errors,
)
from finance_store.db.helpers import coerce_update, insert_row, is_unique_violation, update_row
from finance_store.models.category import Category, CategoryRule, adjust_confidence
from finance_store.models.fields import now_iso
from finance_store.models.updates import CategoryUpdate


class CategoryRepository:
    def __init__(self, db: Database):
        self._db = db

    # -- Categories ------------------------------------------------------------

    def get_categories(self) -> list[Category]:
        """Active categories, by name."""
        with database_errors("fetch categories", "SELECT FROM categories"):
            rows = self._db.fetchall(
                "SELECT * FROM categories WHERE is_active = 1 ORDER BY name"
            )
        return [Category.from_row(r) for r in rows]

    def get_category_by_id(self, category_id: str) -> Optional[Category]:
        with database_errors("fetch category", "SELECT FROM categories WHERE id = ?",
                             [category_id]):
            row = self._db.fetchone("SELECT * FROM categories WHERE id = ?", (category_id,))
        return Category.from_row(row) if row else None

    def create_category(self, category: Category) -> Category:
        if not category.name or not category.name.strip():
            raise ValidationFailed("Category name must not be empty")
        try:
            with self._db.transaction() as conn:
                insert_row(conn, "categories", category.to_dict())
        except sqlite3.IntegrityError as exc:
            message = (f"Category already exists: {category.name}" if is_unique_violation(exc)
                       else f"Failed to create category: {exc}")
            raise ConstraintViolation(message, "INSERT INTO categories",
                                      [category.id, category.name]) from exc
        except sqlite3.Error as exc:
            raise TransactionFailed(f"Failed to create category: {exc}",
                                    "INSERT INTO categories", [category.id]) from exc
        return category

    def update_category(
        self, category_id: str, update: Optional[CategoryUpdate] = None, **fields: Any
    ) -> Optional[Category]:
        columns = coerce_update(CategoryUpdate, update, fields).to_columns()
        if self.get_category_by_id(category_id) is None:
            return None
        with database_errors("update category", "UPDATE categories", [category_id, columns]):
            with self._db.transaction() as conn:
                update_row(conn, "categories", category_id, columns)
        return self.get_category_by_id(category_id)

    def delete_category(self, category_id: str) -> bool:
        """Soft delete: the row stays so existing references remain valid."""
        with database_errors("delete category", "UPDATE categories SET is_active = 0",
                             [category_id]):
            with self._db.transaction() as conn:
                changed = update_row(conn, "categories", category_id, {"is_active": 0})
        return changed > 0

    # -- Category rules --------------------------------------------------------

    def get_category_rules(self) -> list[CategoryRule]:
        with database_errors("fetch category rules", "SELECT FROM category_rules"):
            rows = self._db.fetchall(
                """SELECT * FROM category_rules
                   WHERE is_active = 1
                   ORDER BY confidence_score DESC, usage_count DESC"""
            )
        return [CategoryRule.from_row(r) for r in rows]

    def get_category_rule_by_id(self, rule_id: str) -> Optional[CategoryRule]:
        with database_errors("fetch category rule", "SELECT FROM category_rules WHERE id = ?",
                             [rule_id]):
            row = self._db.fetchone("SELECT * FROM category_rules WHERE id = ?", (rule_id,))
        return CategoryRule.from_row(row) if row else None

    def create_category_rule(self, rule: CategoryRule) -> CategoryRule:
        if not 0.0 <= rule.confidence_score <= 1.0:
            raise ValidationFailed(
                f"Confidence score must be within [0, 1], got {rule.confidence_score}"
            )
        with database_errors("create category rule", "INSERT INTO category_rules",
                             [rule.category_id, rule.pattern]):
            with self._db.transaction() as conn:
                insert_row(conn, "category_rules", rule.to_dict())
        return rule

    def update_rule_usage(self, rule_id: str, was_correct: bool) -> Optional[CategoryRule]:
        """Apply categorization feedback. Unknown ids are ignored."""
        with database_errors("update rule usage", "UPDATE category_rules", [rule_id, was_correct]):
            with self._db.transaction() as conn:
                row = conn.execute(
                    "SELECT confidence_score FROM category_rules WHERE id = ?", (rule_id,)
                ).fetchone()
                if row is None:
                    return None
                now = now_iso()
                conn.execute(
                    """UPDATE category_rules
                       SET confidence_score = ?, usage_count = usage_count + 1,
                           last_used_at = ?, updated_at = ?
                       WHERE id = ?""",
                    (adjust_confidence(row["confidence_score"], was_correct), now, now, rule_id),
                )
        return self.get_category_rule_by_id(rule_id)

    def delete_category_rule(self, rule_id: str) -> bool:
        with database_errors("delete category rule", "DELETE FROM category_rules", [rule_id]):
            with self._db.transaction() as conn:
                cursor = conn.execute("DELETE FROM category_rules WHERE id = ?", (rule_id,))
        return cursor.rowcount > 0
