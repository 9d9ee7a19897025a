"""Repository for the ``transactions`` table: CRUD, batch import, paging and duplicate checks."""

from __future__ import annotations

import logging
import math
import sqlite3
from typing import Any, Iterable, Optional

from finance_store.db.database import Database
from finance_store.db.errors import (
    ConstraintViolation,
    TransactionFailed,
    ValidationFailed,
    database_errors,
)
from finance_store.db.helpers import (
    coerce_update,
    escape_like,
    insert_row,
    is_unique_violation,
    update_row,
)
from finance_store.models.fields import DateLike, date_to_db
from finance_store.models.transaction import (
    SORT_FIELDS,
    CreateManyResult,
    DuplicateInfo,
    PageInfo,
    PaginatedResult,
    PaginationOptions,
    Transaction,
    TransactionType,
)
from finance_store.models.updates import TransactionUpdate

logger = logging.getLogger(__name__)

INSERT_SHAPE = "INSERT INTO transactions"


class TransactionRepository:
    """Transaction persistence. Single creates fail loudly on duplicates, batches partition them."""

    def __init__(self, db: Database):
        self._db = db

    # -- Create ----------------------------------------------------------------

    def create(self, txn: Transaction) -> Transaction:
        try:
            with self._db.transaction() as conn:
                insert_row(conn, "transactions", txn.to_dict())
        except sqlite3.IntegrityError as exc:
            if is_unique_violation(exc):
                raise ConstraintViolation(
                    f"Duplicate transaction detected: {txn.identifier}",
                    INSERT_SHAPE,
                    list(txn.natural_key),
                ) from exc
            raise ConstraintViolation(
                f"Failed to create transaction: {exc}", INSERT_SHAPE, list(txn.natural_key)
            ) from exc
        except sqlite3.Error as exc:
            raise TransactionFailed(
                f"Failed to create transaction: {exc}", INSERT_SHAPE, list(txn.natural_key)
            ) from exc
        return txn

    def create_many(self, txns: Iterable[Transaction]) -> CreateManyResult:
        """Insert a batch atomically, diverting rows that collide on the natural key.

        Rows already persisted are classified up front; rows that still hit the
        unique index at insert time (including repeats within the batch) are
        reclassified individually. Any other failure rolls the batch back.
        """
        txns = list(txns)
        if not txns:
            return CreateManyResult(total_processed=0)

        known = {(d.date.isoformat(), d.description, float(d.amount))
                 for d in self.check_duplicates(txns)}
        result = CreateManyResult(total_processed=len(txns))

        with database_errors("create transactions", f"{INSERT_SHAPE} (batch)"):
            with self._db.transaction() as conn:
                for txn in txns:
                    if txn.natural_key in known:
                        result.duplicates.append(DuplicateInfo.of(txn))
                        continue
                    try:
                        insert_row(conn, "transactions", txn.to_dict())
                    except sqlite3.IntegrityError as exc:
                        if not is_unique_violation(exc):
                            raise
                        logger.warning(f"Duplicate rejected at insert: {txn.identifier}")
                        result.duplicates.append(DuplicateInfo.of(txn))
                        continue
                    result.created.append(txn)

        logger.info(
            f"Batch import: {len(result.created)} created, "
            f"{len(result.duplicates)} duplicates of {result.total_processed}"
        )
        return result

    # -- Read ------------------------------------------------------------------

    def find_all(self) -> list[Transaction]:
        with database_errors("fetch transactions", "SELECT FROM transactions"):
            rows = self._db.fetchall(
                "SELECT * FROM transactions ORDER BY date DESC, created_at DESC"
            )
        return [Transaction.from_row(r) for r in rows]

    def find_by_id(self, txn_id: str) -> Optional[Transaction]:
        with database_errors("fetch transaction by id", "SELECT FROM transactions WHERE id = ?",
                             [txn_id]):
            row = self._db.fetchone("SELECT * FROM transactions WHERE id = ?", (txn_id,))
        return Transaction.from_row(row) if row else None

    def find_by_date_range(self, start: DateLike, end: DateLike) -> list[Transaction]:
        params = (date_to_db(start), date_to_db(end))
        with database_errors("fetch transactions by date range",
                             "SELECT FROM transactions WHERE date BETWEEN ? AND ?", params):
            rows = self._db.fetchall(
                """SELECT * FROM transactions
                   WHERE date >= ? AND date <= ?
                   ORDER BY date DESC, created_at DESC""",
                params,
            )
        return [Transaction.from_row(r) for r in rows]

    def check_duplicates(self, txns: Iterable[Transaction]) -> list[DuplicateInfo]:
        """Report which candidates already exist by natural key, without writing."""
        duplicates: list[DuplicateInfo] = []
        with database_errors("check duplicates", "SELECT FROM transactions (duplicate check)"):
            for txn in txns:
                row = self._db.fetchone(
                    """SELECT id FROM transactions
                       WHERE date = ? AND description = ? AND amount = ?
                       LIMIT 1""",
                    txn.natural_key,
                )
                if row:
                    duplicates.append(DuplicateInfo.of(txn))
        return duplicates

    # -- List / Filter ---------------------------------------------------------

    def find_with_pagination(
        self, options: Optional[PaginationOptions] = None
    ) -> PaginatedResult[Transaction]:
        opts = options or PaginationOptions()
        if opts.page < 1 or opts.limit < 1:
            raise ValidationFailed(
                f"page and limit must be >= 1, got page={opts.page} limit={opts.limit}"
            )
        if opts.transaction_type != "all":
            try:
                TransactionType(opts.transaction_type)
            except ValueError as exc:
                raise ValidationFailed(
                    f"Unknown transaction type: {opts.transaction_type!r}"
                ) from exc

        clauses: list[str] = []
        params: list[Any] = []
        if opts.date_from:
            clauses.append("date >= ?")
            params.append(date_to_db(opts.date_from))
        if opts.date_to:
            clauses.append("date <= ?")
            params.append(date_to_db(opts.date_to))
        if opts.transaction_type != "all":
            clauses.append("type = ?")
            params.append(TransactionType(opts.transaction_type).value)
        if opts.search_term and opts.search_term.strip():
            clauses.append("description LIKE ? ESCAPE '\\'")
            params.append(f"%{escape_like(opts.search_term.strip())}%")
        if opts.category_ids:
            marks = ", ".join("?" for _ in opts.category_ids)
            if opts.include_uncategorized:
                clauses.append(f"(category_id IN ({marks}) OR category_id IS NULL)")
            else:
                clauses.append(f"category_id IN ({marks})")
            params.extend(opts.category_ids)
        elif opts.include_uncategorized:
            clauses.append("category_id IS NULL")

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        sort_field = opts.sort_by if opts.sort_by in SORT_FIELDS else "date"
        sort_order = "ASC" if str(opts.sort_order).upper() == "ASC" else "DESC"
        offset = (opts.page - 1) * opts.limit

        with database_errors("fetch paginated transactions", "SELECT FROM transactions (paged)",
                             params):
            total_row = self._db.fetchone(
                f"SELECT COUNT(*) AS total FROM transactions{where}", tuple(params)
            )
            rows = self._db.fetchall(
                f"""SELECT * FROM transactions{where}
                    ORDER BY {sort_field} {sort_order}, created_at {sort_order}
                    LIMIT ? OFFSET ?""",
                (*params, opts.limit, offset),
            )

        total = total_row["total"] if total_row else 0
        total_pages = math.ceil(total / opts.limit)
        return PaginatedResult(
            data=[Transaction.from_row(r) for r in rows],
            pagination=PageInfo(
                current_page=opts.page,
                limit=opts.limit,
                total=total,
                total_pages=total_pages,
                has_next_page=opts.page < total_pages,
                has_previous_page=opts.page > 1,
            ),
        )

    # -- Update ----------------------------------------------------------------

    def update(
        self, txn_id: str, update: Optional[TransactionUpdate] = None, **fields: Any
    ) -> Optional[Transaction]:
        columns = coerce_update(TransactionUpdate, update, fields).to_columns()
        if self.find_by_id(txn_id) is None:
            return None
        try:
            with self._db.transaction() as conn:
                update_row(conn, "transactions", txn_id, columns)
        except sqlite3.IntegrityError as exc:
            message = ("Update would create duplicate transaction" if is_unique_violation(exc)
                       else f"Failed to update transaction: {exc}")
            raise ConstraintViolation(message, "UPDATE transactions", [txn_id, columns]) from exc
        except sqlite3.Error as exc:
            raise TransactionFailed(
                f"Failed to update transaction: {exc}", "UPDATE transactions", [txn_id, columns]
            ) from exc
        return self.find_by_id(txn_id)

    # -- Subscription flags ----------------------------------------------------

    def flag_as_subscription(self, txn_id: str, subscription_id: str) -> bool:
        with database_errors("flag transaction as subscription", "UPDATE transactions",
                             [txn_id, subscription_id]):
            with self._db.transaction() as conn:
                changed = update_row(
                    conn, "transactions", txn_id,
                    {"is_subscription": 1, "subscription_id": subscription_id},
                )
        return changed > 0

    def unflag_as_subscription(self, txn_id: str) -> bool:
        with database_errors("unflag transaction as subscription", "UPDATE transactions",
                             [txn_id]):
            with self._db.transaction() as conn:
                changed = update_row(
                    conn, "transactions", txn_id,
                    {"is_subscription": 0, "subscription_id": None},
                )
        return changed > 0

    def find_subscription_transactions(self, subscription_id: str) -> list[Transaction]:
        with database_errors("fetch subscription transactions",
                             "SELECT FROM transactions WHERE subscription_id = ?",
                             [subscription_id]):
            rows = self._db.fetchall(
                """SELECT * FROM transactions
                   WHERE subscription_id = ?
                   ORDER BY date DESC, created_at DESC""",
                (subscription_id,),
            )
        return [Transaction.from_row(r) for r in rows]

    # -- Delete ----------------------------------------------------------------

    def delete(self, txn_id: str) -> bool:
        with database_errors("delete transaction", "DELETE FROM transactions", [txn_id]):
            with self._db.transaction() as conn:
                cursor = conn.execute("DELETE FROM transactions WHERE id = ?", (txn_id,))
        return cursor.rowcount > 0
