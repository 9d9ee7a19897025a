"""
Tests for transaction persistence: single and batch creates, duplicate
detection, lookups, pagination, partial updates and subscription flags.
"""

import threading
import unittest
from datetime import date

from finance_store.config import DatabaseConfig
from finance_store.db.database import Database
from finance_store.db.errors import (
    ConstraintViolation,
    DatabaseErrorType,
    ValidationFailed,
)
from finance_store.models.subscription import BillingFrequency, Subscription
from finance_store.models.transaction import PaginationOptions, Transaction, TransactionType
from finance_store.models.updates import TransactionUpdate
from finance_store.repository import FinanceRepository


def _make_repo() -> FinanceRepository:
    repo = FinanceRepository(Database(DatabaseConfig(filename=":memory:")))
    repo.initialize()
    return repo


def _sample_txn(**overrides) -> Transaction:
    defaults = dict(
        date=date(2024, 1, 1),
        description="Coffee",
        amount=-3.5,
        type=TransactionType.EXPENSE,
    )
    defaults.update(overrides)
    return Transaction(**defaults)


def _sample_subscription(**overrides) -> Subscription:
    defaults = dict(
        name="Streaming",
        amount=129.0,
        billing_frequency=BillingFrequency.MONTHLY,
        next_payment_date=date(2024, 2, 1),
        category_id="cat_entertainment",
        start_date=date(2023, 1, 1),
    )
    defaults.update(overrides)
    return Subscription(**defaults)


# ===========================================================================
# Create
# ===========================================================================

class TestCreate(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()

    def tearDown(self):
        self.repo.close()

    def test_create_and_read_back(self):
        txn = self.repo.create(_sample_txn(currency="NOK", category_id="cat_dining"))
        got = self.repo.find_by_id(txn.id)

        self.assertIsNotNone(got)
        self.assertEqual(got.date, date(2024, 1, 1))
        self.assertEqual(got.description, "Coffee")
        self.assertEqual(got.amount, -3.5)
        self.assertEqual(got.type, TransactionType.EXPENSE)
        self.assertEqual(got.currency, "NOK")
        self.assertEqual(got.category_id, "cat_dining")
        self.assertFalse(got.is_subscription)

    def test_duplicate_create_raises_constraint_violation(self):
        self.repo.create(_sample_txn())
        with self.assertRaises(ConstraintViolation) as ctx:
            self.repo.create(_sample_txn())

        err = ctx.exception
        self.assertEqual(err.type, DatabaseErrorType.CONSTRAINT_VIOLATION)
        self.assertIn("Duplicate transaction detected", err.message)
        self.assertIn("2024-01-01: Coffee (-3.50)", err.message)
        self.assertEqual(err.params, ["2024-01-01", "Coffee", -3.5])
        self.assertEqual(len(self.repo.find_all()), 1)

    def test_unknown_category_is_rejected(self):
        with self.assertRaises(ConstraintViolation):
            self.repo.create(_sample_txn(category_id="no-such-category"))

    def test_income_identifier_has_plus_sign(self):
        txn = _sample_txn(description="Salary", amount=1000, type="income")
        self.assertEqual(txn.identifier, "2024-01-01: Salary (+1000.00)")


class TestCreateMany(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()

    def tearDown(self):
        self.repo.close()

    def test_empty_batch(self):
        result = self.repo.create_many([])
        self.assertEqual(result.created, [])
        self.assertEqual(result.duplicates, [])
        self.assertEqual(result.total_processed, 0)

    def test_duplicates_are_partitioned(self):
        self.repo.create(_sample_txn())
        batch = [
            _sample_txn(),
            _sample_txn(description="Lunch", amount=-12.0),
            _sample_txn(description="Lunch", amount=-12.0),
        ]

        result = self.repo.create_many(batch)

        self.assertEqual(result.total_processed, 3)
        self.assertEqual([t.description for t in result.created], ["Lunch"])
        self.assertEqual(len(result.duplicates), 2)
        self.assertEqual(result.duplicates[0].identifier, "2024-01-01: Coffee (-3.50)")
        self.assertEqual(len(result.created) + len(result.duplicates), result.total_processed)
        self.assertEqual(len(self.repo.find_all()), 2)

    def test_other_failure_rolls_back_batch(self):
        batch = [
            _sample_txn(description="Valid"),
            _sample_txn(description="Orphan", category_id="no-such-category"),
        ]
        with self.assertRaises(ConstraintViolation):
            self.repo.create_many(batch)
        self.assertEqual(self.repo.find_all(), [])

    def test_check_duplicates_does_not_write(self):
        self.repo.create(_sample_txn())
        dups = self.repo.check_duplicates([_sample_txn(), _sample_txn(description="Tea")])
        self.assertEqual([d.description for d in dups], ["Coffee"])
        self.assertEqual(len(self.repo.find_all()), 1)


# ===========================================================================
# Read
# ===========================================================================

class TestRead(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()
        for day, desc in ((3, "C"), (1, "A"), (2, "B")):
            self.repo.create(_sample_txn(date=date(2024, 1, day), description=desc))

    def tearDown(self):
        self.repo.close()

    def test_find_all_newest_first(self):
        self.assertEqual([t.description for t in self.repo.find_all()], ["C", "B", "A"])

    def test_find_by_id_missing(self):
        self.assertIsNone(self.repo.find_by_id("nope"))

    def test_date_range_is_inclusive(self):
        found = self.repo.find_by_date_range(date(2024, 1, 1), "2024-01-02")
        self.assertEqual([t.description for t in found], ["B", "A"])


class TestPagination(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()
        txns = [
            _sample_txn(date=date(2024, 1, 1 + i), description=f"Item {i:02d}",
                        amount=-(i + 1.0), category_id="cat_groceries" if i % 2 else None)
            for i in range(25)
        ]
        self.repo.create_many(txns)

    def tearDown(self):
        self.repo.close()

    def test_second_page(self):
        page = self.repo.find_with_pagination(PaginationOptions(page=2, limit=10))
        self.assertEqual(len(page.data), 10)
        self.assertEqual(page.pagination.total, 25)
        self.assertEqual(page.pagination.total_pages, 3)
        self.assertTrue(page.pagination.has_next_page)
        self.assertTrue(page.pagination.has_previous_page)
        self.assertEqual(page.data[0].description, "Item 14")

    def test_last_page(self):
        page = self.repo.find_with_pagination(PaginationOptions(page=3, limit=10))
        self.assertEqual(len(page.data), 5)
        self.assertFalse(page.pagination.has_next_page)

    def test_sort_by_amount_ascending(self):
        page = self.repo.find_with_pagination(
            PaginationOptions(limit=3, sort_by="amount", sort_order="asc"))
        self.assertEqual([t.amount for t in page.data], [-25.0, -24.0, -23.0])

    def test_unknown_sort_field_falls_back_to_date(self):
        page = self.repo.find_with_pagination(
            PaginationOptions(limit=1, sort_by="id; DROP TABLE transactions"))
        self.assertEqual(page.data[0].description, "Item 24")

    def test_filters(self):
        page = self.repo.find_with_pagination(PaginationOptions(search_term=" Item 1"))
        self.assertEqual(page.pagination.total, 10)

        page = self.repo.find_with_pagination(
            PaginationOptions(date_from=date(2024, 1, 1), date_to=date(2024, 1, 5)))
        self.assertEqual(page.pagination.total, 5)

        page = self.repo.find_with_pagination(PaginationOptions(transaction_type="income"))
        self.assertEqual(page.pagination.total, 0)
        self.assertEqual(page.pagination.total_pages, 0)
        self.assertFalse(page.pagination.has_next_page)

    def test_search_wildcards_match_literally(self):
        self.repo.create(_sample_txn(date=date(2024, 3, 1), description="Refund 100% back"))
        page = self.repo.find_with_pagination(PaginationOptions(search_term="100%"))
        self.assertEqual([t.description for t in page.data], ["Refund 100% back"])
        page = self.repo.find_with_pagination(PaginationOptions(search_term="%"))
        self.assertEqual(page.pagination.total, 1)
        page = self.repo.find_with_pagination(PaginationOptions(search_term="Item _"))
        self.assertEqual(page.pagination.total, 0)

    def test_category_filters(self):
        only = self.repo.find_with_pagination(PaginationOptions(category_ids=["cat_groceries"]))
        self.assertEqual(only.pagination.total, 12)

        uncategorized = self.repo.find_with_pagination(
            PaginationOptions(include_uncategorized=True))
        self.assertEqual(uncategorized.pagination.total, 13)

        both = self.repo.find_with_pagination(
            PaginationOptions(category_ids=["cat_groceries"], include_uncategorized=True))
        self.assertEqual(both.pagination.total, 25)

    def test_invalid_options(self):
        with self.assertRaises(ValidationFailed):
            self.repo.find_with_pagination(PaginationOptions(page=0))
        with self.assertRaises(ValidationFailed):
            self.repo.find_with_pagination(PaginationOptions(limit=0))
        with self.assertRaises(ValidationFailed):
            self.repo.find_with_pagination(PaginationOptions(transaction_type="gift"))


# ===========================================================================
# Update / delete
# ===========================================================================

class TestUpdateDelete(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()
        self.txn = self.repo.create(_sample_txn(category_id="cat_dining"))

    def tearDown(self):
        self.repo.close()

    def test_partial_update_with_fields(self):
        got = self.repo.update(self.txn.id, description="Espresso")
        self.assertEqual(got.description, "Espresso")
        self.assertEqual(got.amount, -3.5)
        self.assertEqual(got.category_id, "cat_dining")

    def test_partial_update_with_model(self):
        got = self.repo.update(self.txn.id, TransactionUpdate(category_id=None, amount=-4.0))
        self.assertIsNone(got.category_id)
        self.assertEqual(got.amount, -4.0)
        self.assertEqual(got.description, "Coffee")

    def test_update_missing_returns_none(self):
        self.assertIsNone(self.repo.update("nope", description="x"))

    def test_update_unknown_field(self):
        with self.assertRaises(ValidationFailed):
            self.repo.update(self.txn.id, colour="red")

    def test_update_into_duplicate(self):
        other = self.repo.create(_sample_txn(description="Tea"))
        with self.assertRaises(ConstraintViolation):
            self.repo.update(other.id, description="Coffee")

    def test_delete(self):
        self.assertTrue(self.repo.delete(self.txn.id))
        self.assertFalse(self.repo.delete(self.txn.id))
        self.assertIsNone(self.repo.find_by_id(self.txn.id))


class TestSubscriptionFlags(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()
        self.sub = self.repo.create_subscription(_sample_subscription())
        self.txn = self.repo.create(_sample_txn(description="STREAMING AS", amount=-129.0))

    def tearDown(self):
        self.repo.close()

    def test_flag_and_unflag(self):
        self.assertTrue(self.repo.flag_transaction_as_subscription(self.txn.id, self.sub.id))
        flagged = self.repo.find_subscription_transactions(self.sub.id)
        self.assertEqual([t.id for t in flagged], [self.txn.id])
        self.assertTrue(flagged[0].is_subscription)

        self.assertTrue(self.repo.unflag_transaction_as_subscription(self.txn.id))
        got = self.repo.find_by_id(self.txn.id)
        self.assertFalse(got.is_subscription)
        self.assertIsNone(got.subscription_id)
        self.assertEqual(self.repo.find_subscription_transactions(self.sub.id), [])

    def test_flag_missing_transaction(self):
        self.assertFalse(self.repo.flag_transaction_as_subscription("nope", self.sub.id))

    def test_flag_with_unknown_subscription(self):
        with self.assertRaises(ConstraintViolation):
            self.repo.flag_transaction_as_subscription(self.txn.id, "no-such-subscription")


# ===========================================================================
# Concurrent callers
# ===========================================================================

class TestConcurrentCallers(unittest.TestCase):

    def setUp(self):
        self.repo = _make_repo()

    def tearDown(self):
        self.repo.close()

    def test_other_thread_waits_for_open_transaction(self):
        results = {}

        def create_in_worker():
            results["txn"] = self.repo.create(_sample_txn(description="From worker"))

        worker = threading.Thread(target=create_in_worker)
        with self.assertRaises(RuntimeError):
            with self.repo.db.transaction():
                self.repo.create(_sample_txn(description="From caller"))
                worker.start()
                worker.join(timeout=0.2)
                self.assertTrue(worker.is_alive())
                raise RuntimeError("caller gave up")
        worker.join(timeout=5)

        self.assertFalse(worker.is_alive())
        self.assertIn("txn", results)
        self.assertEqual([t.description for t in self.repo.find_all()], ["From worker"])


if __name__ == "__main__":
    unittest.main()
