import sqlite3
import unittest
from datetime import date

from stockledger.database import begin_write
from stockledger.services.profitability import store_revenue
from tests.support import DatabaseTestCase


class WriteIntentTest(DatabaseTestCase, unittest.TestCase):
    def setUp(self):
        super().setUp()
        self.seed_catalog()
        self.create_sale(1, sale_date=date(2024, 3, 5))

    def _try_write_lock(self):
        """Return the error text from a competing writer, or None if it got the lock."""
        other = sqlite3.connect(str(self.db_path), timeout=0.2, isolation_level=None)
        try:
            other.execute("BEGIN IMMEDIATE")
            other.execute("ROLLBACK")
            return None
        except sqlite3.OperationalError as exc:
            return str(exc)
        finally:
            other.close()

    def test_reader_session_leaves_write_lock_free(self):
        db = self.Session()
        try:
            store_revenue(db, 1, date(2024, 3, 1), date(2024, 4, 1))
            self.assertTrue(db.in_transaction())
            self.assertIsNone(self._try_write_lock())
        finally:
            db.close()

    def test_writer_session_holds_write_lock_until_commit(self):
        db = self.Session()
        try:
            begin_write(db)
            self.assertEqual(self._try_write_lock(), "database is locked")
            db.commit()
            self.assertIsNone(self._try_write_lock())
        finally:
            db.close()


if __name__ == "__main__":
    unittest.main()
