import os
import shutil
import sqlite3
import tempfile
import unittest

from nation_sql import transactions
from nation_sql.config import SessionConfig
from nation_sql.database import connect
from nation_sql.session import QueryTimeout, Session
from tests.support import seeded_database


def stats_for(conn, country_id, year):
    return conn.execute(
        "SELECT gdp, population FROM country_stats WHERE country_id = ? AND year = ?",
        (country_id, year)).fetchall()[0]


def has_language(conn, country_id, language_id):
    return conn.execute(
        "SELECT 1 FROM country_languages WHERE country_id = ? AND language_id = ?",
        (country_id, language_id)).fetchall() != []


class TransactionVisibilityTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.tmpdir, "nation.sqlite")
        seeded_database(self.db_path).close()
        self.conn = connect(self.db_path)

    def tearDown(self):
        self.conn.close()
        shutil.rmtree(self.tmpdir)

    def test_commit_makes_both_visible_to_new_session(self):
        result = transactions.update_stats_and_add_language(
            self.conn, country_id=1, year=2017, gdp=200_000_000_000, population=50_000_001,
            language_country_id=2, language_id=3)
        self.assertTrue(result.committed)
        self.assertEqual((result.rows_updated, result.rows_inserted), (1, 1))

        reader = connect(self.db_path)
        try:
            self.assertEqual(stats_for(reader, 1, 2017), (200_000_000_000, 50_000_001))
            self.assertTrue(has_language(reader, 2, 3))
        finally:
            reader.close()

    def test_failure_leaves_neither_visible(self):
        # language 99 does not exist, so the insert violates a foreign key
        with self.assertRaises(sqlite3.IntegrityError):
            transactions.update_stats_and_add_language(
                self.conn, country_id=1, year=2017, gdp=200_000_000_000, population=1,
                language_country_id=2, language_id=99)
        self.assertFalse(self.conn.in_transaction)

        reader = connect(self.db_path)
        try:
            self.assertEqual(stats_for(reader, 1, 2017), (9_999_999_999, 50_000_000))
            self.assertFalse(has_language(reader, 2, 99))
        finally:
            reader.close()

    def test_uncommitted_update_is_invisible_to_other_session(self):
        reader = connect(self.db_path)
        try:
            with transactions.transaction(self.conn):
                self.conn.execute("UPDATE country_stats SET gdp = 1 WHERE country_id = 1 AND year = 2017")
                self.assertEqual(stats_for(reader, 1, 2017)[0], 9_999_999_999)
            self.assertEqual(stats_for(reader, 1, 2017)[0], 1)
        finally:
            reader.close()


class StoredProcedureTests(unittest.TestCase):
    def setUp(self):
        self.conn = seeded_database()

    def test_duplicate_link_rolls_back_update(self):
        # Kenya already speaks Swahili: primary key violation on insert
        result = transactions.update_country_stats_and_languages(
            self.conn, country_id=1, year=2017, gdp=200_000_000_002, population=50_000_000,
            language_country_id=1, language_id=1)
        self.assertFalse(result.committed)
        self.assertTrue(result.rolled_back)
        self.assertIsInstance(result.error, sqlite3.IntegrityError)
        self.assertEqual(stats_for(self.conn, 1, 2017), (9_999_999_999, 50_000_000))
        self.assertFalse(self.conn.in_transaction)

    def test_missing_country_rolls_back(self):
        # The walkthrough's defaults point at country 53, absent here
        result = transactions.update_country_stats_and_languages(self.conn)
        self.assertFalse(result.committed)
        self.assertEqual(stats_for(self.conn, 1, 2017), (9_999_999_999, 50_000_000))

    def test_success_commits(self):
        result = transactions.update_country_stats_and_languages(
            self.conn, country_id=1, year=2017, language_country_id=5, language_id=5)
        self.assertTrue(result.committed)
        self.assertIsNone(result.error)
        self.assertEqual(stats_for(self.conn, 1, 2017), (200_000_000_002, 50_000_000))
        self.assertTrue(has_language(self.conn, 5, 5))

    def test_nested_transaction_is_refused(self):
        self.conn.execute("BEGIN")
        try:
            self.conn.execute("UPDATE country_stats SET gdp = 7 WHERE country_id = 2 AND year = 2017")
            with self.assertRaises(sqlite3.ProgrammingError):
                transactions.update_country_stats_and_languages(
                    self.conn, language_country_id=5, language_id=5)
            # the caller's transaction is still open with its work intact
            self.assertTrue(self.conn.in_transaction)
            self.assertEqual(stats_for(self.conn, 2, 2017)[0], 7)
            self.assertEqual(stats_for(self.conn, 1, 2017), (9_999_999_999, 50_000_000))
        finally:
            self.conn.execute("ROLLBACK")


class TransactionContextTests(unittest.TestCase):
    def test_rollback_on_non_sql_error(self):
        conn = seeded_database()
        with self.assertRaises(KeyError):
            with transactions.transaction(conn):
                conn.execute("DELETE FROM country_stats")
                raise KeyError("boom")
        self.assertEqual(conn.execute("SELECT COUNT(*) FROM country_stats").fetchone()[0], 9)

    def test_interrupted_write_surfaces_timeout(self):
        with Session(SessionConfig(query_timeout=0.05), conn=seeded_database()) as session:
            with self.assertRaises(QueryTimeout):
                with transactions.transaction(session.conn):
                    session.execute("""
                        UPDATE country_stats SET gdp = (
                            WITH RECURSIVE n(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM n LIMIT 50000000)
                            SELECT COUNT(*) FROM n
                        )
                        WHERE country_id = 1
                    """)
            self.assertFalse(session.conn.in_transaction)
            self.assertEqual(stats_for(session.conn, 1, 2017), (9_999_999_999, 50_000_000))


if __name__ == "__main__":
    unittest.main()
