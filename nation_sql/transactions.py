"""
Transactional Mutation

One unit of work: update a country's yearly statistics and add a language
to a country. Either both statements persist or neither does.

- update_stats_and_add_language: abort and surface (the error propagates
  after ROLLBACK)
- update_country_stats_and_languages: the stored-procedure form; a failed
  statement becomes a rolled-back TransactionResult instead of an exception
"""

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

try:
    from .queries import get_sql
except ImportError:
    from queries import get_sql

logger = logging.getLogger(__name__)


@dataclass
class TransactionResult:
    committed: bool
    error: Optional[Exception] = None
    rows_updated: int = 0
    rows_inserted: int = 0

    @property
    def rolled_back(self) -> bool:
        return not self.committed


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    BEGIN ... COMMIT, or ROLLBACK and re-raise on any exception.

    The connection must be in autocommit mode (isolation_level=None), as
    database.connect() opens it.
    """
    if conn.in_transaction:
        raise sqlite3.ProgrammingError("A transaction is already open on this connection")

    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        # an interrupted write has already been rolled back by SQLite
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        logger.info("Transaction rolled back")
        raise
    else:
        conn.execute("COMMIT")
        logger.debug("Transaction committed")


def update_stats_and_add_language(conn: sqlite3.Connection, country_id: int, year: int,
                                  gdp: int, population: int,
                                  language_country_id: int, language_id: int,
                                  official: bool = True) -> TransactionResult:
    """
    Update (country_id, year) statistics and insert a country/language link
    in a single transaction.

    Raises:
        sqlite3.Error: after rolling back both statements
    """
    with transaction(conn):
        updated = conn.execute(get_sql("Q15"), {
            "gdp": gdp,
            "population": population,
            "country_id": country_id,
            "year": year,
        }).rowcount
        inserted = conn.execute(get_sql("Q16"), {
            "country_id": language_country_id,
            "language_id": language_id,
            "official": int(official),
        }).rowcount
    return TransactionResult(committed=True, rows_updated=updated, rows_inserted=inserted)


def update_country_stats_and_languages(conn: sqlite3.Connection, country_id: int = 1,
                                       year: int = 2017, gdp: int = 200_000_000_002,
                                       population: int = 50_000_000,
                                       language_country_id: int = 53, language_id: int = 9,
                                       official: bool = True) -> TransactionResult:
    """
    Stored-procedure form of update_stats_and_add_language.

    A failed statement is logged, both statements are rolled back, and the
    result carries the cause instead of raising.

    Raises:
        sqlite3.ProgrammingError: a transaction is already open on conn;
            nothing was executed and the caller's transaction is untouched
    """
    try:
        return update_stats_and_add_language(conn, country_id, year, gdp, population,
                                             language_country_id, language_id, official)
    except sqlite3.ProgrammingError:
        raise
    except sqlite3.Error as e:
        logger.warning(f"update_country_stats_and_languages rolled back: {e}")
        return TransactionResult(committed=False, error=e)
