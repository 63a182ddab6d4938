"""
Staged Aggregation via Temporary Tables

Materialize country rows for one continent and year, aggregate them by
region into a second temporary table, join both for a ranked report, then
drop both tables. The tables never outlive the `staged_tables` block and
dropping them twice is harmless.
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

try:
    from .queries import get_sql
except ImportError:
    from queries import get_sql

logger = logging.getLogger(__name__)

TEMP_TABLES = ("temp_country_data", "temp_region_data")


def drop_staged_tables(conn: sqlite3.Connection):
    """Drop both temporary tables if they exist."""
    conn.execute(get_sql("Q13"))
    conn.execute(get_sql("Q14"))


def staged_table_names(conn: sqlite3.Connection) -> List[str]:
    """Temporary tables from TEMP_TABLES currently present on this connection."""
    rows = conn.execute(
        "SELECT name FROM sqlite_temp_master WHERE type = 'table' ORDER BY name"
    ).fetchall()
    return [name for (name,) in rows if name in TEMP_TABLES]


@contextmanager
def staged_tables(conn: sqlite3.Connection, continent: str = "Africa",
                  year: int = 2017) -> Iterator[sqlite3.Connection]:
    """
    Create temp_country_data and temp_region_data for the block's duration.

    Leftovers from an earlier interrupted run are dropped first.
    """
    drop_staged_tables(conn)
    try:
        conn.execute(get_sql("Q10"), {"continent": continent, "year": year})
        conn.execute(get_sql("Q11"))
        staged = conn.execute("SELECT COUNT(*) FROM temp_country_data").fetchone()[0]
        logger.debug(f"Staged {staged} country rows for {continent} {year}")
        yield conn
    finally:
        drop_staged_tables(conn)


def region_language_report(conn: sqlite3.Connection, continent: str = "Africa",
                           year: int = 2017, limit: Optional[int] = 5) -> List[Tuple]:
    """
    (region_name, languages, tot_gdp, tot_pop, num_countries) per region,
    highest average GDP first.

    `languages` is a comma-separated list of the region's official
    languages; the money columns are thousands-separated strings.
    """
    with staged_tables(conn, continent, year):
        return conn.execute(get_sql("Q12"), {"limit": -1 if limit is None else limit}).fetchall()
