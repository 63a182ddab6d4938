"""
Analytical Query Patterns

Typed wrappers around the corpus queries for joins, subqueries, unions,
aggregation, CTEs and GDP banding. Every function takes an open connection
and returns plain rows; SQL text lives in queries.py.
"""

import sqlite3
from typing import List, Optional, Sequence, Tuple

try:
    from .queries import get_sql
except ImportError:
    from queries import get_sql

NO_LIMIT = -1


def run_query(conn: sqlite3.Connection, query_id: str, **params) -> List[Tuple]:
    """Execute a corpus query with named parameters and fetch all rows."""
    return conn.execute(get_sql(query_id), params).fetchall()


def _limit(limit: Optional[int]) -> int:
    return NO_LIMIT if limit is None else limit


# =============================================================================
# Joins and subqueries
# =============================================================================

def languages_by_join(conn: sqlite3.Connection, country_name: str) -> List[str]:
    """Languages linked to a country, joining all three tables."""
    return [language for (language,) in run_query(conn, "Q01", country_name=country_name)]


def languages_by_subquery(conn: sqlite3.Connection, country_name: str) -> List[str]:
    """Languages linked to a country, resolving its id with a subquery first."""
    return [language for (language,) in run_query(conn, "Q02", country_name=country_name)]


# =============================================================================
# Unions and aggregation
# =============================================================================

def language_union(conn: sqlite3.Connection, first_language: str = "Italian",
                   second_language: str = "French",
                   limit: Optional[int] = 5) -> List[Tuple[str, str]]:
    """
    (country_name, language) rows for countries speaking either language.

    UNION ALL semantics: a country speaking both languages appears once per
    language. Ordered by country name; `limit=None` returns every row.
    """
    return run_query(conn, "Q03", first_language=first_language,
                     second_language=second_language, limit=_limit(limit))


def countries_speaking(conn: sqlite3.Connection,
                       languages: Sequence[str] = ("French", "Italian"),
                       threshold: int = 1) -> List[Tuple[str, int]]:
    """(country_name, langs) for countries speaking more than `threshold` of two languages."""
    if len(languages) != 2:
        raise ValueError(f"Expected exactly two languages, got {len(languages)}")
    first_language, second_language = languages
    return run_query(conn, "Q04", first_language=first_language,
                     second_language=second_language, threshold=threshold)


# =============================================================================
# Common table expressions
# =============================================================================

def above_average_population(conn: sqlite3.Connection,
                             year: Optional[int] = None) -> List[Tuple[str, int]]:
    """
    Countries whose population exceeds the average, using a CTE.

    With `year=None` every statistics row takes part, so a country can
    appear once per qualifying year.
    """
    return run_query(conn, "Q05", year=year)


def above_average_population_inline(conn: sqlite3.Connection,
                                    year: Optional[int] = None) -> List[Tuple[str, int]]:
    """The same result as above_average_population with the CTE inlined twice."""
    sql = """
        SELECT cs1.country_name, cs1.population
        FROM (
            SELECT c.name AS country_name, cs.population
            FROM country_stats cs
            LEFT JOIN countries c ON c.country_id = cs.country_id
            WHERE :year IS NULL OR cs.year = :year
        ) cs1
        WHERE cs1.population > (
            SELECT AVG(cs.population)
            FROM country_stats cs
            LEFT JOIN countries c ON c.country_id = cs.country_id
            WHERE :year IS NULL OR cs.year = :year
        )
        ORDER BY cs1.population ASC, cs1.country_name ASC
    """
    return conn.execute(sql, {"year": year}).fetchall()


def official_language_averages(conn: sqlite3.Connection, continent: str = "Africa",
                               year: int = 2017, limit: Optional[int] = 5) -> List[Tuple]:
    """
    Per official language on a continent: (language, num_countries,
    average_gdp, average_population), averages formatted with thousands
    separators, most populous first.
    """
    return run_query(conn, "Q07", continent=continent, year=year, limit=_limit(limit))


# =============================================================================
# GDP banding
# =============================================================================

def gdp_categories_case(conn: sqlite3.Connection, year: int = 2017,
                        limit: Optional[int] = 5) -> List[Tuple[str, int, str]]:
    """(country_name, gdp, gdp_category) using the inline CASE expression."""
    return run_query(conn, "Q08", year=year, limit=_limit(limit))


def gdp_categories_function(conn: sqlite3.Connection, year: int = 2017,
                            limit: Optional[int] = 5) -> List[Tuple[str, int, str]]:
    """(country_name, gdp, gdp_category) using the categorize_gdp() SQL function."""
    return run_query(conn, "Q09", year=year, limit=_limit(limit))
