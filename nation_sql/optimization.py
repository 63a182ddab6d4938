"""
Bulk Generation, Indexing and Partitioning

- populate_country_distances / delete_random_distances: build and thin the
  country_distances table
- create_distance_indexes / compare_index_effect: the same count before
  and after indexing
- range partitioning of country_stats by year

SQLite has no PARTITION BY, so a range-partitioned table is emulated: one
table per partition guarded by a CHECK on the partition column, a UNION ALL
view under the logical name, and an INSTEAD OF INSERT trigger routing each
row to its partition.
"""

import bisect
import logging
import re
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

try:
    from .evaluation import explain_query_plan, measure_query_time, normalize_results
    from .queries import get_sql
except ImportError:
    from evaluation import explain_query_plan, measure_query_time, normalize_results
    from queries import get_sql

logger = logging.getLogger(__name__)

DEFAULT_PARTITION_BOUNDS = (2000, 2010, 2020)
PARTITIONED_STATS = "country_stats_partitioned"
DISTANCE_INDEXES = ("idx_origin", "idx_destination")

# upper bound of a partition as written in its CHECK constraint
UPPER_BOUND_RE = re.compile(r"year < (-?\d+)")


# =============================================================================
# Bulk generation
# =============================================================================

def populate_country_distances(conn: sqlite3.Connection, max_distance: int = 500) -> int:
    """
    Insert one row per (origin, destination) country pair, self pairs
    included, with a random distance in [1, max_distance].

    Returns:
        Number of rows inserted
    """
    if max_distance < 1:
        raise ValueError(f"max_distance must be >= 1, got {max_distance}")
    inserted = conn.execute(get_sql("Q17"), {"max_distance": max_distance}).rowcount
    logger.info(f"Populated country_distances with {inserted:,} rows")
    return inserted


def delete_random_distances(conn: sqlite3.Connection, count: int) -> int:
    """Delete `count` random rows from country_distances; returns rows deleted."""
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    deleted = conn.execute(get_sql("Q19"), {"count": count}).rowcount
    logger.info(f"Deleted {deleted:,} random rows from country_distances")
    return deleted


# =============================================================================
# Indexing
# =============================================================================

def count_origins(conn: sqlite3.Connection, region_id: Optional[int] = None) -> int:
    """Distance rows joined to their origin country, optionally in one region."""
    if region_id is None:
        return conn.execute(get_sql("Q20")).fetchone()[0]
    return conn.execute(get_sql("Q23"), {"region_id": region_id}).fetchone()[0]


def create_distance_indexes(conn: sqlite3.Connection):
    conn.execute(get_sql("Q21"))
    conn.execute(get_sql("Q22"))


def drop_distance_indexes(conn: sqlite3.Connection):
    for name in DISTANCE_INDEXES:
        conn.execute(f"DROP INDEX IF EXISTS {name}")


@dataclass
class PlanComparison:
    """The same query measured in two physical layouts."""
    before_result: List[Any]
    after_result: List[Any]
    before_time: float
    after_time: float
    before_plan: List[str] = field(default_factory=list)
    after_plan: List[str] = field(default_factory=list)

    @property
    def results_match(self) -> bool:
        return normalize_results(self.before_result) == normalize_results(self.after_result)

    @property
    def speedup(self) -> Optional[float]:
        if self.before_time > 0 and self.after_time > 0:
            return self.before_time / self.after_time
        return None


def _measure(conn, sql, params):
    elapsed, results, error = measure_query_time(conn, sql, params)
    if error:
        raise sqlite3.OperationalError(error)
    return elapsed, results


def compare_index_effect(conn: sqlite3.Connection, region_id: int = 5) -> PlanComparison:
    """
    Time the region-filtered origin count without, then with, the distance
    indexes. The indexes are left in place afterwards.
    """
    sql = get_sql("Q23")
    params = {"region_id": region_id}

    drop_distance_indexes(conn)
    before_plan = explain_query_plan(conn, sql, params)
    before_time, before_result = _measure(conn, sql, params)

    create_distance_indexes(conn)
    conn.execute("ANALYZE country_distances")
    after_plan = explain_query_plan(conn, sql, params)
    after_time, after_result = _measure(conn, sql, params)

    comparison = PlanComparison(before_result, after_result, before_time, after_time,
                                before_plan, after_plan)
    logger.info(f"Index effect on origin count: {before_time * 1000:.3f} ms -> "
                f"{after_time * 1000:.3f} ms, results match: {comparison.results_match}")
    return comparison


# =============================================================================
# Range partitioning
# =============================================================================

@dataclass
class PartitionInfo:
    """One row of information_schema.partitions, as far as SQLite can tell."""
    part_name: str
    part_pos: int
    part_meth: str
    part_expr: str
    table_rows: int
    less_than: Optional[int]  # None for MAXVALUE


def partition_names(bounds: Sequence[int] = DEFAULT_PARTITION_BOUNDS) -> List[str]:
    """p0..pN, one more partition than there are bounds."""
    return [f"p{i}" for i in range(len(bounds) + 1)]


def partition_for_year(year: int, bounds: Sequence[int] = DEFAULT_PARTITION_BOUNDS) -> str:
    """
    Name of the partition holding `year`.

    Each bound is exclusive (VALUES LESS THAN), the last partition is
    LESS THAN MAXVALUE.
    """
    return f"p{bisect.bisect_right(list(bounds), year)}"


def _check_bounds(bounds: Sequence[int]):
    if not bounds or any(a >= b for a, b in zip(bounds, bounds[1:])):
        raise ValueError(f"Partition bounds must be strictly increasing, got {list(bounds)}")


def _partition_table(name: str, part: str) -> str:
    return f"{name}_{part}"


def create_partitioned_stats(conn: sqlite3.Connection, name: str = PARTITIONED_STATS,
                             bounds: Sequence[int] = DEFAULT_PARTITION_BOUNDS):
    """
    Create `name` as a country_stats-shaped table range-partitioned by year.

    Partitions follow PARTITION BY RANGE (year) with VALUES LESS THAN each
    bound and a final LESS THAN MAXVALUE partition.
    """
    _check_bounds(bounds)
    parts = partition_names(bounds)
    lowers = [None] + list(bounds)
    uppers = list(bounds) + [None]

    statements = []
    for part, lower, upper in zip(parts, lowers, uppers):
        checks = []
        if lower is not None:
            checks.append(f"year >= {int(lower)}")
        if upper is not None:
            checks.append(f"year < {int(upper)}")
        statements.append(f"""
            CREATE TABLE {_partition_table(name, part)} (
                country_id INTEGER NOT NULL,
                year INTEGER NOT NULL CHECK ({' AND '.join(checks)}),
                population INTEGER,
                gdp INTEGER,
                PRIMARY KEY (country_id, year),
                FOREIGN KEY (country_id) REFERENCES countries(country_id)
            )
        """)

    union = "\n UNION ALL\n".join(
        f"SELECT country_id, year, population, gdp FROM {_partition_table(name, part)}"
        for part in parts
    )
    statements.append(f"CREATE VIEW {name} AS {union}")

    routes = "\n".join(
        f"INSERT INTO {_partition_table(name, part)} (country_id, year, population, gdp) "
        f"SELECT NEW.country_id, NEW.year, NEW.population, NEW.gdp "
        f"WHERE {_route_condition(lower, upper)};"
        for part, lower, upper in zip(parts, lowers, uppers)
    )
    statements.append(f"""
        CREATE TRIGGER {name}_insert INSTEAD OF INSERT ON {name}
        BEGIN
            {routes}
        END
    """)

    for statement in statements:
        conn.execute(statement)
    logger.info(f"Created {name} with partitions {', '.join(parts)}")


def _route_condition(lower: Optional[int], upper: Optional[int]) -> str:
    checks = []
    if lower is not None:
        checks.append(f"NEW.year >= {int(lower)}")
    if upper is not None:
        checks.append(f"NEW.year < {int(upper)}")
    return " AND ".join(checks)


def drop_partitioned_stats(conn: sqlite3.Connection, name: str = PARTITIONED_STATS):
    """Drop the view, its trigger and every partition table."""
    conn.execute(f"DROP VIEW IF EXISTS {name}")
    for (table,) in conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name GLOB ?",
            (f"{name}_p[0-9]*",)).fetchall():
        conn.execute(f"DROP TABLE IF EXISTS {table}")


def partitioned_table_exists(conn: sqlite3.Connection, name: str = PARTITIONED_STATS) -> bool:
    row = conn.execute("SELECT 1 FROM sqlite_master WHERE type = 'view' AND name = ?", (name,)).fetchone()
    return row is not None


def copy_stats_into_partitions(conn: sqlite3.Connection, name: str = PARTITIONED_STATS) -> int:
    """INSERT INTO <partitioned> SELECT * FROM country_stats; returns rows copied."""
    conn.execute(f"""
        INSERT INTO {name} (country_id, year, population, gdp)
        SELECT country_id, year, population, gdp FROM country_stats
    """)
    copied = conn.execute(f"SELECT COUNT(*) FROM {name}").fetchone()[0]
    logger.info(f"Copied {copied:,} rows into {name}")
    return copied


def partition_info(conn: sqlite3.Connection, name: str = PARTITIONED_STATS) -> List[PartitionInfo]:
    """Partition name, position, method, expression, row count and upper bound."""
    rows = conn.execute(
        "SELECT name, sql FROM sqlite_master WHERE type = 'table' AND name GLOB ?",
        (f"{name}_p[0-9]*",)
    ).fetchall()

    info = []
    for table, ddl in rows:
        part = table[len(name) + 1:]
        position = int(part[1:]) + 1
        table_rows = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        info.append(PartitionInfo(part, position, "RANGE", "`year`", table_rows,
                                  _upper_bound(ddl)))
    return sorted(info, key=lambda p: p.part_pos)


def _upper_bound(ddl: str) -> Optional[int]:
    match = UPPER_BOUND_RE.search(ddl)
    return int(match.group(1)) if match else None


def compare_partition_effect(conn: sqlite3.Connection, year: int = 2017,
                             name: str = PARTITIONED_STATS) -> PlanComparison:
    """The same single-year read against country_stats and its partitioned copy."""
    base_sql = "SELECT * FROM country_stats WHERE year = :year ORDER BY country_id"
    partitioned_sql = f"SELECT * FROM {name} WHERE year = :year ORDER BY country_id"
    params = {"year": year}

    before_time, before_result = _measure(conn, base_sql, params)
    after_time, after_result = _measure(conn, partitioned_sql, params)
    return PlanComparison(
        before_result, after_result, before_time, after_time,
        explain_query_plan(conn, base_sql, params),
        explain_query_plan(conn, partitioned_sql, params),
    )


def partition_stats_summary(conn: sqlite3.Connection, name: str = PARTITIONED_STATS) -> Dict[str, int]:
    """Rows per partition, keyed by partition name."""
    return {p.part_name: p.table_rows for p in partition_info(conn, name)}
