"""
Query Evaluation Harness

Times queries against the nation database and checks result equality.
Used to show that indexes and partitions change speed, never answers, and
to run the standalone corpus queries with a per-query summary.
"""

import hashlib
import logging
import sqlite3
import time
from statistics import median
from typing import Any, Dict, List, Mapping, Optional, Tuple

from tqdm import tqdm

try:
    from .queries import get_standalone_queries
except ImportError:
    from queries import get_standalone_queries

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

# Number of warmup runs before timing
WARMUP_RUNS = 1

# Number of timed runs for median calculation
TIMED_RUNS = 5

# Maximum time (seconds) for a single query execution
QUERY_TIMEOUT = 10.0


# =============================================================================
# Query Execution
# =============================================================================

def normalize_results(results: List[Tuple]) -> str:
    """
    Normalize query results for comparison.
    Sorts rows and converts to a canonical string representation.
    """
    if not results:
        return "EMPTY"

    # Sort rows (convert each row to tuple for sorting)
    sorted_results = sorted([tuple(str(x) for x in row) for row in results])

    # Create hash of results for comparison
    result_str = str(sorted_results)
    return hashlib.md5(result_str.encode()).hexdigest()


def normalize_whitespace(sql: str) -> str:
    """Normalize whitespace in SQL query"""
    return ' '.join(sql.split())


def is_read_only(sql: str) -> bool:
    """True for SELECT and WITH statements."""
    return sql.lstrip().upper().startswith(("SELECT", "WITH"))


def execute_query_with_timeout(conn: sqlite3.Connection, sql: str,
                               params: Optional[Mapping[str, Any]] = None,
                               timeout: float = QUERY_TIMEOUT) -> Tuple[List[Tuple], float, Optional[str]]:
    """
    Execute a query with timeout and return results, execution time, and error.

    Args:
        conn: Database connection
        sql: SQL query to execute
        params: Named parameters
        timeout: Maximum execution time in seconds

    Returns:
        Tuple of (results, execution_time, error_message)
        - results: List of result tuples (empty if error)
        - execution_time: Time in seconds (-1 if error)
        - error_message: Error string or None
    """
    try:
        # SQLite doesn't have native timeout, so we use progress handler
        start_time = time.time()

        def progress_handler():
            if time.time() - start_time > timeout:
                return 1  # Non-zero to interrupt
            return 0

        conn.set_progress_handler(progress_handler, 100)  # Check every 100 opcodes

        try:
            cursor = conn.cursor()
            t1 = time.time()
            cursor.execute(sql, params or {})
            results = cursor.fetchall()
            t2 = time.time()
        finally:
            conn.set_progress_handler(None, 0)

        return results, t2 - t1, None

    except sqlite3.OperationalError as e:
        if "interrupted" in str(e).lower():
            return [], -1, f"Query timeout after {timeout}s"
        return [], -1, f"SQL Error: {str(e)}"
    except sqlite3.Error as e:
        return [], -1, f"SQL Error: {str(e)}"


def measure_query_time(conn: sqlite3.Connection, sql: str,
                       params: Optional[Mapping[str, Any]] = None,
                       warmup: int = WARMUP_RUNS,
                       runs: int = TIMED_RUNS) -> Tuple[float, List[Tuple], Optional[str]]:
    """
    Measure median execution time of a query.

    Returns:
        Tuple of (median_time, last_results, error_message)
    """
    for _ in range(warmup):
        _, _, error = execute_query_with_timeout(conn, sql, params)
        if error:
            return -1, [], error

    times = []
    results: List[Tuple] = []
    for _ in range(runs):
        results, exec_time, error = execute_query_with_timeout(conn, sql, params)
        if error:
            return -1, [], error
        times.append(exec_time)

    return median(times), results, None


def explain_query_plan(conn: sqlite3.Connection, sql: str,
                       params: Optional[Mapping[str, Any]] = None) -> List[str]:
    """The `detail` column of EXPLAIN QUERY PLAN, one entry per plan step."""
    rows = conn.execute(f"EXPLAIN QUERY PLAN {sql}", params or {}).fetchall()
    return [row[-1] for row in rows]


# =============================================================================
# Equivalence
# =============================================================================

def compare_queries(conn: sqlite3.Connection, sql_a: str, sql_b: str,
                    params_a: Optional[Mapping[str, Any]] = None,
                    params_b: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Run two queries and report whether they return the same multiset of rows.

    Returns:
        dict with keys: equal, time_a, time_b, rows_a, rows_b, error
    """
    time_a, results_a, error_a = measure_query_time(conn, sql_a, params_a)
    time_b, results_b, error_b = measure_query_time(conn, sql_b, params_b)
    error = error_a or error_b
    return {
        "equal": error is None and normalize_results(results_a) == normalize_results(results_b),
        "time_a": time_a,
        "time_b": time_b,
        "rows_a": len(results_a),
        "rows_b": len(results_b),
        "error": error,
    }


# =============================================================================
# Corpus Runner
# =============================================================================

def run_corpus(conn: sqlite3.Connection, section: Optional[str] = None,
               timeout: float = QUERY_TIMEOUT,
               progress: bool = True) -> Dict[str, Any]:
    """
    Run every standalone corpus query once with its default parameters.

    Returns:
        details dict with per-query results under "queries" and counters
        "successful", "failed", "num_queries"
    """
    queries = get_standalone_queries(section)

    details: Dict[str, Any] = {
        "queries": {},
        "successful": 0,
        "failed": 0,
        "num_queries": len(queries),
    }

    for query_id, sql, description, query_section, params in tqdm(
            queries, desc="Running", unit="query", disable=not progress):
        results, exec_time, error = execute_query_with_timeout(conn, sql, params, timeout)
        query_result = {
            "description": description,
            "section": query_section,
            "sql": sql.strip(),
            "time": exec_time if error is None else None,
            "rows": results,
            "status": "failed" if error else "success",
            "error": error,
        }
        if error:
            details["failed"] += 1
            logger.warning(f"{query_id} failed: {error}")
        else:
            details["successful"] += 1
        details["queries"][query_id] = query_result

    return details


def format_details(details: Dict[str, Any], max_rows: int = 5) -> str:
    """Build a human-readable summary of run_corpus output."""
    lines = []
    lines.append(f"Summary: {details['successful']}/{details['num_queries']} successful, "
                 f"{details['failed']} failed")
    lines.append("")
    lines.append("Per-query results:")

    for query_id, query_result in details.get("queries", {}).items():
        success = query_result["status"] == "success"
        status_symbol = "✓" if success else "✗"
        if success:
            lines.append(f"  {status_symbol} {query_id} [{query_result['section']}] "
                         f"{query_result['description']}: {len(query_result['rows'])} rows "
                         f"in {query_result['time'] * 1000:.2f} ms")
            for row in query_result["rows"][:max_rows]:
                lines.append(f"      {row}")
        else:
            lines.append(f"  {status_symbol} {query_id}: error={query_result['error']}")
            lines.append(f"      SQL: {normalize_whitespace(query_result['sql'])}")

    return "\n".join(lines)
