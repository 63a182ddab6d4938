"""
Database Session

A single client session over the nation database: one connection plus the
SessionConfig it was started with. Applies the page-cache size, records
per-statement profiles when profiling is on (SHOW PROFILES / SHOW PROFILE
FOR QUERY), and writes statements slower than the threshold to the slow
query log.
"""

import logging
import sqlite3
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

try:
    from .config import SessionConfig
    from .database import get_connection
    from .evaluation import normalize_whitespace
    from .queries import get_query_by_id
except ImportError:
    from config import SessionConfig
    from database import get_connection
    from evaluation import normalize_whitespace
    from queries import get_query_by_id

logger = logging.getLogger(__name__)
slow_query_logger = logging.getLogger("nation_sql.slow_query")


class QueryTimeout(sqlite3.OperationalError):
    """A statement ran past the session's query timeout and was interrupted."""


@dataclass
class QueryProfile:
    query_id: int
    duration: float
    query: str
    label: Optional[str] = None
    phases: Dict[str, float] = field(default_factory=dict)
    rows: int = 0


class Session:
    """
    One connection configured from a SessionConfig.

    Usable as a context manager; the connection is closed on exit.
    """

    def __init__(self, config: Optional[SessionConfig] = None,
                 conn: Optional[sqlite3.Connection] = None):
        self.config = config or SessionConfig()
        if conn is None:
            conn = get_connection(self.config.db_path, readonly=False,
                                  seed=self.config.seed, year_range=self.config.year_range)
        self.conn = conn
        self.profiling = self.config.profiling
        self.profiles: List[QueryProfile] = []
        self._next_query_id = 1
        self.set_cache_size(self.config.cache_size_kib)
        logger.debug(f"Session started on {self.config.db_path} "
                     f"(cache={self.config.cache_size_kib} KiB, profiling={self.config.profiling})")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        self.conn.close()

    # =========================================================================
    # Caching
    # =========================================================================

    def set_cache_size(self, kib: int):
        """Page cache size in KiB (negative PRAGMA cache_size means KiB)."""
        if kib <= 0:
            raise ValueError(f"Cache size must be positive, got {kib}")
        self.conn.execute(f"PRAGMA cache_size = -{int(kib)}")

    def cache_size(self) -> int:
        """Current page cache size in KiB."""
        value = self.conn.execute("PRAGMA cache_size").fetchone()[0]
        if value < 0:
            return -value
        page_size = self.conn.execute("PRAGMA page_size").fetchone()[0]
        return value * page_size // 1024

    # =========================================================================
    # Execution
    # =========================================================================

    def execute(self, sql: str, params: Optional[Mapping[str, Any]] = None,
                label: Optional[str] = None) -> List[Tuple]:
        """
        Run one statement and fetch its rows.

        Raises:
            QueryTimeout: the statement exceeded config.query_timeout
            sqlite3.Error: any other engine error, unchanged
        """
        timeout = self.config.query_timeout
        start = time.perf_counter()

        def progress_handler():
            return 1 if time.perf_counter() - start > timeout else 0

        self.conn.set_progress_handler(progress_handler, 100)
        try:
            cursor = self.conn.execute(sql, params or {})
            executed = time.perf_counter()
            rows = cursor.fetchall()
            fetched = time.perf_counter()
        except sqlite3.OperationalError as e:
            if "interrupted" in str(e).lower():
                raise QueryTimeout(f"Query timeout after {timeout}s: {normalize_whitespace(sql)[:80]}") from e
            raise
        finally:
            self.conn.set_progress_handler(None, 0)

        duration = fetched - start
        phases = {"executing": executed - start, "sending data": fetched - executed}
        self._record(sql, label, duration, phases, len(rows))
        return rows

    def run(self, query_id: str, **params) -> List[Tuple]:
        """Execute a corpus query by id, with its default params overridden by `params`."""
        _, sql, _, _, defaults = get_query_by_id(query_id)
        merged = dict(defaults or {})
        merged.update(params)
        return self.execute(sql, merged, label=query_id)

    def _record(self, sql, label, duration, phases, rows):
        if self.config.slow_query_log and duration >= self.config.slow_query_seconds:
            slow_query_logger.warning(f"# Query_time: {duration:.6f}  Rows_sent: {rows}\n"
                                      f"{normalize_whitespace(sql)};")
        if not self.profiling:
            return
        self.profiles.append(QueryProfile(self._next_query_id, duration,
                                          normalize_whitespace(sql), label, phases, rows))
        self._next_query_id += 1

    # =========================================================================
    # Profiling
    # =========================================================================

    def set_profiling(self, enabled: bool):
        self.profiling = enabled

    def show_profiles(self) -> List[Tuple[int, float, str]]:
        """(Query_ID, Duration, Query) for every profiled statement."""
        return [(p.query_id, p.duration, p.query) for p in self.profiles]

    def show_profile(self, query_id: int) -> List[Tuple[str, float]]:
        """(Status, Duration) phases of one profiled statement."""
        for p in self.profiles:
            if p.query_id == query_id:
                return list(p.phases.items())
        raise ValueError(f"No profile for query {query_id}")

    def reset_profiles(self):
        self.profiles.clear()
        self._next_query_id = 1
