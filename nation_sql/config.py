"""
Session Configuration

Engine toggles that the walkthrough flips with SET GLOBAL / SET statements
(page cache size, profiling, slow query log) are collected in one explicit
object handed to the session at start.

Loaded from config.yaml at the repository root; keys are uppercase and any
missing key falls back to the default below.
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple

import yaml

try:
    from .database import DB_PATH, DEFAULT_SEED, DEFAULT_YEAR_RANGE
    from .evaluation import QUERY_TIMEOUT
    from .optimization import DEFAULT_PARTITION_BOUNDS
except ImportError:
    from database import DB_PATH, DEFAULT_SEED, DEFAULT_YEAR_RANGE
    from evaluation import QUERY_TIMEOUT
    from optimization import DEFAULT_PARTITION_BOUNDS

# Load config from config.yaml next to the package
CONFIG_PATH = os.path.join(os.path.dirname(__file__), "..", "config.yaml")

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')


@dataclass
class SessionConfig:
    db_path: str = DB_PATH
    seed: int = DEFAULT_SEED
    year_range: Tuple[int, int] = DEFAULT_YEAR_RANGE
    cache_size_kib: int = 2048
    profiling: bool = False
    slow_query_log: bool = False
    slow_query_seconds: float = 1.0
    query_timeout: float = QUERY_TIMEOUT
    partition_bounds: Tuple[int, ...] = DEFAULT_PARTITION_BOUNDS
    log_level: str = 'INFO'
    log_file: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.year_range = tuple(self.year_range)
        self.partition_bounds = tuple(self.partition_bounds)
        self.log_level = self.log_level.upper()

        if self.query_timeout <= 0:
            raise ValueError(f"QUERY_TIMEOUT must be positive, got {self.query_timeout}")
        if self.slow_query_seconds < 0:
            raise ValueError(f"SLOW_QUERY_SECONDS must be >= 0, got {self.slow_query_seconds}")
        if self.cache_size_kib <= 0:
            raise ValueError(f"CACHE_SIZE_KIB must be positive, got {self.cache_size_kib}")
        if len(self.year_range) != 2 or self.year_range[0] > self.year_range[1]:
            raise ValueError(f"YEAR_RANGE must be [first, last], got {list(self.year_range)}")
        if not self.partition_bounds or any(
                a >= b for a, b in zip(self.partition_bounds, self.partition_bounds[1:])):
            raise ValueError(f"PARTITION_BOUNDS must be strictly increasing, got {list(self.partition_bounds)}")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {LOG_LEVELS}, got {self.log_level!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionConfig":
        """Build a config from a mapping with UPPERCASE keys; unknown keys go to `extra`."""
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in (data or {}).items():
            name = key.lower()
            if name in known:
                kwargs[name] = value
            else:
                extra[key] = value
        return cls(extra=extra, **kwargs)

    @classmethod
    def from_yaml(cls, path: str = CONFIG_PATH) -> "SessionConfig":
        with open(path, "r") as f:
            return cls.from_dict(yaml.safe_load(f))


def load_config(path: Optional[str] = None) -> SessionConfig:
    """Config from `path`, else config.yaml if present, else defaults."""
    if path is not None:
        return SessionConfig.from_yaml(path)
    if os.path.exists(CONFIG_PATH):
        return SessionConfig.from_yaml(CONFIG_PATH)
    return SessionConfig()
