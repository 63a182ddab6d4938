"""
SQL Functions for the Nation Database

Python callables registered on every connection so the walkthrough can use
the MariaDB-flavoured helpers it was written against:

- categorize_gdp(gdp)  deterministic GDP banding (user-defined function)
- FORMAT(x, d)         thousands-separated number formatting
- RAND()               uniform float in [0, 1), seedable per connection
- VARIANCE(x)          population variance aggregate
"""

import random
import sqlite3
from typing import Optional

# Band thresholds (inclusive on both ends for Medium)
LOW_GDP_CEILING = 10_000_000_000
MEDIUM_GDP_CEILING = 100_000_000_000

LOW_GDP = 'Low GDP'
MEDIUM_GDP = 'Medium GDP'
HIGH_GDP = 'High GDP'


def categorize_gdp(gdp_value) -> str:
    """
    Categorize a GDP value into Low, Medium or High.

    Mirrors the CASE expression used inline in the corpus:
        gdp < 1e10                  -> 'Low GDP'
        1e10 <= gdp <= 1e11         -> 'Medium GDP'
        otherwise (including NULL)  -> 'High GDP'
    """
    if gdp_value is None:
        return HIGH_GDP
    if gdp_value < LOW_GDP_CEILING:
        return LOW_GDP
    if LOW_GDP_CEILING <= gdp_value <= MEDIUM_GDP_CEILING:
        return MEDIUM_GDP
    return HIGH_GDP


def format_number(value, decimals=0) -> Optional[str]:
    """FORMAT(x, d): round to d decimals and group thousands with commas."""
    if value is None:
        return None
    decimals = max(int(decimals or 0), 0)
    return f"{float(value):,.{decimals}f}"


class Variance:
    """Population variance, the VARIANCE()/VAR_POP() aggregate."""

    def __init__(self):
        self.count = 0
        self.mean = 0.0
        self.m2 = 0.0

    def step(self, value):
        if value is None:
            return
        # Welford's update
        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (value - self.mean)

    def finalize(self):
        if self.count == 0:
            return None
        return self.m2 / self.count


def register_functions(conn: sqlite3.Connection, seed: Optional[int] = None) -> sqlite3.Connection:
    """
    Register the nation SQL functions on a connection.

    Args:
        conn: Database connection
        seed: Seed for RAND(); None draws from system entropy

    Returns:
        The same connection, for chaining
    """
    rng = random.Random(seed)

    conn.create_function("categorize_gdp", 1, categorize_gdp, deterministic=True)
    conn.create_function("FORMAT", 2, format_number, deterministic=True)
    conn.create_function("RAND", 0, rng.random)
    conn.create_aggregate("VARIANCE", 1, Variance)
    return conn
