"""
Advanced SQL Techniques over the Nation Database

Joins, unions, subqueries, aggregation, CTEs, recursive CTEs, CASE logic,
user-defined functions, temporary tables, transactions and query
optimization (indexes, partitions, caching, profiling) demonstrated
against a SQLite rendering of the `nation` sample schema.
"""

from .config import SessionConfig, load_config
from .database import connect, create_schema, get_connection, get_schema_info, reset_database
from .functions import categorize_gdp
from .queries import get_queries, get_query_by_id, get_queries_by_section
from .session import QueryTimeout, Session
from .transactions import TransactionResult, transaction

__all__ = [
    'SessionConfig',
    'load_config',
    'connect',
    'create_schema',
    'get_connection',
    'get_schema_info',
    'reset_database',
    'categorize_gdp',
    'get_queries',
    'get_query_by_id',
    'get_queries_by_section',
    'QueryTimeout',
    'Session',
    'TransactionResult',
    'transaction',
]
