"""
nation-sql command line

Builds (or reuses) the sample database and either runs every standalone
corpus query with a summary, or plays the whole walkthrough in script order,
mutations included.
"""

import argparse
import logging
import sys
import traceback
from typing import List, Optional

try:
    from . import analytics, optimization, staging, transactions, traversal
    from .config import load_config
    from .database import reset_database, table_row_counts
    from .evaluation import format_details, run_corpus
    from .queries import SECTIONS
    from .session import Session
except ImportError:
    import analytics, optimization, staging, transactions, traversal
    from config import load_config
    from database import reset_database, table_row_counts
    from evaluation import format_details, run_corpus
    from queries import SECTIONS
    from session import Session


def setup_logging(log_level='INFO', log_file=None):
    """Setup logging with proper formatting"""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr),  # Always log to stderr
            *([logging.FileHandler(log_file)] if log_file else [])
        ]
    )
    return logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description='Advanced SQL walkthrough over the nation sample database')
    parser.add_argument('--config', type=str, help='Path to a config.yaml (defaults to the repository one)')
    parser.add_argument('--db', type=str, help='Database path, overrides DB_PATH')
    parser.add_argument('--reset', action='store_true', help='Delete and regenerate the sample database')
    parser.add_argument('--section', type=str, choices=SECTIONS, help='Only run queries from one section')
    parser.add_argument('--walkthrough', action='store_true',
                        help='Run the full ordered walkthrough, including mutations')
    parser.add_argument('--log_level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    parser.add_argument('--log_file', type=str, help='Optional log file path')
    return parser.parse_args(argv)


def prepare_environment(session: Session, logger: logging.Logger):
    """Create the objects standalone queries read: distances and the partitioned copy."""
    conn = session.conn
    if optimization.count_origins(conn) == 0:
        optimization.populate_country_distances(conn)
    if not optimization.partitioned_table_exists(conn):
        optimization.create_partitioned_stats(conn, bounds=session.config.partition_bounds)
        optimization.copy_stats_into_partitions(conn)
    logger.info(f"Row counts: {table_row_counts(conn)}")


def run_walkthrough(session: Session, logger: logging.Logger):
    """Every walkthrough section in script order."""
    conn = session.conn

    logger.info("1. Joins / 3. Subqueries")
    by_join = analytics.languages_by_join(conn, "Bangladesh")
    by_subquery = analytics.languages_by_subquery(conn, "Bangladesh")
    logger.info(f"  Bangladesh: {by_join} (join and subquery agree: {sorted(by_join) == sorted(by_subquery)})")

    logger.info("2. Unions")
    for row in analytics.language_union(conn):
        logger.info(f"  {row}")

    logger.info("4. Aggregation with HAVING")
    for row in analytics.countries_speaking(conn):
        logger.info(f"  {row}")

    logger.info("5. Common table expressions")
    above = analytics.above_average_population(conn, year=2017)
    logger.info(f"  {len(above)} countries above the 2017 average population")
    for row in analytics.official_language_averages(conn):
        logger.info(f"  {row}")

    logger.info("6. Recursive queries")
    for node in traversal.region_hierarchy(conn, "Africa"):
        logger.info(f"  {'  ' * node.depth}{node.kind}: {node.name}")

    logger.info("7. CASE / 8. User-defined function")
    for case_row, udf_row in zip(analytics.gdp_categories_case(conn), analytics.gdp_categories_function(conn)):
        logger.info(f"  {case_row} | function: {udf_row[2]}")

    logger.info("9. Temporary tables")
    for row in staging.region_language_report(conn):
        logger.info(f"  {row}")

    logger.info("10. Transactions")
    (language_id,), = conn.execute("""
        SELECT MIN(language_id) FROM languages
        WHERE language_id NOT IN (SELECT language_id FROM country_languages WHERE country_id = 1)
    """).fetchall()
    if language_id is not None:
        result = transactions.update_country_stats_and_languages(
            conn, language_country_id=1, language_id=language_id)
        logger.info(f"  new link 1/{language_id}: committed={result.committed} error={result.error}")
    # country 53 is not in the sample, so this one rolls back
    result = transactions.update_country_stats_and_languages(conn)
    logger.info(f"  link 53/9: committed={result.committed} error={result.error}")

    logger.info("11. Query optimization")
    if optimization.count_origins(conn) == 0:
        optimization.populate_country_distances(conn)
    reachable = traversal.reachable_destinations(conn, 1)
    logger.info(f"  {len(reachable)} countries reachable from country 1")
    total = optimization.count_origins(conn)
    optimization.delete_random_distances(conn, total // 2)
    logger.info(f"  reachable after thinning: {len(traversal.reachable_destinations(conn, 1))} "
                f"(BFS: {len(traversal.reachable_destinations_bfs(conn, 1))})")

    comparison = optimization.compare_index_effect(conn, region_id=5)
    logger.info(f"  index: {comparison.before_result} -> {comparison.after_result}, "
                f"plan {comparison.before_plan} -> {comparison.after_plan}")

    if optimization.partitioned_table_exists(conn):
        optimization.drop_partitioned_stats(conn)
    optimization.create_partitioned_stats(conn, bounds=session.config.partition_bounds)
    optimization.copy_stats_into_partitions(conn)
    for info in optimization.partition_info(conn):
        logger.info(f"  {info}")
    partitioned = optimization.compare_partition_effect(conn, year=2017)
    logger.info(f"  partitioned read matches base table: {partitioned.results_match}")

    logger.info(f"  page cache: {session.cache_size()} KiB")
    session.run("Q25")
    session.run("Q25")

    session.set_profiling(True)
    session.run("Q26")
    for profile in session.show_profiles():
        logger.info(f"  {profile}")
    if session.profiles:
        logger.info(f"  {session.show_profile(session.profiles[-1].query_id)}")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = load_config(args.config)
    if args.db:
        config.db_path = args.db
    if args.log_level:
        config.log_level = args.log_level
    if args.log_file:
        config.log_file = args.log_file

    logger = setup_logging(config.log_level, config.log_file)
    logger.info(f"Arguments: {vars(args)}")

    if args.reset:
        reset_database(config.db_path, seed=config.seed, year_range=config.year_range).close()

    try:
        with Session(config) as session:
            if args.walkthrough:
                run_walkthrough(session, logger)
            else:
                prepare_environment(session, logger)
                details = run_corpus(session.conn, args.section, timeout=config.query_timeout)
                print(format_details(details))
                if details["failed"]:
                    return 1
    except Exception as e:
        logger.error(f"Run failed: {e}")
        logger.debug(traceback.format_exc())
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
