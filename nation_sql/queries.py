"""
Query Corpus for the Nation Database

The walkthrough's SQL, in script order. Each entry is a tuple of
(query_id, query_sql, description, section, default_params).

Sections:
 joins, subqueries, unions, aggregation, cte, recursive, case, functions,
 temporary, transactions, optimization, partitioning, caching, profiling

Queries with default_params of None either mutate state or read objects
that only exist part-way through a pipeline (temporary tables), so they
are executed by their owning module rather than run standalone.
"""

from typing import Dict, List, Optional, Tuple

Query = Tuple[str, str, str, str, Optional[Dict]]

SECTIONS = [
    "joins",
    "subqueries",
    "unions",
    "aggregation",
    "cte",
    "recursive",
    "case",
    "functions",
    "temporary",
    "transactions",
    "optimization",
    "partitioning",
    "caching",
    "profiling",
]

QUERIES: List[Query] = [

    # ==========================================================================
    # Joins and subqueries
    # ==========================================================================

    ("Q01", """
        SELECT l.language AS Languages
        FROM countries c
        INNER JOIN country_languages cl ON c.country_id = cl.country_id
        INNER JOIN languages l ON cl.language_id = l.language_id
        WHERE c.name = :country_name
    """,
    "Languages spoken in a country, three-table inner join",
    "joins",
    {"country_name": "Bangladesh"}),

    ("Q02", """
        SELECT l.language AS Languages
        FROM languages AS l
        INNER JOIN country_languages AS cl ON l.language_id = cl.language_id
        WHERE cl.country_id = (
            SELECT c.country_id
            FROM countries AS c
            WHERE c.name = :country_name
        )
    """,
    "Languages spoken in a country, scalar subquery resolving the id first",
    "subqueries",
    {"country_name": "Bangladesh"}),

    # ==========================================================================
    # Unions and aggregation
    # ==========================================================================

    ("Q03", """
        SELECT c.name AS country_name, l.language AS country_language
        FROM (
            SELECT cl.country_id AS cid, cl.language_id AS lid
            FROM country_languages AS cl
            WHERE cl.language_id IN (
                SELECT l.language_id
                FROM languages AS l
                WHERE l.language = :first_language
            )
            UNION ALL
            SELECT cl.country_id AS cid, cl.language_id AS lid
            FROM country_languages AS cl
            WHERE cl.language_id IN (
                SELECT l.language_id
                FROM languages AS l
                WHERE l.language = :second_language
            )
        ) a
        LEFT JOIN countries c ON c.country_id = a.cid
        LEFT JOIN languages l ON l.language_id = a.lid
        ORDER BY c.name ASC, l.language ASC
        LIMIT :limit
    """,
    "Countries speaking either of two languages (UNION ALL keeps both rows)",
    "unions",
    {"first_language": "Italian", "second_language": "French", "limit": 5}),

    ("Q04", """
        SELECT c.name AS country_name, COUNT(DISTINCT cl.language_id) AS langs
        FROM country_languages AS cl
        LEFT JOIN languages AS l ON l.language_id = cl.language_id
        LEFT JOIN countries AS c ON c.country_id = cl.country_id
        WHERE l.language IN (:first_language, :second_language)
        GROUP BY cl.country_id, c.name
        HAVING langs > :threshold
        ORDER BY c.name ASC
    """,
    "Countries speaking more than `threshold` of two named languages",
    "aggregation",
    {"first_language": "French", "second_language": "Italian", "threshold": 1}),

    # ==========================================================================
    # Common table expressions
    # ==========================================================================

    ("Q05", """
        WITH country_metrics AS (
            SELECT c.name AS country_name, cs.population
            FROM country_stats cs
            LEFT JOIN countries c ON c.country_id = cs.country_id
            WHERE :year IS NULL OR cs.year = :year
        )
        SELECT cs1.country_name, cs1.population
        FROM country_metrics cs1
        WHERE cs1.population > (
            SELECT AVG(cs2.population)
            FROM country_metrics cs2
        )
        ORDER BY cs1.population ASC, cs1.country_name ASC
    """,
    "Countries above the average population, CTE referenced twice",
    "cte",
    {"year": 2017}),

    ("Q06", """
        WITH RECURSIVE nodes AS (
            SELECT 'region' AS kind, region_id AS node_id, name,
                   'continent' AS parent_kind, continent_id AS parent_id
            FROM regions
            UNION ALL
            SELECT 'country', country_id, name, 'region', region_id
            FROM countries
        ),
        hierarchy AS (
            SELECT 'continent' AS kind, continent_id AS node_id, name,
                   NULL AS parent_id, 0 AS depth, name AS path
            FROM continents
            WHERE :continent IS NULL OR name = :continent
            UNION ALL
            SELECT n.kind, n.node_id, n.name, n.parent_id, h.depth + 1,
                   h.path || ' > ' || n.name
            FROM nodes n
            JOIN hierarchy h ON n.parent_kind = h.kind AND n.parent_id = h.node_id
        )
        SELECT kind, node_id, name, parent_id, depth, path
        FROM hierarchy
        ORDER BY path
    """,
    "Continent > region > country hierarchy walk",
    "recursive",
    {"continent": "Africa"}),

    ("Q07", """
        WITH continent_countries AS (
            SELECT
                ct.name AS continent_name,
                c.name AS country_name,
                l.language AS language_name,
                cs.population,
                cs.gdp
            FROM countries c
            JOIN regions r ON c.region_id = r.region_id
            JOIN continents ct ON r.continent_id = ct.continent_id
            JOIN country_languages cl ON c.country_id = cl.country_id
            JOIN languages l ON cl.language_id = l.language_id
            JOIN country_stats cs ON c.country_id = cs.country_id
            WHERE ct.name = :continent
              AND cl.official = 1
              AND cs.year = :year
        )
        SELECT
            language_name,
            COUNT(*) AS num_countries,
            FORMAT(AVG(gdp), 0) AS average_gdp,
            FORMAT(AVG(population), 0) AS average_population
        FROM continent_countries
        GROUP BY language_name
        ORDER BY AVG(population) DESC
        LIMIT :limit
    """,
    "Average GDP and population per official language on one continent",
    "cte",
    {"continent": "Africa", "year": 2017, "limit": 5}),

    # ==========================================================================
    # Conditional logic and user-defined functions
    # ==========================================================================

    ("Q08", """
        SELECT
            c.name AS country_name,
            cs.gdp,
            CASE
                WHEN cs.gdp < 10000000000 THEN 'Low GDP'
                WHEN cs.gdp BETWEEN 10000000000 AND 100000000000 THEN 'Medium GDP'
                ELSE 'High GDP'
            END AS gdp_category
        FROM countries c
        JOIN country_stats cs ON c.country_id = cs.country_id
        WHERE cs.year = :year
        ORDER BY c.name ASC
        LIMIT :limit
    """,
    "GDP band via inline CASE",
    "case",
    {"year": 2017, "limit": 5}),

    ("Q09", """
        SELECT
            c.name AS country_name,
            cs.gdp,
            categorize_gdp(cs.gdp) AS gdp_category
        FROM countries c
        JOIN country_stats cs ON c.country_id = cs.country_id
        WHERE cs.year = :year
        ORDER BY c.name ASC
        LIMIT :limit
    """,
    "GDP band via the categorize_gdp() function",
    "functions",
    {"year": 2017, "limit": 5}),

    # ==========================================================================
    # Temporary tables
    # ==========================================================================

    ("Q10", """
        CREATE TEMP TABLE temp_country_data AS
        SELECT
            c.country_id,
            c.name AS country_name,
            r.name AS region_name,
            cs.gdp,
            cs.population,
            cl.language_id
        FROM countries c
        JOIN regions r ON c.region_id = r.region_id
        JOIN continents ct ON r.continent_id = ct.continent_id
        JOIN country_stats cs ON c.country_id = cs.country_id
        JOIN country_languages cl ON c.country_id = cl.country_id
        WHERE ct.name = :continent
          AND cs.year = :year
          AND cl.official = 1
    """,
    "Stage country-level rows for one continent and year",
    "temporary",
    None),

    ("Q11", """
        CREATE TEMP TABLE temp_region_data AS
        SELECT
            region_name,
            AVG(gdp) AS total_gdp,
            AVG(population) AS total_population
        FROM (
            SELECT DISTINCT country_id, region_name, gdp, population
            FROM temp_country_data
        )
        GROUP BY region_name
    """,
    "Aggregate the staged countries by region, one row per country",
    "temporary",
    None),

    ("Q12", """
        SELECT
            r.region_name,
            GROUP_CONCAT(DISTINCT l.language) AS languages,
            FORMAT(r.total_gdp, 0) AS tot_gdp,
            FORMAT(r.total_population, 0) AS tot_pop,
            COUNT(DISTINCT tcd.country_id) AS num_countries
        FROM temp_region_data r
        JOIN temp_country_data tcd ON r.region_name = tcd.region_name
        JOIN languages l ON tcd.language_id = l.language_id
        GROUP BY r.region_name
        ORDER BY r.total_gdp DESC
        LIMIT :limit
    """,
    "Ranked region report joining both staged tables",
    "temporary",
    None),

    ("Q13", "DROP TABLE IF EXISTS temp.temp_country_data",
    "Discard staged country rows",
    "temporary",
    None),

    ("Q14", "DROP TABLE IF EXISTS temp.temp_region_data",
    "Discard staged region aggregates",
    "temporary",
    None),

    # ==========================================================================
    # Transactions
    # ==========================================================================

    ("Q15", """
        UPDATE country_stats
        SET gdp = :gdp,
            population = :population
        WHERE country_id = :country_id AND year = :year
    """,
    "Update one country's yearly statistics",
    "transactions",
    None),

    ("Q16", """
        INSERT INTO country_languages (country_id, language_id, official)
        VALUES (:country_id, :language_id, :official)
    """,
    "Add a language to a country",
    "transactions",
    None),

    # ==========================================================================
    # Bulk generation and reachability
    # ==========================================================================

    ("Q17", """
        INSERT INTO country_distances (origin, destination, distance)
        SELECT
            c1.country_id AS origin,
            c2.country_id AS destination,
            CAST(1 + RAND() * :max_distance AS INTEGER) AS distance
        FROM countries c1
        CROSS JOIN countries c2
    """,
    "Fill country_distances with a random distance per country pair",
    "optimization",
    None),

    ("Q18", """
        WITH RECURSIVE country_destination(destination) AS (
            SELECT origin
            FROM country_distances
            WHERE origin = :origin
          UNION
            SELECT cd.destination
            FROM country_distances cd
            JOIN country_destination r ON r.destination = cd.origin
        )
        SELECT destination FROM country_destination
        ORDER BY destination
    """,
    "Every country reachable from an origin over country_distances",
    "recursive",
    {"origin": 1}),

    ("Q19", """
        DELETE FROM country_distances
        WHERE rowid IN (
            SELECT rowid FROM country_distances
            ORDER BY RAND()
            LIMIT :count
        )
    """,
    "Delete a number of random distance rows",
    "optimization",
    None),

    # ==========================================================================
    # Indexes
    # ==========================================================================

    ("Q20", """
        SELECT COUNT(cd.origin) FROM country_distances cd
        JOIN countries c ON c.country_id = cd.origin
    """,
    "Count distance rows joined to their origin country",
    "optimization",
    {}),

    ("Q21", "CREATE INDEX IF NOT EXISTS idx_origin ON country_distances(origin)",
    "Index distance origins",
    "optimization",
    None),

    ("Q22", "CREATE INDEX IF NOT EXISTS idx_destination ON country_distances(destination)",
    "Index distance destinations",
    "optimization",
    None),

    ("Q23", """
        SELECT COUNT(cd.origin) FROM country_distances cd
        JOIN countries c ON c.country_id = cd.origin
        WHERE c.region_id = :region_id
    """,
    "Count distance rows whose origin lies in one region",
    "optimization",
    {"region_id": 5}),

    # ==========================================================================
    # Partitioning, caching, profiling
    # ==========================================================================

    ("Q24", """
        SELECT * FROM country_stats_partitioned WHERE year = :year
        ORDER BY country_id
    """,
    "Read one year from the range-partitioned statistics",
    "partitioning",
    {"year": 2017}),

    ("Q25", """
        SELECT COUNT(*) FROM countries WHERE region_id = :region_id
    """,
    "Repeated small count served from the page cache",
    "caching",
    {"region_id": 2}),

    ("Q26", """
        SELECT VARIANCE(gdp) FROM country_stats_partitioned WHERE year = :year
    """,
    "GDP variance for one year, the profiled statement",
    "profiling",
    {"year": 1982}),

]


def get_queries() -> List[Query]:
    """Get all queries in script order."""
    return QUERIES


def get_query_by_id(query_id: str) -> Query:
    """Get a specific query by ID."""
    for q in QUERIES:
        if q[0] == query_id:
            return q
    raise ValueError(f"Query {query_id} not found")


def get_sql(query_id: str) -> str:
    """SQL text of a query, stripped of surrounding whitespace."""
    return get_query_by_id(query_id)[1].strip()


def get_queries_by_section(section: str) -> List[Query]:
    """Get queries belonging to one walkthrough section."""
    if section not in SECTIONS:
        raise ValueError(f"Section must be one of {SECTIONS}, got {section!r}")
    return [q for q in QUERIES if q[3] == section]


def get_standalone_queries(section: Optional[str] = None) -> List[Query]:
    """Read-only queries that can run on their own with their default params."""
    queries = get_queries_by_section(section) if section else QUERIES
    return [q for q in queries if q[4] is not None]


if __name__ == "__main__":
    print(f"Total queries: {len(QUERIES)}")
    print("\nQueries by section:")
    for section in SECTIONS:
        queries = get_queries_by_section(section)
        print(f"  {section}: {len(queries)} queries ({', '.join(q[0] for q in queries)})")

    print("\n\nStandalone:")
    for q in get_standalone_queries():
        print(f"  {q[0]}: {q[2]}")
