"""
Nation Sample Database

Creates a cached SQLite database shaped like the MariaDB `nation` sample
database that the walkthrough queries are written against.

Schema:
- continents         (7 rows)
- regions            (sub-continental regions, one continent each)
- countries          (one region each)
- languages
- country_languages  (official / spoken association)
- country_stats      (one row per country per year)
- country_distances  (created empty; filled by optimization.populate_country_distances)

The sample data is generated deterministically from a seed, created once and
cached to disk for reuse across runs.
"""

import fcntl
import logging
import os
import random
import sqlite3
import time
from typing import Dict, Iterable, List, Optional, Tuple

try:
    from .functions import register_functions
except ImportError:
    from functions import register_functions

logger = logging.getLogger(__name__)

# Database paths
DB_PATH = "/tmp/nation_sample_db.sqlite"
LOCK_PATH = "/tmp/nation_sample_db.lock"

# Data generation parameters
DEFAULT_SEED = 42
DEFAULT_YEAR_RANGE = (1980, 2023)

TABLES = [
    "continents",
    "regions",
    "countries",
    "languages",
    "country_languages",
    "country_stats",
    "country_distances",
]

CONTINENTS = ['Africa', 'Antarctica', 'Asia', 'Europe', 'North America', 'Oceania', 'South America']

# region -> continent
REGIONS = [
    ('Eastern Africa', 'Africa'),
    ('Western Africa', 'Africa'),
    ('Northern Africa', 'Africa'),
    ('Middle Africa', 'Africa'),
    ('Southern Asia', 'Asia'),
    ('Eastern Asia', 'Asia'),
    ('Western Europe', 'Europe'),
    ('Southern Europe', 'Europe'),
    ('Northern Europe', 'Europe'),
    ('North America', 'North America'),
    ('Caribbean', 'North America'),
    ('Australia and New Zealand', 'Oceania'),
    ('South America', 'South America'),
]

# (country, region, [(language, official), ...])
COUNTRIES = [
    ('Kenya', 'Eastern Africa', [('Swahili', 1), ('English', 1)]),
    ('Tanzania', 'Eastern Africa', [('Swahili', 1), ('English', 1)]),
    ('Uganda', 'Eastern Africa', [('Swahili', 1), ('English', 1)]),
    ('Rwanda', 'Eastern Africa', [('Kinyarwanda', 1), ('French', 1), ('English', 1)]),
    ('Ethiopia', 'Eastern Africa', [('Amharic', 1), ('English', 0)]),
    ('Nigeria', 'Western Africa', [('English', 1), ('Hausa', 0), ('Yoruba', 0)]),
    ('Ghana', 'Western Africa', [('English', 1)]),
    ('Senegal', 'Western Africa', [('French', 1), ('Wolof', 0)]),
    ('Ivory Coast', 'Western Africa', [('French', 1)]),
    ('Egypt', 'Northern Africa', [('Arabic', 1), ('English', 0)]),
    ('Morocco', 'Northern Africa', [('Arabic', 1), ('French', 0)]),
    ('Tunisia', 'Northern Africa', [('Arabic', 1), ('French', 0), ('Italian', 0)]),
    ('Cameroon', 'Middle Africa', [('French', 1), ('English', 1)]),
    ('Chad', 'Middle Africa', [('French', 1), ('Arabic', 1)]),
    ('Bangladesh', 'Southern Asia', [('Bengali', 1), ('English', 0), ('Hindi', 0)]),
    ('India', 'Southern Asia', [('Hindi', 1), ('English', 1), ('Bengali', 0)]),
    ('Pakistan', 'Southern Asia', [('Urdu', 1), ('English', 1)]),
    ('China', 'Eastern Asia', [('Chinese', 1)]),
    ('Japan', 'Eastern Asia', [('Japanese', 1)]),
    ('France', 'Western Europe', [('French', 1), ('Italian', 0)]),
    ('Belgium', 'Western Europe', [('Dutch', 1), ('French', 1), ('German', 1)]),
    ('Switzerland', 'Western Europe', [('German', 1), ('French', 1), ('Italian', 1)]),
    ('Luxembourg', 'Western Europe', [('French', 1), ('German', 1)]),
    ('Germany', 'Western Europe', [('German', 1)]),
    ('Monaco', 'Western Europe', [('French', 1), ('Italian', 0), ('English', 0)]),
    ('Italy', 'Southern Europe', [('Italian', 1), ('German', 0), ('French', 0)]),
    ('San Marino', 'Southern Europe', [('Italian', 1)]),
    ('Spain', 'Southern Europe', [('Spanish', 1)]),
    ('Portugal', 'Southern Europe', [('Portuguese', 1)]),
    ('Sweden', 'Northern Europe', [('Swedish', 1)]),
    ('United Kingdom', 'Northern Europe', [('English', 1)]),
    ('Canada', 'North America', [('English', 1), ('French', 1)]),
    ('United States', 'North America', [('English', 1), ('Spanish', 0)]),
    ('Mexico', 'North America', [('Spanish', 1)]),
    ('Haiti', 'Caribbean', [('French', 1)]),
    ('Australia', 'Australia and New Zealand', [('English', 1), ('Italian', 0)]),
    ('New Zealand', 'Australia and New Zealand', [('English', 1)]),
    ('Brazil', 'South America', [('Portuguese', 1)]),
    ('Argentina', 'South America', [('Spanish', 1), ('Italian', 0)]),
    ('Chile', 'South America', [('Spanish', 1)]),
]


def _create_schema(cursor):
    """Create database schema with all 7 tables and indexes"""
    cursor.executescript("""
        -- Continents table
        CREATE TABLE continents (
            continent_id INTEGER PRIMARY KEY,
            name TEXT NOT NULL
        );

        -- Regions table (one continent each)
        CREATE TABLE regions (
            region_id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            continent_id INTEGER NOT NULL,
            FOREIGN KEY (continent_id) REFERENCES continents(continent_id)
        );

        -- Countries table
        CREATE TABLE countries (
            country_id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            area REAL,
            national_day DATE,
            country_code2 TEXT,
            country_code3 TEXT,
            region_id INTEGER NOT NULL,
            FOREIGN KEY (region_id) REFERENCES regions(region_id)
        );

        -- Languages table
        CREATE TABLE languages (
            language_id INTEGER PRIMARY KEY,
            language TEXT NOT NULL
        );

        -- Country/language association
        CREATE TABLE country_languages (
            country_id INTEGER NOT NULL,
            language_id INTEGER NOT NULL,
            official INTEGER NOT NULL CHECK (official IN (0, 1)),
            PRIMARY KEY (country_id, language_id),
            FOREIGN KEY (country_id) REFERENCES countries(country_id),
            FOREIGN KEY (language_id) REFERENCES languages(language_id)
        );

        -- Yearly statistics
        CREATE TABLE country_stats (
            country_id INTEGER NOT NULL,
            year INTEGER NOT NULL,
            population INTEGER,
            gdp INTEGER,
            PRIMARY KEY (country_id, year),
            FOREIGN KEY (country_id) REFERENCES countries(country_id)
        );

        -- Pairwise distances between countries
        CREATE TABLE country_distances (
            origin INTEGER NOT NULL,
            destination INTEGER NOT NULL,
            distance INTEGER NOT NULL,
            PRIMARY KEY (origin, destination),
            FOREIGN KEY (origin) REFERENCES countries(country_id),
            FOREIGN KEY (destination) REFERENCES countries(country_id)
        );

        CREATE INDEX idx_regions_continent ON regions(continent_id);
        CREATE INDEX idx_countries_region ON countries(region_id);
        CREATE INDEX idx_country_languages_language ON country_languages(language_id);
        CREATE INDEX idx_country_stats_year ON country_stats(year);
    """)


def create_schema(conn: sqlite3.Connection):
    """Create the nation schema on an empty database."""
    _create_schema(conn.cursor())


def _populate_continents(cursor) -> Dict[str, int]:
    logger.info(f"Populating continents ({len(CONTINENTS)} rows)...")
    data = [(i, name) for i, name in enumerate(CONTINENTS, start=1)]
    cursor.executemany("INSERT INTO continents VALUES (?,?)", data)
    return {name: i for i, name in data}


def _populate_regions(cursor, continent_ids: Dict[str, int]) -> Dict[str, int]:
    logger.info(f"Populating regions ({len(REGIONS)} rows)...")
    data = [(i, name, continent_ids[continent]) for i, (name, continent) in enumerate(REGIONS, start=1)]
    cursor.executemany("INSERT INTO regions VALUES (?,?,?)", data)
    return {name: i for i, name, _ in data}


def _populate_countries(cursor, region_ids: Dict[str, int]) -> Dict[str, int]:
    logger.info(f"Populating countries ({len(COUNTRIES)} rows)...")
    data = []
    for i, (name, region, _) in enumerate(COUNTRIES, start=1):
        area = round(random.uniform(1_000, 10_000_000), 2)
        national_day = f"{random.randint(1800, 1990)}-{random.randint(1, 12):02d}-{random.randint(1, 28):02d}"
        code2 = name[:2].upper()
        code3 = name[:3].upper()
        data.append((i, name, area, national_day, code2, code3, region_ids[region]))
    cursor.executemany("INSERT INTO countries VALUES (?,?,?,?,?,?,?)", data)
    return {name: i for i, name, *_ in data}


def _populate_languages(cursor) -> Dict[str, int]:
    names = sorted({language for _, _, spoken in COUNTRIES for language, _ in spoken})
    logger.info(f"Populating languages ({len(names)} rows)...")
    data = [(i, name) for i, name in enumerate(names, start=1)]
    cursor.executemany("INSERT INTO languages VALUES (?,?)", data)
    return {name: i for i, name in data}


def _populate_country_languages(cursor, country_ids: Dict[str, int], language_ids: Dict[str, int]):
    data = [
        (country_ids[country], language_ids[language], official)
        for country, _, spoken in COUNTRIES
        for language, official in spoken
    ]
    logger.info(f"Populating country_languages ({len(data)} rows)...")
    cursor.executemany("INSERT INTO country_languages VALUES (?,?,?)", data)


def _populate_country_stats(cursor, country_ids: Dict[str, int], year_range: Tuple[int, int]):
    first_year, last_year = year_range
    data = []
    for country_id in country_ids.values():
        # Log-uniform starting points spread countries across all GDP bands
        population = int(10 ** random.uniform(4.5, 9.1))
        gdp = int(10 ** random.uniform(8.5, 13.2))
        for year in range(first_year, last_year + 1):
            data.append((country_id, year, population, gdp))
            population = int(population * random.uniform(1.0, 1.03))
            gdp = int(gdp * random.uniform(0.97, 1.08))
    logger.info(f"Populating country_stats ({len(data)} rows)...")
    cursor.executemany("INSERT INTO country_stats VALUES (?,?,?,?)", data)


def populate_sample_data(conn: sqlite3.Connection, seed: int = DEFAULT_SEED,
                         year_range: Tuple[int, int] = DEFAULT_YEAR_RANGE):
    """Fill an empty schema with the deterministic sample data set."""
    random.seed(seed)
    cursor = conn.cursor()
    continent_ids = _populate_continents(cursor)
    region_ids = _populate_regions(cursor, continent_ids)
    country_ids = _populate_countries(cursor, region_ids)
    language_ids = _populate_languages(cursor)
    _populate_country_languages(cursor, country_ids, language_ids)
    _populate_country_stats(cursor, country_ids, year_range)


def _create_database(db_path: str, seed: int, year_range: Tuple[int, int]):
    """Create and populate the database"""
    t1 = time.time()
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute("PRAGMA synchronous = OFF")
    cursor.execute("PRAGMA journal_mode = MEMORY")

    logger.info("Creating schema...")
    _create_schema(cursor)

    logger.info("Populating tables...")
    populate_sample_data(conn, seed, year_range)

    conn.commit()
    cursor.execute("ANALYZE")
    conn.commit()
    conn.close()

    t2 = time.time()
    size_kb = os.path.getsize(db_path) / 1024
    logger.info(f"Database created in {t2-t1:.1f} seconds ({size_kb:.0f} KB)")


def connect(db_path: str = ":memory:", readonly: bool = False,
            seed: Optional[int] = None) -> sqlite3.Connection:
    """
    Open a connection with foreign keys enforced and nation functions registered.

    The connection runs in autocommit mode (isolation_level=None) so that
    transaction boundaries are always explicit BEGIN / COMMIT / ROLLBACK.
    """
    if readonly:
        conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True,
                               isolation_level=None, check_same_thread=False)
    else:
        conn = sqlite3.connect(db_path, isolation_level=None, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON")
    register_functions(conn, seed)
    return conn


def get_connection(db_path: str = DB_PATH, readonly: bool = False,
                   seed: int = DEFAULT_SEED,
                   year_range: Tuple[int, int] = DEFAULT_YEAR_RANGE) -> sqlite3.Connection:
    """Get a database connection, creating the sample database if it doesn't exist."""
    if db_path == ":memory:":
        conn = connect(db_path, seed=seed)
        create_schema(conn)
        conn.execute("BEGIN")
        populate_sample_data(conn, seed, year_range)
        conn.execute("COMMIT")
        return conn

    if os.path.exists(db_path):
        return connect(db_path, readonly=readonly, seed=seed)

    lock_path = _lock_path_for(db_path)
    os.makedirs(os.path.dirname(os.path.abspath(lock_path)), exist_ok=True)

    with open(lock_path, 'w') as lock_file:
        fcntl.flock(lock_file, fcntl.LOCK_EX)
        try:
            if not os.path.exists(db_path):
                logger.info(f"First run: creating sample database at {db_path}")
                # db_path only appears once fully built
                build_path = f"{db_path}.building"
                if os.path.exists(build_path):
                    os.remove(build_path)
                _create_database(build_path, seed, year_range)
                os.replace(build_path, db_path)
        finally:
            fcntl.flock(lock_file, fcntl.LOCK_UN)

    return connect(db_path, readonly=readonly, seed=seed)


def _lock_path_for(db_path: str) -> str:
    if db_path == DB_PATH:
        return LOCK_PATH
    return os.path.splitext(db_path)[0] + ".lock"


def reset_database(db_path: str = DB_PATH, **kwargs) -> sqlite3.Connection:
    """Delete and recreate the database"""
    if os.path.exists(db_path):
        os.remove(db_path)
    lock_path = _lock_path_for(db_path)
    if os.path.exists(lock_path):
        os.remove(lock_path)
    return get_connection(db_path, **kwargs)


def table_row_counts(conn: sqlite3.Connection, tables: Iterable[str] = TABLES) -> Dict[str, int]:
    """Row count per base table."""
    return {
        table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        for table in tables
    }


def get_schema_info() -> dict:
    """Get database schema information."""
    return {
        "tables": {
            "continents": ["continent_id", "name"],
            "regions": ["region_id", "name", "continent_id"],
            "countries": ["country_id", "name", "area", "national_day", "country_code2", "country_code3", "region_id"],
            "languages": ["language_id", "language"],
            "country_languages": ["country_id", "language_id", "official"],
            "country_stats": ["country_id", "year", "population", "gdp"],
            "country_distances": ["origin", "destination", "distance"],
        },
        "cardinality": {
            "continents": len(CONTINENTS),
            "regions": len(REGIONS),
            "countries": len(COUNTRIES),
            "languages": len({language for _, _, spoken in COUNTRIES for language, _ in spoken}),
        }
    }


def list_tables(conn: sqlite3.Connection, temp: bool = False) -> List[str]:
    """Names of the tables in the main (or temp) schema."""
    master = "sqlite_temp_master" if temp else "sqlite_master"
    rows = conn.execute(f"SELECT name FROM {master} WHERE type = 'table' ORDER BY name").fetchall()
    return [name for (name,) in rows]


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Testing sample database...")
    conn = reset_database()

    print("\nTable row counts:")
    for table, count in table_row_counts(conn).items():
        print(f"  {table}: {count:,}")

    conn.close()
    print("\nDone!")
