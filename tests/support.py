"""Small fixture data sets shared by the test modules."""

from nation_sql.database import connect, create_schema


def empty_database(db_path=":memory:", seed=7):
    conn = connect(db_path, seed=seed)
    create_schema(conn)
    return conn


def seed_geography(conn):
    """Two continents, three regions, five countries."""
    conn.executemany("INSERT INTO continents VALUES (?,?)", [
        (1, 'Africa'),
        (2, 'Europe'),
    ])
    conn.executemany("INSERT INTO regions VALUES (?,?,?)", [
        (1, 'Eastern Africa', 1),
        (2, 'Western Africa', 1),
        (3, 'Western Europe', 2),
    ])
    conn.executemany(
        "INSERT INTO countries (country_id, name, region_id) VALUES (?,?,?)", [
            (1, 'Kenya', 1),
            (2, 'Tanzania', 1),
            (3, 'Senegal', 2),
            (4, 'Switzerland', 3),
            (5, 'France', 3),
        ])


def seed_languages(conn):
    conn.executemany("INSERT INTO languages VALUES (?,?)", [
        (1, 'Swahili'),
        (2, 'English'),
        (3, 'French'),
        (4, 'Italian'),
        (5, 'German'),
        (6, 'Wolof'),
    ])
    conn.executemany("INSERT INTO country_languages VALUES (?,?,?)", [
        (1, 1, 1), (1, 2, 1),
        (2, 1, 1), (2, 2, 0),
        (3, 3, 1), (3, 6, 0),
        (4, 5, 1), (4, 3, 1), (4, 4, 1),
        (5, 3, 1), (5, 4, 0),
    ])


def seed_stats(conn):
    conn.executemany("INSERT INTO country_stats (country_id, year, population, gdp) VALUES (?,?,?,?)", [
        (1, 2017, 50_000_000, 9_999_999_999),
        (2, 2017, 57_000_000, 10_000_000_000),
        (3, 2017, 15_000_000, 100_000_000_000),
        (4, 2017, 8_500_000, 100_000_000_001),
        (5, 2017, 67_000_000, 2_500_000_000_000),
        (1, 1999, 30_000_000, 12_000_000_000),
        (1, 2000, 31_000_000, 12_500_000_000),
        (1, 2019, 52_000_000, 95_000_000_000),
        (1, 2020, 53_000_000, 98_000_000_000),
    ])


def seeded_database(db_path=":memory:"):
    conn = empty_database(db_path)
    seed_geography(conn)
    seed_languages(conn)
    seed_stats(conn)
    return conn


def seed_distances(conn, pairs):
    conn.executemany("INSERT INTO country_distances VALUES (?,?,?)",
                     [(origin, destination, 10) for origin, destination in pairs])
