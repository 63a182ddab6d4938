import unittest

from nation_sql import staging
from nation_sql.database import list_tables
from tests.support import seeded_database


class Boom(Exception):
    pass


class StagedTablesTests(unittest.TestCase):
    def setUp(self):
        self.conn = seeded_database()

    def test_tables_exist_only_inside_block(self):
        with staging.staged_tables(self.conn, 'Africa', 2017):
            self.assertEqual(staging.staged_table_names(self.conn),
                             ['temp_country_data', 'temp_region_data'])
            staged = self.conn.execute(
                "SELECT country_name, language_id FROM temp_country_data ORDER BY country_name, language_id"
            ).fetchall()
            # official languages only
            self.assertEqual(staged, [('Kenya', 1), ('Kenya', 2), ('Senegal', 3), ('Tanzania', 1)])
        self.assertEqual(staging.staged_table_names(self.conn), [])
        self.assertEqual(list_tables(self.conn, temp=True), [])

    def test_tables_dropped_on_error(self):
        with self.assertRaises(Boom):
            with staging.staged_tables(self.conn):
                raise Boom()
        self.assertEqual(staging.staged_table_names(self.conn), [])

    def test_drop_is_idempotent(self):
        staging.drop_staged_tables(self.conn)
        staging.drop_staged_tables(self.conn)
        self.assertEqual(staging.staged_table_names(self.conn), [])

    def test_leftover_tables_are_replaced(self):
        self.conn.execute("CREATE TEMP TABLE temp_country_data (x)")
        report = staging.region_language_report(self.conn, 'Africa', 2017)
        self.assertEqual(len(report), 2)

    def test_temp_tables_do_not_shadow_base_schema(self):
        with staging.staged_tables(self.conn):
            self.assertNotIn('temp_country_data', list_tables(self.conn))


class RegionLanguageReportTests(unittest.TestCase):
    def test_ranked_by_average_gdp(self):
        conn = seeded_database()
        report = staging.region_language_report(conn, 'Africa', 2017, limit=None)
        regions = [row[0] for row in report]
        # Western Africa (Senegal, 1e11) outranks Eastern Africa
        self.assertEqual(regions, ['Western Africa', 'Eastern Africa'])

        western, eastern = report
        self.assertEqual(western[1], 'French')
        self.assertEqual(western[2], '100,000,000,000')
        self.assertEqual(western[4], 1)

        self.assertEqual(set(eastern[1].split(',')), {'Swahili', 'English'})
        # Kenya has two official languages but is averaged once
        self.assertEqual(eastern[3], '53,500,000')
        self.assertEqual(eastern[4], 2)

    def test_limit(self):
        conn = seeded_database()
        self.assertEqual(len(staging.region_language_report(conn, 'Africa', 2017, limit=1)), 1)

    def test_empty_continent(self):
        conn = seeded_database()
        self.assertEqual(staging.region_language_report(conn, 'Antarctica', 2017), [])


if __name__ == "__main__":
    unittest.main()
