import unittest

from nation_sql import optimization
from nation_sql.database import get_connection
from nation_sql.evaluation import (compare_queries, execute_query_with_timeout, format_details,
                                   is_read_only, normalize_results, run_corpus)
from nation_sql.queries import (SECTIONS, get_queries, get_queries_by_section, get_query_by_id,
                                get_sql, get_standalone_queries)


class QueryCorpusTests(unittest.TestCase):
    def test_ids_unique_and_ordered(self):
        ids = [q[0] for q in get_queries()]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(ids, sorted(ids))

    def test_every_query_in_known_section(self):
        for query_id, _, _, section, _ in get_queries():
            self.assertIn(section, SECTIONS, query_id)

    def test_lookup(self):
        self.assertEqual(get_query_by_id("Q04")[3], "aggregation")
        self.assertTrue(get_sql("Q01").startswith("SELECT"))
        with self.assertRaises(ValueError):
            get_query_by_id("Q99")
        with self.assertRaises(ValueError):
            get_queries_by_section("windowing")

    def test_standalone_queries_are_read_only(self):
        for query_id, sql, _, _, params in get_standalone_queries():
            self.assertTrue(is_read_only(sql), query_id)
            self.assertIsNotNone(params)

    def test_section_filter(self):
        self.assertEqual([q[0] for q in get_standalone_queries("recursive")], ["Q06", "Q18"])


class EvaluationTests(unittest.TestCase):
    def setUp(self):
        self.conn = get_connection(":memory:")

    def test_normalize_results_ignores_order(self):
        self.assertEqual(normalize_results([(1, 'a'), (2, 'b')]), normalize_results([(2, 'b'), (1, 'a')]))
        self.assertNotEqual(normalize_results([(1,)]), normalize_results([(1,), (1,)]))
        self.assertEqual(normalize_results([]), "EMPTY")

    def test_execute_reports_sql_errors(self):
        rows, elapsed, error = execute_query_with_timeout(self.conn, "SELECT * FROM missing")
        self.assertEqual((rows, elapsed), ([], -1))
        self.assertTrue(error.startswith("SQL Error"))

    def test_execute_reports_timeout(self):
        _, _, error = execute_query_with_timeout(
            self.conn, "WITH RECURSIVE n(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM n) SELECT COUNT(*) FROM n",
            timeout=0.05)
        self.assertEqual(error, "Query timeout after 0.05s")

    def test_join_and_subquery_equivalent(self):
        for country in ("Bangladesh", "Switzerland", "Kenya"):
            result = compare_queries(self.conn, get_sql("Q01"), get_sql("Q02"),
                                     {"country_name": country}, {"country_name": country})
            self.assertTrue(result["equal"], country)
            self.assertGreater(result["rows_a"], 0)

    def test_run_corpus(self):
        optimization.populate_country_distances(self.conn)
        optimization.create_partitioned_stats(self.conn)
        optimization.copy_stats_into_partitions(self.conn)

        details = run_corpus(self.conn, progress=False)
        self.assertEqual(details["failed"], 0, format_details(details))
        self.assertEqual(details["num_queries"], len(get_standalone_queries()))
        self.assertEqual(sorted(details["queries"]["Q01"]["rows"]), [('Bengali',), ('English',), ('Hindi',)])
        self.assertIn("Summary:", format_details(details))

    def test_run_corpus_records_failures(self):
        # no partitioned copy yet
        details = run_corpus(self.conn, section="partitioning", progress=False)
        self.assertEqual(details["failed"], 1)
        self.assertIn("no such table", details["queries"]["Q24"]["error"])
        self.assertIn("✗ Q24", format_details(details))


if __name__ == "__main__":
    unittest.main()
