import random
import unittest

from nation_sql import traversal
from nation_sql.database import get_connection
from nation_sql.optimization import delete_random_distances, populate_country_distances
from tests.support import seed_distances, seeded_database


class RegionHierarchyTests(unittest.TestCase):
    def setUp(self):
        self.conn = seeded_database()

    def test_walks_continent_region_country(self):
        nodes = traversal.region_hierarchy(self.conn, 'Africa')
        self.assertEqual([(n.kind, n.name, n.depth) for n in nodes], [
            ('continent', 'Africa', 0),
            ('region', 'Eastern Africa', 1),
            ('country', 'Kenya', 2),
            ('country', 'Tanzania', 2),
            ('region', 'Western Africa', 1),
            ('country', 'Senegal', 2),
        ])
        self.assertEqual(nodes[2].path, 'Africa > Eastern Africa > Kenya')

    def test_parents_precede_children(self):
        nodes = traversal.region_hierarchy(self.conn)
        seen = set()
        for node in nodes:
            if node.parent_id is not None:
                parent_kind = 'continent' if node.kind == 'region' else 'region'
                self.assertIn((parent_kind, node.parent_id), seen)
            seen.add((node.kind, node.node_id))
        self.assertEqual(sum(1 for n in nodes if n.kind == 'country'), 5)

    def test_unknown_continent_is_empty(self):
        self.assertEqual(traversal.region_hierarchy(self.conn, 'Atlantis'), [])


class ReachabilityTests(unittest.TestCase):
    def setUp(self):
        self.conn = seeded_database()

    def check_both(self, origin, expected):
        self.assertEqual(traversal.reachable_destinations(self.conn, origin), expected)
        self.assertEqual(traversal.reachable_destinations_bfs(self.conn, origin), expected)

    def test_chain(self):
        seed_distances(self.conn, [(1, 2), (2, 3), (3, 4)])
        self.check_both(1, [1, 2, 3, 4])
        self.check_both(3, [3, 4])

    def test_cycle_terminates_without_duplicates(self):
        seed_distances(self.conn, [(1, 2), (2, 3), (3, 1), (3, 4), (4, 4)])
        self.check_both(2, [1, 2, 3, 4])

    def test_origin_without_edges_reaches_nothing(self):
        seed_distances(self.conn, [(1, 2)])
        self.check_both(2, [])
        self.check_both(5, [])

    def test_origin_reached_only_through_cycle_is_included_once(self):
        seed_distances(self.conn, [(5, 4), (4, 5)])
        self.check_both(5, [4, 5])

    def test_sql_matches_bfs_on_random_thinned_graph(self):
        conn = get_connection(":memory:", seed=11)
        populate_country_distances(conn)
        total = conn.execute("SELECT COUNT(*) FROM country_distances").fetchone()[0]
        delete_random_distances(conn, int(total * 0.97))
        for origin in range(1, 11):
            self.assertEqual(traversal.reachable_destinations(conn, origin),
                             traversal.reachable_destinations_bfs(conn, origin))


class ReachableFromTests(unittest.TestCase):
    def test_max_depth_bounds_expansion(self):
        adjacency = traversal.edges_from_pairs([(1, 2), (2, 3), (3, 4)])
        self.assertEqual(traversal.reachable_from(adjacency, 1, max_depth=1), [1, 2])
        self.assertEqual(traversal.reachable_from(adjacency, 1, max_depth=2), [1, 2, 3])
        self.assertEqual(traversal.reachable_from(adjacency, 1), [1, 2, 3, 4])

    def test_random_graphs_have_no_duplicates(self):
        rng = random.Random(5)
        for _ in range(20):
            pairs = [(rng.randint(1, 8), rng.randint(1, 8)) for _ in range(15)]
            adjacency = traversal.edges_from_pairs(pairs)
            for origin in range(1, 9):
                result = traversal.reachable_from(adjacency, origin)
                self.assertEqual(len(result), len(set(result)))


if __name__ == "__main__":
    unittest.main()
