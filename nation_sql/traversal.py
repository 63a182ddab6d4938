"""
Recursive Traversal

Two recursive CTEs from the walkthrough plus an explicit breadth-first
traversal that computes the same reachability set outside the engine.

The reachability CTE relies on UNION (not UNION ALL) to reach a fixed
point on cyclic adjacency data; the BFS relies on a visited set.
"""

import logging
import sqlite3
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

try:
    from .queries import get_sql
except ImportError:
    from queries import get_sql

logger = logging.getLogger(__name__)


@dataclass
class HierarchyNode:
    kind: str              # 'continent', 'region' or 'country'
    node_id: int
    name: str
    parent_id: Optional[int]
    depth: int
    path: str


def region_hierarchy(conn: sqlite3.Connection, continent: Optional[str] = None) -> List[HierarchyNode]:
    """
    Walk continent > region > country.

    Args:
        conn: Database connection
        continent: Restrict the anchor to one continent; None walks all of them

    Returns:
        Nodes in path order, so each parent precedes its children
    """
    rows = conn.execute(get_sql("Q06"), {"continent": continent}).fetchall()
    return [HierarchyNode(*row) for row in rows]


def reachable_destinations(conn: sqlite3.Connection, origin: int) -> List[int]:
    """
    Transitive closure of destinations reachable from `origin`.

    The anchor is the origin itself when it has at least one outgoing edge,
    so an origin without edges reaches nothing.
    """
    rows = conn.execute(get_sql("Q18"), {"origin": origin}).fetchall()
    return [destination for (destination,) in rows]


def load_adjacency(conn: sqlite3.Connection) -> Dict[int, Set[int]]:
    """origin -> set of destinations, read from country_distances."""
    return edges_from_pairs(conn.execute("SELECT origin, destination FROM country_distances"))


def reachable_from(adjacency: Dict[int, Iterable[int]], origin: int,
                   max_depth: Optional[int] = None) -> List[int]:
    """
    Breadth-first expansion with a visited set.

    Same contract as reachable_destinations. `max_depth` bounds the number
    of expansion steps; None expands until no new node appears.
    """
    if not adjacency.get(origin):
        return []

    visited = {origin}
    frontier = deque([(origin, 0)])
    while frontier:
        node, depth = frontier.popleft()
        if max_depth is not None and depth >= max_depth:
            continue
        for neighbour in adjacency.get(node, ()):
            if neighbour not in visited:
                visited.add(neighbour)
                frontier.append((neighbour, depth + 1))
    return sorted(visited)


def reachable_destinations_bfs(conn: sqlite3.Connection, origin: int) -> List[int]:
    """reachable_destinations computed in Python from the adjacency list."""
    adjacency = load_adjacency(conn)
    result = reachable_from(adjacency, origin)
    logger.debug(f"BFS from {origin}: {len(result)} reachable over {len(adjacency)} origins")
    return result


def edges_from_pairs(pairs: Iterable[Tuple[int, int]]) -> Dict[int, Set[int]]:
    """Build an adjacency mapping from (origin, destination) pairs."""
    adjacency: Dict[int, Set[int]] = defaultdict(set)
    for origin, destination in pairs:
        adjacency[origin].add(destination)
    return adjacency
