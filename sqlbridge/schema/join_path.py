"""
Join Path Finder

Connects a set of selected tables through the foreign-key graph.

The graph is a NetworkX MultiDiGraph with one node per table and one edge per
foreign key (referencing -> referenced), keyed by constraint name. A
breadth-first search from the first selected table yields the shortest hop
path to every other selected table it can reach.
"""

import logging
from collections import deque

import networkx as nx

from sqlbridge.models.schema import DatabaseSchema, JoinEdge, JoinPlan, Table
from sqlbridge.schema.registry import SchemaRegistry

logger = logging.getLogger(__name__)


class JoinPathFinder:
    """
    Finds join plans over the registry's foreign-key graph.

    Usage:
        finder = JoinPathFinder(registry)
        plan = finder.find_join_plan([fixture_table, club_table])
        plan.on_clauses()  # ["t0.HomeClubId = t1.Id"]
    """

    def __init__(self, registry: SchemaRegistry, bidirectional: bool = False):
        """
        Args:
            registry: Registry holding the active schema
            bidirectional: Also traverse foreign keys from the referenced side
        """
        self.registry = registry
        self.bidirectional = bidirectional

    def build_graph(self, schema: DatabaseSchema) -> nx.MultiDiGraph:
        """Build the foreign-key graph for a schema snapshot."""
        graph = nx.MultiDiGraph()
        for table in schema.tables:
            graph.add_node(table.full_name.lower(), table=table)

        for table in schema.tables:
            source = table.full_name.lower()
            for fk in table.foreign_keys:
                target_table = schema.table_by_full_name(fk.to_full_name)
                if target_table is None:
                    logger.debug(
                        f"Skipping foreign key {fk.name}: {fk.to_full_name} not in schema"
                    )
                    continue
                target = target_table.full_name.lower()
                self._add_edge(graph, source, target, JoinEdge(
                    from_table=table, to_table=target_table, foreign_key=fk
                ))
                if self.bidirectional:
                    self._add_edge(graph, target, source, JoinEdge(
                        from_table=target_table, to_table=table, foreign_key=fk
                    ))
        return graph

    @staticmethod
    def _add_edge(graph: nx.MultiDiGraph, source: str, target: str, edge: JoinEdge) -> None:
        key = edge.foreign_key.name.lower()
        if graph.has_edge(source, target, key=key):
            return
        graph.add_edge(source, target, key=key, join=edge)

    def find_join_plan(self, selected: list[Table]) -> JoinPlan:
        """
        Connect the selected tables with the fewest foreign-key hops.

        Tables that cannot be reached from the first selected table, or that
        are unknown to the schema, are left out of the joins.

        Args:
            selected: Tables in relevance order; the first is the search root

        Returns:
            JoinPlan with the selected tables and de-duplicated join edges
        """
        tables = list(selected)
        schema = self.registry.schema
        if len(tables) <= 1 or schema is None:
            return JoinPlan(tables=tables, joins=[])

        graph = self.build_graph(schema)
        start = tables[0].full_name.lower()
        if start not in graph:
            logger.debug(f"Join search root {tables[0].full_name} not in schema")
            return JoinPlan(tables=tables, joins=[])

        wanted = {t.full_name.lower() for t in tables[1:]}
        parents = self._search(graph, start, wanted)

        joins: list[JoinEdge] = []
        seen: set[tuple[str, str, str]] = set()
        for table in tables[1:]:
            node = table.full_name.lower()
            if node == start:
                continue
            if node not in parents:
                logger.debug(f"No join path from {tables[0].full_name} to {table.full_name}")
                continue
            for edge in self._walk_back(parents, node, start):
                if edge.identity not in seen:
                    seen.add(edge.identity)
                    joins.append(edge)

        logger.debug(
            f"Join plan with {len(joins)} edges for {len(tables)} tables",
            extra={"tables": [t.full_name for t in tables]},
        )
        return JoinPlan(tables=tables, joins=joins)

    @staticmethod
    def _search(graph: nx.MultiDiGraph, start: str, wanted: set[str]) -> dict[str, JoinEdge]:
        """Breadth-first search recording the first edge that reached each node."""
        parents: dict[str, JoinEdge] = {}
        visited = {start}
        remaining = set(wanted) - visited
        queue = deque([start])
        while queue and remaining:
            node = queue.popleft()
            for _, neighbor, data in graph.out_edges(node, data=True):
                if neighbor in visited:
                    continue
                visited.add(neighbor)
                parents[neighbor] = data["join"]
                remaining.discard(neighbor)
                queue.append(neighbor)
        return parents

    @staticmethod
    def _walk_back(parents: dict[str, JoinEdge], node: str, start: str) -> list[JoinEdge]:
        """Edges on the search tree path from a node back to the start."""
        path: list[JoinEdge] = []
        while node != start:
            edge = parents[node]
            path.append(edge)
            node = edge.from_table.full_name.lower()
        return path
