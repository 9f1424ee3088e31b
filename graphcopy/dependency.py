"""Table dependency graph built from foreign key constraints."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence

from graphcopy.core.models import ForeignKey
from graphcopy.exceptions import GraphConsistencyError

logger = logging.getLogger(__name__)


class TableNodeMap:
    """
    Bijective mapping between table names and integer node ids.

    Names are stored in an insert-only list whose index is the node id, with a
    single reverse lookup for name -> id. Both directions are derived from the
    same insertion, so they cannot drift apart.
    """

    def __init__(self, tables: Iterable[str] = ()):
        self._names: list[str] = []
        self._ids: dict[str, int] = {}
        for table in tables:
            self.add(table)

    def add(self, table: str) -> int:
        """Register a table and return its node id (existing id if known)."""
        if table in self._ids:
            return self._ids[table]
        node = len(self._names)
        self._names.append(table)
        self._ids[table] = node
        return node

    def node(self, table: str) -> int:
        """Get the node id for a table. Raises KeyError if unknown."""
        return self._ids[table]

    def table(self, node: int) -> str:
        """Get the table name for a node id. Raises KeyError if unknown."""
        if node < 0 or node >= len(self._names):
            raise KeyError(node)
        return self._names[node]

    def get(self, table: str) -> int | None:
        """Get the node id for a table, or None."""
        return self._ids.get(table)

    def __contains__(self, table: object) -> bool:
        return table in self._ids

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)


class TableGraph:
    """
    Directed graph over table nodes.

    An edge A -> B means table A depends on table B (A holds a foreign key
    referencing B). Built once by build_graph() and not modified afterwards.
    """

    def __init__(
        self,
        nodes: TableNodeMap,
        dependencies: Sequence[frozenset[int]],
        self_referencing: frozenset[str] = frozenset(),
    ):
        self.nodes = nodes
        self._dependencies = tuple(dependencies)
        dependents: list[set[int]] = [set() for _ in range(len(nodes))]
        for node, deps in enumerate(self._dependencies):
            for dep in deps:
                dependents[dep].add(node)
        self._dependents = tuple(frozenset(d) for d in dependents)
        self.self_referencing = self_referencing

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(deps) for deps in self._dependencies)

    def has_edge(self, from_node: int, to_node: int) -> bool:
        """Check if from_node depends on to_node."""
        return to_node in self._dependencies[from_node]

    def dependencies(self, node: int) -> frozenset[int]:
        """Nodes that this node depends on."""
        return self._dependencies[node]

    def dependents(self, node: int) -> frozenset[int]:
        """Nodes that depend on this node."""
        return self._dependents[node]

    def edges(self) -> list[tuple[int, int]]:
        """All edges as (from_node, to_node) pairs."""
        return [
            (node, dep)
            for node, deps in enumerate(self._dependencies)
            for dep in sorted(deps)
        ]

    def table_dependencies(self, table: str) -> list[str]:
        """Names of the tables a table depends on, sorted."""
        node = self.nodes.node(table)
        return sorted(self.nodes.table(dep) for dep in self._dependencies[node])


def build_graph(
    tables: Sequence[str],
    foreign_keys: Iterable[ForeignKey],
    ignore_self_references: bool = False,
) -> TableGraph:
    """
    Build the dependency graph for a set of tables.

    Args:
        tables: Table names, one node per entry
        foreign_keys: Foreign keys between those tables
        ignore_self_references: Record FKs from a table to itself without
            adding an edge (otherwise they form a cycle)

    Returns:
        Immutable TableGraph

    Raises:
        GraphConsistencyError: If a foreign key names a table not in tables
    """
    nodes = TableNodeMap(tables)
    dependencies: list[set[int]] = [set() for _ in range(len(nodes))]
    self_referencing: set[str] = set()

    for fk in foreign_keys:
        from_node = nodes.get(fk.from_table)
        if from_node is None:
            raise GraphConsistencyError(fk, fk.from_table)
        to_node = nodes.get(fk.to_table)
        if to_node is None:
            raise GraphConsistencyError(fk, fk.to_table)

        if fk.is_self_reference and ignore_self_references:
            if fk.from_table not in self_referencing:
                logger.warning(
                    f"Table '{fk.from_table}' references itself ({fk}); "
                    f"rows must arrive parent-first or the constraint be deferrable"
                )
            self_referencing.add(fk.from_table)
            continue

        # Several FK columns to the same table still yield one ordering edge
        dependencies[from_node].add(to_node)

    graph = TableGraph(
        nodes,
        [frozenset(deps) for deps in dependencies],
        frozenset(self_referencing),
    )
    logger.debug(
        f"Built dependency graph: {graph.node_count} tables, {graph.edge_count} edges"
    )
    return graph
