"""Copy order for a table dependency graph."""

from __future__ import annotations

import heapq

from graphcopy.dependency import TableGraph
from graphcopy.exceptions import CycleError


def topological_order(graph: TableGraph) -> list[int]:
    """
    Sort nodes in dependency order using Kahn's algorithm.

    Among nodes with no ordering constraint between them, the one whose table
    name sorts first comes first, so the result is deterministic.

    Returns:
        Node ids such that every table comes after the tables it depends on.

    Raises:
        CycleError: If the graph contains a cycle
    """
    names = graph.nodes
    # Remaining unsatisfied dependencies per node
    remaining = [len(graph.dependencies(node)) for node in range(graph.node_count)]

    ready = [(names.table(node), node) for node, count in enumerate(remaining) if count == 0]
    heapq.heapify(ready)
    result: list[int] = []

    while ready:
        _, node = heapq.heappop(ready)
        result.append(node)

        for dependent in graph.dependents(node):
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, (names.table(dependent), dependent))

    if len(result) != graph.node_count:
        stuck = [names.table(node) for node, count in enumerate(remaining) if count > 0]
        raise CycleError(stuck)

    return result


def table_order(graph: TableGraph) -> list[str]:
    """Table names in copy order."""
    return [graph.nodes.table(node) for node in topological_order(graph)]
