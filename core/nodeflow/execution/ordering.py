"""Execution ordering (Kahn's algorithm)."""

from __future__ import annotations

import sys
from collections import deque

from nodeflow.domain.errors import CycleError
from nodeflow.domain.graph import WorkflowGraph
from nodeflow.domain.models import Node


def in_degrees(graph: WorkflowGraph) -> dict[str, int]:
    """Count incoming edges per node id (parallel edges count twice)."""
    degrees = {node.id: 0 for node in graph.nodes}
    for edge in graph.edges:
        degrees[edge.target] += 1
    return degrees


def topological_order(graph: WorkflowGraph) -> list[Node]:
    """Compute a deterministic execution order for ``graph``.

    The work queue is seeded with every zero in-degree node in the original
    node order, so when two nodes become ready at the same time the one that
    was listed first runs first. Running this twice on the same graph yields
    the same order.

    Args:
        graph: Validated workflow graph.

    Returns:
        Nodes such that for every edge (a, b), a comes before b.

    Raises:
        CycleError: If some nodes can never reach in-degree zero.
    """
    degrees = in_degrees(graph)
    queue = deque(node for node in graph.nodes if degrees[node.id] == 0)

    ordered: list[Node] = []
    while queue:
        node = queue.popleft()
        ordered.append(node)
        for successor in graph.successors(node.id):
            degrees[successor.id] -= 1
            if degrees[successor.id] == 0:
                queue.append(successor)

    if len(ordered) < len(graph):
        visited = {node.id for node in ordered}
        remaining = [node.id for node in graph.nodes if node.id not in visited]
        sys.stderr.write(f"[ORDER] Cycle detected, unordered nodes: {remaining}\n")
        sys.stderr.flush()
        raise CycleError(remaining)

    return ordered
