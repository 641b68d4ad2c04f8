"""Validated workflow graph with adjacency queries."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from nodeflow.domain.errors import GraphValidationError
from nodeflow.domain.models import Edge, Node


class WorkflowGraph:
    """Immutable node/edge set for one run.

    Construction rejects the whole graph, before any side effect, when:
    - two nodes share an id;
    - an edge references a node id that is not in the graph;
    - an edge is a self-loop.

    Cycles spanning more than one node are left to the ordering engine.
    """

    def __init__(self, nodes: Iterable[Node], edges: Iterable[Edge] = ()) -> None:
        self._nodes: tuple[Node, ...] = tuple(nodes)
        self._edges: tuple[Edge, ...] = tuple(edges)

        self._by_id: dict[str, Node] = {}
        for node in self._nodes:
            if node.id in self._by_id:
                raise GraphValidationError(f"Duplicate node id: {node.id}")
            self._by_id[node.id] = node

        self._outgoing: dict[str, list[Edge]] = {node.id: [] for node in self._nodes}
        self._incoming: dict[str, list[Edge]] = {node.id: [] for node in self._nodes}
        for edge in self._edges:
            missing = [end for end in (edge.source, edge.target) if end not in self._by_id]
            if missing:
                raise GraphValidationError(
                    f"Edge {edge.source} -> {edge.target} references unknown node(s): {', '.join(missing)}"
                )
            if edge.source == edge.target:
                raise GraphValidationError(f"Edge {edge.source} -> {edge.target} is a self-loop")
            self._outgoing[edge.source].append(edge)
            self._incoming[edge.target].append(edge)

    @property
    def nodes(self) -> Sequence[Node]:
        return self._nodes

    @property
    def edges(self) -> Sequence[Edge]:
        return self._edges

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._by_id

    def get_node(self, node_id: str) -> Node:
        """Return the node with ``node_id``.

        Raises:
            KeyError: If the id is not part of the graph.
        """
        return self._by_id[node_id]

    def roots(self) -> list[Node]:
        """Nodes without an incoming edge, in original node order."""
        return [node for node in self._nodes if not self._incoming[node.id]]

    def successors(self, node_id: str) -> list[Node]:
        """Immediate successors of ``node_id``, one per outgoing edge, in edge-list order."""
        return [self._by_id[edge.target] for edge in self._outgoing[node_id]]

    def incoming(self, node_id: str) -> list[Edge]:
        """Incoming edges of ``node_id`` in edge-list order."""
        return list(self._incoming[node_id])

    def __repr__(self) -> str:
        return f"WorkflowGraph(nodes={len(self._nodes)}, edges={len(self._edges)})"
