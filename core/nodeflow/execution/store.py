"""Run-scoped result store."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from nodeflow.domain.errors import ResultAlreadyRecordedError
from nodeflow.domain.graph import WorkflowGraph
from nodeflow.domain.models import Artifact, Node, ResultEntry

# Joins the results of several upstream nodes feeding the same target.
UPSTREAM_SEPARATOR = "\n\n---\n\n"


class ResultStore:
    """Append-only table from node id to its result entry.

    A fresh store is created for every run. An entry exists for a node if and
    only if that node has begun executing; entries are never replaced.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ResultEntry] = {}

    def record(self, entry: ResultEntry) -> None:
        """Write the entry for ``entry.node_id``.

        Raises:
            ResultAlreadyRecordedError: If the node already has an entry.
        """
        if entry.node_id in self._entries:
            raise ResultAlreadyRecordedError(f"Result for node {entry.node_id} already recorded")
        self._entries[entry.node_id] = entry

    def get(self, node_id: str) -> ResultEntry | None:
        return self._entries.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ResultEntry]:
        return iter(list(self._entries.values()))

    def upstream_text(self, node_id: str, graph: WorkflowGraph) -> str:
        """Concatenate the results of ``node_id``'s producers.

        Incoming edges are followed in edge-list order. Producers that failed,
        were never reached or returned empty text contribute nothing.
        """
        parts: list[str] = []
        for edge in graph.incoming(node_id):
            entry = self._entries.get(edge.source)
            if entry is not None and entry.success and entry.result:
                parts.append(entry.result)
        return UPSTREAM_SEPARATOR.join(parts)

    def artifacts(self) -> list[Artifact]:
        """Every artifact recorded so far, in write order."""
        files: list[Artifact] = []
        for entry in self._entries.values():
            files.extend(entry.files)
        return files

    def failed(self) -> list[ResultEntry]:
        return [entry for entry in self._entries.values() if not entry.success]

    @property
    def succeeded(self) -> bool:
        """True when no recorded entry is a failure."""
        return not self.failed()

    def project(self, nodes: Iterable[Node]) -> list[Node]:
        """Return copies of ``nodes`` with presentation state taken from the store.

        Nodes without an entry are reported as ``pending``.
        """
        projected: list[Node] = []
        for node in nodes:
            entry = self._entries.get(node.id)
            if entry is None:
                update = {"status": "pending", "progress": None, "error": None}
            elif entry.success:
                update = {"status": "completed", "progress": 100, "error": None}
            else:
                update = {"status": "error", "progress": None, "error": entry.error}
            projected.append(node.model_copy(update=update))
        return projected

    def to_dict(self) -> dict[str, dict]:
        """JSON-ready view keyed by node id (camelCase fields)."""
        return {
            node_id: entry.model_dump(mode="json", by_alias=True)
            for node_id, entry in self._entries.items()
        }
