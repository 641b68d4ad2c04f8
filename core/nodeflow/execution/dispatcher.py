"""Node dispatch: kind -> strategy -> exactly one result entry."""

from __future__ import annotations

import sys

import nodeflow.library  # noqa: F401 - registers the built-in strategies
from nodeflow.domain.models import Node, ResultEntry
from nodeflow.execution.context import DispatchContext
from nodeflow.library.base import NodeStrategy
from nodeflow.registry import Registry, get_strategy_registry


class NodeDispatcher:
    """Runs one node through the strategy registered for its kind.

    Any exception raised while parsing the node's configuration or executing
    its strategy becomes a failed entry carrying the error text. Cancellation
    is not an error here and propagates to the coordinator.
    """

    def __init__(self, registry: Registry[NodeStrategy] | None = None) -> None:
        self._registry = registry or get_strategy_registry()

    async def dispatch(self, node: Node, ctx: DispatchContext) -> ResultEntry:
        sys.stderr.write(f"[DISPATCH] {node.id} (kind={node.kind})\n")
        sys.stderr.flush()

        if not self._registry.has(node.kind):
            return ResultEntry.failure(node.id, f"Unknown node type: {node.kind}")
        strategy = self._registry.resolve(node.kind)

        try:
            config = node.typed_config()
            entry = await strategy.execute(node, config, ctx)
        except Exception as e:
            error_msg = _format_error(e)
            sys.stderr.write(f"[DISPATCH] {node.id} failed: {type(e).__name__}: {error_msg}\n")
            sys.stderr.flush()
            return ResultEntry.failure(node.id, error_msg)

        if entry.node_id != node.id:
            return ResultEntry.failure(
                node.id, f"Strategy {strategy!r} returned a result for node {entry.node_id}"
            )
        return entry


def _format_error(exc: Exception) -> str:
    message = str(exc).strip() or exc.__class__.__name__
    return message
