"""Input nodes: runtime value, configured literal, or empty string."""

from __future__ import annotations

from typing import TYPE_CHECKING

from nodeflow.domain.models import InputConfig, Node, ResultEntry
from nodeflow.library.base import NodeStrategy
from nodeflow.registry import register_strategy

if TYPE_CHECKING:
    from nodeflow.execution.context import DispatchContext


@register_strategy("input")
class InputStrategy(NodeStrategy):
    kind = "input"

    async def execute(self, node: Node, config: InputConfig, ctx: DispatchContext) -> ResultEntry:
        value = ctx.inputs.get(node.id) or config.value or ""
        return ResultEntry.ok(node.id, value)
