"""Strategy contract shared by all node kinds."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from nodeflow.domain.models import Node, ResultEntry
    from nodeflow.execution.context import DispatchContext


class NodeStrategy(ABC):
    """Executes one node kind.

    ``execute`` receives the node, its parsed kind-specific configuration and
    the run context, and returns exactly one result entry. Raising is allowed:
    the dispatcher turns any exception into a failed entry.
    """

    kind: ClassVar[str]

    @abstractmethod
    async def execute(self, node: Node, config: Any, ctx: DispatchContext) -> ResultEntry:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r})"
