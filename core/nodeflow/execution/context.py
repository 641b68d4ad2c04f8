"""Per-run context handed to node strategies."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from nodeflow.config import CompletionSettings
from nodeflow.domain.errors import CompletionError
from nodeflow.domain.graph import WorkflowGraph
from nodeflow.execution.events import EventEmitter, LogLevel
from nodeflow.execution.store import ResultStore
from nodeflow.library.completion import CompletionService


@dataclass
class DispatchContext:
    """Everything a strategy may read or call while executing one node.

    Strategies never touch the result store directly: they read upstream text
    through :meth:`upstream` and return a result entry that the coordinator
    records.
    """

    graph: WorkflowGraph
    store: ResultStore
    completion: CompletionService
    settings: CompletionSettings
    output_dir: Path
    inputs: Mapping[str, str] = field(default_factory=dict)
    timeout: float | None = None
    emitter: EventEmitter | None = None

    def upstream(self, node_id: str) -> str:
        """Concatenated results of the node's producers (empty when none)."""
        return self.store.upstream_text(node_id, self.graph)

    def report_progress(self, node_id: str, progress: int) -> None:
        if self.emitter is not None:
            self.emitter.node(node_id, "running", progress=progress)

    def log(self, level: LogLevel, message: str, node_id: str | None = None) -> None:
        if self.emitter is not None:
            self.emitter.log(level, message, node_id)

    async def complete(
        self,
        system: str | None,
        message: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Call the completion service once, bounded by the run's timeout.

        Raises:
            CompletionError: If the service fails or the timeout expires.
        """
        call = self.completion.complete(
            system,
            message,
            model=model,
            max_tokens=max_tokens or self.settings.max_tokens,
        )
        timeout = self.timeout if self.timeout is not None else self.settings.timeout
        if timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout)
        except asyncio.TimeoutError as e:
            raise CompletionError(f"Completion timed out after {timeout:g}s") from e
