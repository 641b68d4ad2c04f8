"""nodeflow core package.

This package has no dependency on any UI runtime: it orders a workflow graph,
dispatches each node to its per-kind strategy and streams progress events to an
observer.

Important: the runner pulls in the LangChain-backed completion service. To keep
lightweight entrypoints like `python -m nodeflow.rpc.server --help` cheap, we
avoid importing runner symbols eagerly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

__version__ = "0.3.0"

__all__ = ["ExecutionCoordinator", "RunRequest", "WorkflowRunner", "__version__"]


if TYPE_CHECKING:
    from .domain.models import RunRequest as RunRequest
    from .execution.engine import ExecutionCoordinator as ExecutionCoordinator
    from .runner import WorkflowRunner as WorkflowRunner


def __getattr__(name: str) -> Any:
    if name == "RunRequest":
        from .domain.models import RunRequest

        return RunRequest
    if name == "ExecutionCoordinator":
        from .execution.engine import ExecutionCoordinator

        return ExecutionCoordinator
    if name == "WorkflowRunner":
        from .runner import WorkflowRunner

        return WorkflowRunner
    raise AttributeError(name)
