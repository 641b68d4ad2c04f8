"""nodeflow workflow runner.

This module is the run submission boundary used by the CLI and the RPC
server:
- load workflow documents (JSON) into a ``RunRequest``
- execute a run with an observer and a cancellation handle
- cancel a run by id

Design principles:
- Settings are resolved once, when the runner is created, and passed into the
  coordinator as an explicit value
- A fresh coordinator state (result store) per run, nothing retained across runs
- Errors at the boundary (missing file, malformed document) come back as an
  ``ExecutionResult`` error rather than an exception
"""

from __future__ import annotations

import asyncio
import json
import sys
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from nodeflow.config import CompletionSettings, NodeflowSettings
from nodeflow.domain.models import RunRequest
from nodeflow.execution.cancellation import CancellationToken
from nodeflow.execution.engine import ExecutionCoordinator, RunOutcome
from nodeflow.execution.events import EventSink
from nodeflow.library.completion import ChatModelCompletionService, CompletionService


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Result of a workflow file execution.

    Attributes:
        output: The run outcome, when the run could be submitted
        error: Exception if the workflow could not be loaded, None otherwise
        success: True if the run completed and no node failed
    """
    output: RunOutcome | None = None
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.error is None and self.output is not None and self.output.success


def load_workflow(file_path: str | Path, **overrides: Any) -> RunRequest:
    """Load a JSON workflow document.

    The document holds ``workflowId``, ``workflowName``, ``nodes``, ``edges``
    and optionally ``inputs``, ``outputDir`` and run options. Keyword
    overrides (``inputs``, ``output_dir``, ``max_concurrency``, ...) replace
    the document's values; ``None`` overrides are ignored.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the document is not valid JSON or not a valid run.
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Workflow file not found: {file_path}")

    try:
        document = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Workflow file is not valid JSON: {file_path}: {e}") from e
    if not isinstance(document, dict):
        raise ValueError(f"Workflow file must contain a JSON object: {file_path}")

    document.setdefault("workflowId", file_path.stem.split(".")[0])
    try:
        request = RunRequest.model_validate(document)
    except ValidationError as e:
        raise ValueError(f"Invalid workflow document {file_path}: {e.errors(include_url=False)}") from e

    updates = {key: value for key, value in overrides.items() if value is not None}
    if "inputs" in updates:
        updates["inputs"] = {**request.inputs, **updates["inputs"]}
    if updates:
        request = RunRequest.model_validate({**request.model_dump(), **updates})
    return request


class WorkflowRunner:
    """Submits runs to an :class:`ExecutionCoordinator` and tracks them for cancellation.

    Example:
        ```python
        runner = WorkflowRunner()
        outcome = await runner.run(request, on_event=print)
        if outcome.success:
            print(outcome.result("o1").result)
        ```
    """

    def __init__(
        self,
        *,
        settings: CompletionSettings | None = None,
        completion: CompletionService | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            settings: Resolved completion settings. If None, they are resolved
                from the environment once, here.
            completion: Completion service. If None, a LangChain-backed service
                is created from ``settings``.
        """
        self.settings = settings or NodeflowSettings().resolve()
        self.completion = completion or ChatModelCompletionService(self.settings)
        self.coordinator = ExecutionCoordinator(self.completion, self.settings)
        self._active: dict[str, CancellationToken] = {}

    async def run(
        self,
        request: RunRequest,
        on_event: EventSink | None = None,
        *,
        run_id: str | None = None,
        token: CancellationToken | None = None,
    ) -> RunOutcome:
        """Execute one run; ``cancel(run_id)`` stops it while it is active."""
        run_id = run_id or uuid.uuid4().hex
        token = token or CancellationToken()
        self._active[run_id] = token
        sys.stderr.write(f"[RUNNER] Run {run_id}: {request.display_name} ({len(request.nodes)} nodes)\n")
        sys.stderr.flush()
        try:
            return await self.coordinator.execute(request, on_event, token=token, run_id=run_id)
        finally:
            self._active.pop(run_id, None)

    async def run_workflow_file(
        self,
        file_path: str | Path,
        on_event: EventSink | None = None,
        **overrides: Any,
    ) -> ExecutionResult:
        """Execute a workflow from a JSON document.

        Args:
            file_path: Path to the workflow document
            on_event: Optional observer
            **overrides: Values replacing the document's (see ``load_workflow``)

        Returns:
            ExecutionResult with the run outcome or the loading error
        """
        sys.stderr.write(f"[RUNNER] run_workflow_file: {file_path}\n")
        sys.stderr.flush()
        try:
            request = load_workflow(file_path, **overrides)
        except (OSError, ValueError) as e:
            sys.stderr.write(f"[RUNNER] ERROR: {type(e).__name__}: {e}\n")
            sys.stderr.flush()
            return ExecutionResult(error=e)

        outcome = await self.run(request, on_event)
        return ExecutionResult(output=outcome)

    def cancel(self, run_id: str) -> bool:
        """Signal an active run to stop. Returns False if no such run is active."""
        token = self._active.get(run_id)
        if token is None:
            return False
        sys.stderr.write(f"[RUNNER] Cancelling run {run_id}\n")
        sys.stderr.flush()
        token.cancel()
        return True

    def active_runs(self) -> list[str]:
        return list(self._active)


def run_workflow_sync(
    file_path: str | Path,
    on_event: EventSink | None = None,
    **overrides: Any,
) -> ExecutionResult:
    """Synchronous wrapper for running a workflow document.

    Example:
        ```python
        result = run_workflow_sync("examples/research.workflow.json", inputs={"topic": "tea"})
        print(result.success)
        ```
    """
    runner = WorkflowRunner()
    return asyncio.run(runner.run_workflow_file(file_path, on_event, **overrides))
