"""Execution coordinator: drives ordering and dispatch across one run."""

from __future__ import annotations

import asyncio
import sys
import uuid
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

from nodeflow.config import CompletionSettings
from nodeflow.domain.errors import GraphValidationError
from nodeflow.domain.graph import WorkflowGraph
from nodeflow.domain.models import Node, ResultEntry, RunRequest
from nodeflow.execution.cancellation import CancellationToken
from nodeflow.execution.context import DispatchContext
from nodeflow.execution.dispatcher import NodeDispatcher
from nodeflow.execution.events import (
    EventEmitter,
    EventSink,
    RunCancelled,
    RunCompleted,
    RunFailed,
    RunStarted,
)
from nodeflow.execution.ordering import in_degrees, topological_order
from nodeflow.execution.store import ResultStore
from nodeflow.library.completion import CompletionService

CANCELLED_ERROR = "Execution cancelled"


@dataclass
class RunOutcome:
    """Everything a caller needs after a run.

    Attributes:
        run_id: Identifier of the run (used for cancellation).
        workflow_id: Workflow the run executed.
        store: The run's result store; empty when validation failed.
        order: Node ids in the computed execution order.
        cancelled: True when the run was cancelled before finishing.
        error: Validation error text, if the run never started dispatching.
    """

    run_id: str
    workflow_id: str
    store: ResultStore = field(default_factory=ResultStore)
    order: list[str] = field(default_factory=list)
    cancelled: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and not self.cancelled and self.store.succeeded

    @property
    def failed_nodes(self) -> list[str]:
        return [entry.node_id for entry in self.store.failed()]

    def result(self, node_id: str) -> ResultEntry | None:
        return self.store.get(node_id)


class ExecutionCoordinator:
    """Graph execution with per-node status events.

    For each run the coordinator:
    1. Validates the graph and computes the execution order (once)
    2. Emits a ``pending`` update for every node
    3. Dispatches nodes one at a time in that order, or, with
       ``max_concurrency > 1``, every node whose producers have all finished
    4. Records each result entry, then emits ``completed`` or ``error``
    5. Emits exactly one terminal event

    A failed node never aborts the run by itself. With the ``continue``
    policy (default) the next node is dispatched; with ``halt`` no further
    nodes are dispatched. Either way the run reports its terminal event and
    the caller inspects the result store.
    """

    def __init__(
        self,
        completion: CompletionService,
        settings: CompletionSettings | None = None,
        *,
        dispatcher: NodeDispatcher | None = None,
    ) -> None:
        self.completion = completion
        self.settings = settings or CompletionSettings()
        self.dispatcher = dispatcher or NodeDispatcher()

    async def execute(
        self,
        request: RunRequest,
        on_event: EventSink | None = None,
        *,
        token: CancellationToken | None = None,
        run_id: str | None = None,
    ) -> RunOutcome:
        """Execute one run.

        Args:
            request: Nodes, edges, inputs, output directory and run options.
            on_event: Optional observer receiving every event.
            token: Optional cancellation token.
            run_id: Optional run identifier (generated when omitted).

        Returns:
            RunOutcome with the run's result store.
        """
        run_id = run_id or uuid.uuid4().hex
        token = token or CancellationToken()
        emitter = EventEmitter(on_event, run_id=run_id, workflow_id=request.workflow_id)
        outcome = RunOutcome(run_id=run_id, workflow_id=request.workflow_id)

        sys.stderr.write(f"[ENGINE] Starting run {run_id} for workflow {request.workflow_id}\n")
        sys.stderr.flush()

        emitter.emit(
            RunStarted(
                run_id=run_id,
                workflow_id=request.workflow_id,
                workflow_name=request.workflow_name,
                node_count=len(request.nodes),
            )
        )

        # Step 1: Validate and order, before any side effect
        try:
            graph = request.graph()
            order = topological_order(graph)
        except GraphValidationError as e:
            sys.stderr.write(f"[ENGINE] Validation failed: {e}\n")
            sys.stderr.flush()
            outcome.error = str(e)
            emitter.log("error", f"Workflow validation failed: {e}")
            emitter.emit(RunFailed(run_id=run_id, workflow_id=request.workflow_id, error=str(e)))
            return outcome

        outcome.order = [node.id for node in order]
        sys.stderr.write(f"[ENGINE] Execution order: {outcome.order}\n")
        sys.stderr.flush()

        emitter.log("info", f'Workflow "{request.display_name}" started ({len(order)} nodes)')
        for node in order:
            emitter.node(node.id, "pending")

        ctx = DispatchContext(
            graph=graph,
            store=outcome.store,
            completion=self.completion,
            settings=self.settings,
            output_dir=Path(request.output_dir),
            inputs=dict(request.inputs),
            timeout=request.timeout,
            emitter=emitter,
        )

        # Step 2: Dispatch
        if request.max_concurrency > 1:
            await self._run_ready_queue(graph, ctx, emitter, token, request)
        else:
            await self._run_sequential(order, ctx, emitter, token, request)

        # Step 3: Terminal event
        if token.cancelled:
            outcome.cancelled = True
            emitter.log("warn", f'Workflow "{request.display_name}" cancelled')
            emitter.emit(RunCancelled(run_id=run_id, workflow_id=request.workflow_id))
        else:
            failed = outcome.failed_nodes
            if failed:
                emitter.log("warn", f'Workflow "{request.display_name}" finished with {len(failed)} failed node(s)')
            else:
                emitter.log("info", f'Workflow "{request.display_name}" completed')
            emitter.emit(
                RunCompleted(
                    run_id=run_id,
                    workflow_id=request.workflow_id,
                    success=not failed,
                    failed_nodes=failed,
                )
            )

        sys.stderr.write(f"[ENGINE] Run {run_id} finished ({len(outcome.store)}/{len(order)} nodes executed)\n")
        sys.stderr.flush()
        return outcome

    async def _run_sequential(
        self,
        order: list[Node],
        ctx: DispatchContext,
        emitter: EventEmitter,
        token: CancellationToken,
        request: RunRequest,
    ) -> None:
        for node in order:
            if token.cancelled:
                break
            entry = await self._run_node(node, ctx, emitter, token)
            if not entry.success and request.failure_policy == "halt":
                emitter.log("warn", f'Halting after failure of "{node.display_name}"', node.id)
                break

    async def _run_ready_queue(
        self,
        graph: WorkflowGraph,
        ctx: DispatchContext,
        emitter: EventEmitter,
        token: CancellationToken,
        request: RunRequest,
    ) -> None:
        """Live variant of Kahn's algorithm.

        Every node whose producers have all finished is dispatched right away,
        bounded by ``max_concurrency``. Successors are released as soon as the
        producing node's entry has been recorded.
        """
        degrees = in_degrees(graph)
        ready = deque(node for node in graph.nodes if degrees[node.id] == 0)
        semaphore = asyncio.Semaphore(request.max_concurrency)
        running: dict[asyncio.Task, Node] = {}
        halted = asyncio.Event()

        async def bounded(node: Node) -> ResultEntry | None:
            async with semaphore:
                # Nodes still waiting for a slot when the run is cancelled or halted never start.
                if token.cancelled or halted.is_set():
                    return None
                entry = await self._run_node(node, ctx, emitter, token)
                # Set before the slot is released so that no waiter starts after a halting failure.
                if not entry.success and request.failure_policy == "halt" and not halted.is_set():
                    halted.set()
                    emitter.log("warn", f'Halting after failure of "{node.display_name}"', node.id)
                return entry

        try:
            while running or (ready and not halted.is_set() and not token.cancelled):
                while ready and not halted.is_set() and not token.cancelled:
                    node = ready.popleft()
                    running[asyncio.ensure_future(bounded(node))] = node

                if not running:
                    break

                done, _ = await asyncio.wait(running.keys(), return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    node = running.pop(task)
                    entry = task.result()
                    if entry is None:
                        continue
                    for successor in graph.successors(node.id):
                        degrees[successor.id] -= 1
                        if degrees[successor.id] == 0:
                            ready.append(successor)
        finally:
            for task in running:
                task.cancel()

    async def _run_node(
        self,
        node: Node,
        ctx: DispatchContext,
        emitter: EventEmitter,
        token: CancellationToken,
    ) -> ResultEntry:
        """Dispatch one node, record its entry and report the transition."""
        emitter.node(node.id, "running", progress=0)
        emitter.log("info", f'Running node "{node.display_name}"', node.id)

        task = asyncio.ensure_future(self.dispatcher.dispatch(node, ctx))
        token.attach(task)
        try:
            entry = await task
        except asyncio.CancelledError:
            if not token.cancelled:
                raise
            entry = ResultEntry.failure(node.id, CANCELLED_ERROR)
        finally:
            token.detach(task)

        ctx.store.record(entry)

        if entry.success:
            emitter.node(node.id, "completed", progress=100, result=entry.result)
            emitter.log("info", f'Node "{node.display_name}" completed', node.id)
        else:
            emitter.node(node.id, "error", error=entry.error)
            emitter.log("error", f'Node "{node.display_name}" failed: {entry.error}', node.id)

        sys.stderr.write(f"[ENGINE] Node {node.id} {'completed' if entry.success else 'failed'}\n")
        sys.stderr.flush()
        return entry
