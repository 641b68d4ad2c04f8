"""Stdio RPC server for nodeflow.

Protocol:
- JSON per line over stdin/stdout.
- Requests: {"id": number, "method": string, "params"?: object}
- Responses: {"id": number, "result"?: any, "error"?: {"message": string}}
- Run events: {"event": string, "params": object}, interleaved with responses
  while a run is active.

Runs execute on a background thread each, so ``cancel`` requests are served
while a run is in flight.
"""

from __future__ import annotations

import asyncio
import json
import sys
import threading
import uuid
from collections.abc import Callable
from typing import Any, TextIO

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from nodeflow.domain.errors import GraphValidationError
from nodeflow.domain.models import RunRequest
from nodeflow.execution.cancellation import CancellationToken
from nodeflow.execution.events import Event
from nodeflow.execution.ordering import topological_order
from nodeflow.runner import WorkflowRunner


class _ExecuteWorkflowParams(RunRequest):
    run_id: str | None = Field(default=None, min_length=1)


class _CancelParams(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    run_id: str = Field(..., min_length=1)


class RpcSession:
    """Output channel and active runs of one RPC connection."""

    def __init__(
        self,
        *,
        out: TextIO | None = None,
        runner_factory: Callable[[], WorkflowRunner] | None = None,
    ) -> None:
        self._out = out or sys.stdout
        self._runner_factory = runner_factory or WorkflowRunner
        self._runner: WorkflowRunner | None = None
        self._write_lock = threading.Lock()
        self._runs: dict[str, tuple[CancellationToken, threading.Thread]] = {}

    @property
    def runner(self) -> WorkflowRunner:
        if self._runner is None:
            self._runner = self._runner_factory()
        return self._runner

    def write(self, payload: dict[str, Any]) -> None:
        with self._write_lock:
            self._out.write(json.dumps(payload, ensure_ascii=False) + "\n")
            self._out.flush()

    def start_run(self, request: RunRequest, run_id: str | None = None) -> str:
        """Start ``request`` on a background thread and return its run id."""
        run_id = run_id or uuid.uuid4().hex
        if run_id in self._runs:
            raise ValueError(f"Run already active: {run_id}")

        runner = self.runner
        token = CancellationToken()

        def on_event(event: Event) -> None:
            self.write(event.to_wire())

        def target() -> None:
            try:
                asyncio.run(runner.run(request, on_event, run_id=run_id, token=token))
            except Exception as e:  # noqa: BLE001 - reported to the client as a run error
                sys.stderr.write(f"[RPC] Run {run_id} crashed: {type(e).__name__}: {e}\n")
                sys.stderr.flush()
                self.write(
                    {
                        "event": "workflow:error",
                        "params": {"runId": run_id, "workflowId": request.workflow_id, "error": _format_error(e)},
                    }
                )
            finally:
                self._runs.pop(run_id, None)

        thread = threading.Thread(target=target, name=f"nodeflow-run-{run_id}", daemon=True)
        self._runs[run_id] = (token, thread)
        thread.start()
        return run_id

    def cancel(self, run_id: str) -> bool:
        entry = self._runs.get(run_id)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def active_runs(self) -> list[str]:
        return list(self._runs)

    def wait(self, timeout: float | None = None) -> None:
        """Block until every active run has finished (or ``timeout`` expires per run)."""
        for _, thread in list(self._runs.values()):
            thread.join(timeout)

    def close(self) -> None:
        for run_id in list(self._runs):
            self.cancel(run_id)
        self.wait(timeout=5.0)


_default_session: RpcSession | None = None


def _get_default_session() -> RpcSession:
    global _default_session
    if _default_session is None:
        _default_session = RpcSession()
    return _default_session


def main() -> None:
    """Run the RPC loop reading stdin and writing stdout."""

    session = _get_default_session()
    try:
        for line in sys.stdin:
            line = line.strip()
            if not line:
                continue

            try:
                request = json.loads(line)
            except json.JSONDecodeError:
                continue

            response = handle_request(request, session)
            session.write(response)

            if response.get("result") == "shutdown":
                return
    finally:
        session.close()


def handle_request(request: Any, session: RpcSession | None = None) -> dict[str, Any]:
    """Handle one RPC request.

    Args:
        request: Parsed JSON object.
        session: Connection state; the process-wide session when omitted.

    Returns:
        RPC response dict.
    """

    if not isinstance(request, dict):
        return {"id": -1, "error": {"message": "Invalid request"}}

    request_id = request.get("id")
    method = request.get("method")

    if not isinstance(request_id, int) or not isinstance(method, str):
        return {"id": -1, "error": {"message": "Invalid request fields"}}

    if method == "hello":
        return {"id": request_id, "result": "hello from nodeflow-core"}

    if method == "ping":
        return {"id": request_id, "result": "pong"}

    if method == "shutdown":
        return {"id": request_id, "result": "shutdown"}

    if method == "validate_workflow":
        try:
            params = _parse_params(request.get("params"), RunRequest)
            order = topological_order(params.graph())
            return {"id": request_id, "result": {"valid": True, "order": [node.id for node in order]}}
        except GraphValidationError as exc:
            return {"id": request_id, "result": {"valid": False, "error": _format_error(exc)}}
        except Exception as exc:  # noqa: BLE001 - return structured RPC errors
            return {"id": request_id, "error": {"message": _format_error(exc)}}

    if method == "execute_workflow":
        try:
            params = _parse_params(request.get("params"), _ExecuteWorkflowParams)
            run_request = RunRequest.model_validate(params.model_dump(exclude={"run_id"}))
            run_id = (session or _get_default_session()).start_run(run_request, params.run_id)
            return {"id": request_id, "result": {"runId": run_id}}
        except Exception as exc:  # noqa: BLE001 - return structured RPC errors
            return {"id": request_id, "error": {"message": _format_error(exc)}}

    if method == "cancel":
        try:
            params = _parse_params(request.get("params"), _CancelParams)
            cancelled = (session or _get_default_session()).cancel(params.run_id)
            return {"id": request_id, "result": {"cancelled": cancelled}}
        except Exception as exc:  # noqa: BLE001 - return structured RPC errors
            return {"id": request_id, "error": {"message": _format_error(exc)}}

    if method == "list_runs":
        return {"id": request_id, "result": {"runs": (session or _get_default_session()).active_runs()}}

    return {"id": request_id, "error": {"message": f"Unknown method: {method}"}}


def _parse_params(value: Any, model: type[BaseModel]) -> Any:
    if value is None:
        # Pydantic will produce a helpful error.
        value = {}
    if not isinstance(value, dict):
        raise ValueError("params must be an object")

    try:
        return model.model_validate(value)
    except ValidationError as exc:
        # Keep errors readable for the client.
        raise ValueError(exc.errors(include_url=False)) from exc


def _format_error(exc: Exception) -> str:
    message = str(exc).strip() or exc.__class__.__name__
    return message


if __name__ == "__main__":
    main()
