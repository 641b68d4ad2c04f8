"""Tests for the stdio RPC server."""

from __future__ import annotations

import io
import json
import time

import pytest

from nodeflow.config import CompletionSettings
from nodeflow.rpc import server
from nodeflow.rpc.server import RpcSession, handle_request
from nodeflow.runner import WorkflowRunner


def _workflow_params(tmp_path, **extra):
    return {
        "workflowId": "wf",
        "nodes": [
            {"id": "i1", "type": "input", "data": {"value": "hello"}},
            {"id": "a1", "type": "agent"},
            {"id": "o1", "type": "output"},
        ],
        "edges": [{"source": "i1", "target": "a1"}, {"source": "a1", "target": "o1"}],
        "outputDir": str(tmp_path),
        **extra,
    }


def _lines(out: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in out.getvalue().splitlines() if line]


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def session_for(out):
    def build(completion):
        return RpcSession(
            out=out,
            runner_factory=lambda: WorkflowRunner(settings=CompletionSettings(), completion=completion),
        )

    return build


class TestHandleRequest:
    """Requests that do not start a run."""

    def test_hello(self):
        assert handle_request({"id": 1, "method": "hello"}) == {"id": 1, "result": "hello from nodeflow-core"}

    def test_ping(self):
        assert handle_request({"id": 2, "method": "ping"}) == {"id": 2, "result": "pong"}

    def test_shutdown(self):
        assert handle_request({"id": 3, "method": "shutdown"}) == {"id": 3, "result": "shutdown"}

    def test_unknown_method(self):
        response = handle_request({"id": 4, "method": "teleport"})
        assert response == {"id": 4, "error": {"message": "Unknown method: teleport"}}

    @pytest.mark.parametrize("request_payload", [[], {"id": "1", "method": "ping"}, {"id": 1}])
    def test_invalid_requests(self, request_payload):
        response = handle_request(request_payload)
        assert response["id"] == -1
        assert "error" in response

    def test_validate_workflow(self, tmp_path):
        response = handle_request({"id": 5, "method": "validate_workflow", "params": _workflow_params(tmp_path)})
        assert response == {"id": 5, "result": {"valid": True, "order": ["i1", "a1", "o1"]}}

    def test_validate_workflow_with_cycle(self, tmp_path):
        params = _workflow_params(tmp_path)
        params["edges"].append({"source": "o1", "target": "i1"})

        response = handle_request({"id": 6, "method": "validate_workflow", "params": params})

        assert response["result"]["valid"] is False
        assert "cycle" in response["result"]["error"]

    def test_validate_workflow_bad_params(self):
        response = handle_request({"id": 7, "method": "validate_workflow", "params": "nodes"})
        assert response == {"id": 7, "error": {"message": "params must be an object"}}

    def test_cancel_requires_run_id(self, session_for, stub):
        response = handle_request({"id": 8, "method": "cancel", "params": {}}, session_for(stub))
        assert "error" in response

    def test_cancel_unknown_run(self, session_for, stub):
        response = handle_request({"id": 9, "method": "cancel", "params": {"runId": "nope"}}, session_for(stub))
        assert response == {"id": 9, "result": {"cancelled": False}}


class TestExecuteWorkflow:
    """Runs started over RPC stream events to the session output."""

    def test_streams_events(self, session_for, stub, out, tmp_path):
        session = session_for(stub)

        response = handle_request(
            {"id": 1, "method": "execute_workflow", "params": _workflow_params(tmp_path, runId="run-1")},
            session,
        )
        session.wait(timeout=5)

        assert response == {"id": 1, "result": {"runId": "run-1"}}
        events = _lines(out)
        assert events[0]["event"] == "workflow:started"
        assert events[0]["params"]["runId"] == "run-1"
        assert events[-1] == {
            "event": "workflow:completed",
            "params": {"runId": "run-1", "workflowId": "wf", "success": True, "failedNodes": []},
        }
        completed = [
            e["params"]["nodeId"]
            for e in events
            if e["event"] == "node:update" and e["params"]["status"] == "completed"
        ]
        assert completed == ["i1", "a1", "o1"]
        assert session.active_runs() == []

    def test_generated_run_id(self, session_for, stub, tmp_path):
        session = session_for(stub)

        response = handle_request(
            {"id": 2, "method": "execute_workflow", "params": _workflow_params(tmp_path)},
            session,
        )
        session.wait(timeout=5)

        assert response["result"]["runId"]

    def test_invalid_run_request(self, session_for, stub, out):
        session = session_for(stub)

        response = handle_request(
            {"id": 3, "method": "execute_workflow", "params": {"nodes": [{"id": "x", "type": "teleporter"}]}},
            session,
        )

        assert "error" in response
        assert out.getvalue() == ""

    def test_cancel_running_workflow(self, session_for, make_stub, out, tmp_path):
        stub = make_stub(delay=10.0)
        session = session_for(stub)

        handle_request(
            {"id": 1, "method": "execute_workflow", "params": _workflow_params(tmp_path, runId="run-2")},
            session,
        )
        deadline = time.monotonic() + 5
        while not stub.calls and time.monotonic() < deadline:
            time.sleep(0.01)

        assert handle_request({"id": 2, "method": "list_runs"}, session) == {"id": 2, "result": {"runs": ["run-2"]}}
        response = handle_request({"id": 3, "method": "cancel", "params": {"runId": "run-2"}}, session)
        session.wait(timeout=5)

        assert response == {"id": 3, "result": {"cancelled": True}}
        assert _lines(out)[-1]["event"] == "workflow:cancelled"


class TestMain:
    """The stdin/stdout loop."""

    def test_loop_until_shutdown(self, monkeypatch, capsys):
        monkeypatch.setattr(server, "_default_session", None)
        requests = [
            json.dumps({"id": 1, "method": "hello"}),
            "not json",
            "",
            json.dumps({"id": 2, "method": "ping"}),
            json.dumps({"id": 3, "method": "shutdown"}),
            json.dumps({"id": 4, "method": "ping"}),
        ]
        monkeypatch.setattr("sys.stdin", io.StringIO("\n".join(requests) + "\n"))

        server.main()

        responses = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert [r["id"] for r in responses] == [1, 2, 3]
        assert responses[-1]["result"] == "shutdown"
