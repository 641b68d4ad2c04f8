"""Shared fixtures: a scripted completion service and an event recorder."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pytest

from nodeflow.domain.errors import CompletionError
from nodeflow.domain.models import RunRequest
from nodeflow.execution.events import Event, NodeUpdate


@dataclass
class CompletionCall:
    system: str | None
    message: str
    model: str | None
    max_tokens: int | None


class StubCompletion:
    """Completion service double.

    ``reply`` is either fixed text or a callable ``(system, message) -> str``.
    ``error`` makes every call fail with that text; ``delay`` keeps each call
    pending for that many seconds first.
    """

    def __init__(
        self,
        reply: str | Callable[[str | None, str], str] = "WORLD",
        *,
        error: str | None = None,
        delay: float = 0.0,
    ) -> None:
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls: list[CompletionCall] = []
        self.active = 0
        self.peak = 0

    async def complete(
        self,
        system: str | None,
        message: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        self.calls.append(CompletionCall(system, message, model, max_tokens))
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise CompletionError(self.error)
            if callable(self.reply):
                return self.reply(system, message)
            return self.reply
        finally:
            self.active -= 1


class EventRecorder:
    """Observer collecting every event of a run."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    @property
    def names(self) -> list[str]:
        return [event.event for event in self.events]

    def of_type(self, event_type: type) -> list[Any]:
        return [event for event in self.events if isinstance(event, event_type)]

    def statuses(self, node_id: str) -> list[str]:
        return [event.status for event in self.of_type(NodeUpdate) if event.node_id == node_id]


@pytest.fixture
def stub() -> StubCompletion:
    return StubCompletion()


@pytest.fixture
def make_stub() -> type[StubCompletion]:
    return StubCompletion


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def make_request(tmp_path) -> Callable[..., RunRequest]:
    """Build a run request from short node tuples.

    Nodes are ``(id, kind)`` or ``(id, kind, config)``; edges are
    ``(source, target)``. The output directory defaults to ``tmp_path``.
    """

    def build(nodes, edges=(), **options: Any) -> RunRequest:
        node_payloads = []
        for item in nodes:
            node_id, kind, *rest = item
            payload: dict[str, Any] = {"id": node_id, "kind": kind}
            if rest:
                config = dict(rest[0])
                description = config.pop("description", None)
                if description is not None:
                    payload["description"] = description
                payload["config"] = config
            node_payloads.append(payload)
        options.setdefault("outputDir", str(tmp_path))
        return RunRequest.model_validate(
            {
                "nodes": node_payloads,
                "edges": [{"source": source, "target": target} for source, target in edges],
                **options,
            }
        )

    return build
