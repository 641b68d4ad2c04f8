"""Events streamed to the run observer.

Event names follow the wire protocol used by the editor:
``workflow:started``, ``node:update``, ``console:log``, and exactly one
terminal event per run (``workflow:completed``, ``workflow:cancelled`` or
``workflow:error``).
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from nodeflow.domain.models import NodeStatus

LogLevel = Literal["info", "warn", "error", "debug"]


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    event: ClassVar[str]

    def to_wire(self) -> dict[str, Any]:
        """Serialize as ``{"event": <name>, "params": {...}}``."""
        return {
            "event": self.event,
            "params": self.model_dump(mode="json", by_alias=True, exclude_none=True),
        }


class RunStarted(_Event):
    event: ClassVar[str] = "workflow:started"

    run_id: str
    workflow_id: str
    workflow_name: str = ""
    node_count: int = 0


class NodeUpdate(_Event):
    event: ClassVar[str] = "node:update"

    node_id: str
    status: NodeStatus
    progress: int | None = Field(default=None, ge=0, le=100)
    result: str | None = None
    error: str | None = None


class LogEvent(_Event):
    event: ClassVar[str] = "console:log"

    level: LogLevel
    message: str
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    node_id: str | None = None


class RunCompleted(_Event):
    event: ClassVar[str] = "workflow:completed"

    run_id: str
    workflow_id: str
    success: bool
    failed_nodes: list[str] = Field(default_factory=list)


class RunCancelled(_Event):
    event: ClassVar[str] = "workflow:cancelled"

    run_id: str
    workflow_id: str


class RunFailed(_Event):
    event: ClassVar[str] = "workflow:error"

    run_id: str
    workflow_id: str
    error: str


Event = Union[RunStarted, NodeUpdate, LogEvent, RunCompleted, RunCancelled, RunFailed]
EventSink = Callable[[Event], None]


class EventEmitter:
    """Delivers events to an optional observer.

    The observer may be gone (closed socket, broken pipe). Exceptions raised by
    the sink are traced to stderr and do not reach the coordinator.
    """

    def __init__(self, sink: EventSink | None, *, run_id: str, workflow_id: str) -> None:
        self._sink = sink
        self.run_id = run_id
        self.workflow_id = workflow_id

    def emit(self, event: Event) -> None:
        if self._sink is None:
            return
        try:
            self._sink(event)
        except Exception as e:  # noqa: BLE001 - observer failures never abort a run
            sys.stderr.write(f"[EVENTS] Observer failed on {event.event}: {type(e).__name__}: {e}\n")
            sys.stderr.flush()

    def node(
        self,
        node_id: str,
        status: NodeStatus,
        *,
        progress: int | None = None,
        result: str | None = None,
        error: str | None = None,
    ) -> None:
        self.emit(NodeUpdate(node_id=node_id, status=status, progress=progress, result=result, error=error))

    def log(self, level: LogLevel, message: str, node_id: str | None = None) -> None:
        self.emit(LogEvent(level=level, message=message, node_id=node_id))
