"""Workflow execution core.

This package provides:
- Deterministic topological ordering with cycle detection
- A run-scoped, append-only result store
- Per-kind node dispatch through the strategy registry
- A coordinator streaming node status and log events to an observer

Architecture:
- ordering.py: Kahn's algorithm
- store.py: result entries and upstream concatenation
- dispatcher.py: kind -> strategy -> result entry
- engine.py: run orchestration, failure policy, cancellation
"""

from __future__ import annotations

from nodeflow.execution.cancellation import CancellationToken
from nodeflow.execution.engine import ExecutionCoordinator, RunOutcome
from nodeflow.execution.ordering import in_degrees, topological_order
from nodeflow.execution.store import UPSTREAM_SEPARATOR, ResultStore

__all__ = [
    "CancellationToken",
    "ExecutionCoordinator",
    "ResultStore",
    "RunOutcome",
    "UPSTREAM_SEPARATOR",
    "in_degrees",
    "topological_order",
]
