"""Workflow graph domain: models, graph validation and errors."""

from __future__ import annotations

from nodeflow.domain.errors import (
    CompletionError,
    CycleError,
    GraphValidationError,
    NodeConfigurationError,
    NodeflowError,
)
from nodeflow.domain.graph import WorkflowGraph
from nodeflow.domain.models import Artifact, Edge, Node, ResultEntry, RunRequest

__all__ = [
    "Artifact",
    "CompletionError",
    "CycleError",
    "Edge",
    "GraphValidationError",
    "Node",
    "NodeConfigurationError",
    "NodeflowError",
    "ResultEntry",
    "RunRequest",
    "WorkflowGraph",
]
