"""Exception hierarchy for nodeflow.

Two families matter to callers:
- validation errors abort a run before any node is dispatched;
- completion/configuration errors are caught by the dispatcher and recorded as
  a failed result entry for the node that raised them.
"""

from __future__ import annotations

from collections.abc import Iterable


class NodeflowError(Exception):
    """Base class for all nodeflow errors."""


class GraphValidationError(NodeflowError, ValueError):
    """The node/edge set does not form a valid workflow graph."""


class CycleError(GraphValidationError):
    """The workflow graph contains at least one cycle.

    Attributes:
        remaining: Ids of the nodes that could not be ordered, in original
            node order.
    """

    def __init__(self, remaining: Iterable[str]) -> None:
        self.remaining = list(remaining)
        super().__init__(
            "Workflow graph contains a cycle among nodes: " + ", ".join(self.remaining)
        )


class NodeConfigurationError(NodeflowError, ValueError):
    """A node's kind-specific configuration is missing or malformed."""


class CompletionError(NodeflowError, RuntimeError):
    """The completion service failed, timed out or returned no text."""


class ResultAlreadyRecordedError(NodeflowError, RuntimeError):
    """A second result entry was written for the same node in one run."""
