"""Best-effort run cancellation."""

from __future__ import annotations

import asyncio
import threading


class CancellationToken:
    """Signals a running coordinator to stop dispatching nodes.

    ``cancel()`` may be called from any thread. In-flight dispatch tasks that
    were attached to the token are cancelled on their own event loop, which
    aborts a pending completion-service call.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._tasks: set[asyncio.Task] = set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()
        with self._lock:
            tasks = list(self._tasks)
        for task in tasks:
            task.get_loop().call_soon_threadsafe(task.cancel)

    def attach(self, task: asyncio.Task) -> None:
        """Track ``task`` so that a later ``cancel()`` aborts it."""
        with self._lock:
            self._tasks.add(task)
        if self.cancelled:
            task.cancel()

    def detach(self, task: asyncio.Task) -> None:
        with self._lock:
            self._tasks.discard(task)
