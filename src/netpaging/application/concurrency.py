"""Cancellation, lifecycle scopes and the main/worker dispatch contract.

All pager state lives on one designated "main" context.  Paging-source loads
run on a worker context and their results re-enter main through the
:class:`Dispatcher` that owns both.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Callable, Deque, List, Optional, Protocol, Tuple, TypeVar

from ..domain.models.paging import LoadType
from ..errors import LoadCancelledError

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation flag scoped to (generation, direction).

    Thread-safe: workers poll :attr:`cancelled` while the main context flips it.
    """

    def __init__(self, generation: int = 0, load_type: Optional[LoadType] = None) -> None:
        self.generation = generation
        self.load_type = load_type
        self._event = threading.Event()
        self._callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            try:
                callback()
            except Exception as exc:
                _logger.error("Cancellation callback %r failed: %s", callback, exc)

    def on_cancel(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise LoadCancelledError(
                f"{self.load_type.value if self.load_type else 'load'} "
                f"cancelled (generation {self.generation})"
            )

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        kind = self.load_type.name if self.load_type else "-"
        return f"CancellationToken(gen={self.generation}, {kind}, {state})"


class Scope:
    """Lifecycle owner passed to cached streams.

    Ending the scope runs every registered callback once, in registration
    order.  Callbacks registered after the end run immediately.
    """

    def __init__(self, name: str = "scope") -> None:
        self.name = name
        self._active = True
        self._callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def is_active(self) -> bool:
        return self._active

    def on_cancel(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._active:
                self._callbacks.append(callback)
                return
        callback()

    def cancel(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        _logger.info("Scope %s ended (%d callbacks)", self.name, len(callbacks))
        for callback in callbacks:
            try:
                callback()
            except Exception as exc:
                _logger.error("Scope %s callback %r failed: %s", self.name, callback, exc)


class Dispatcher(Protocol):
    """Serialises paging work on main and offloads I/O to workers."""

    def run_io(self, task: Callable[[], T], on_done: Callable[[T], None]) -> None:
        """Run *task* off main, then call ``on_done(result)`` on main."""

    def post(self, callback: Callable[[], None]) -> None:
        """Run *callback* on main at the next tick."""


class ManualDispatcher:
    """Deterministic dispatcher that only advances when driven.

    Worker tasks and main callbacks queue up until :meth:`run_next_io`,
    :meth:`run_main` or :meth:`run_pending` is called.  Useful headless and for
    reproducing exact interleavings.
    """

    def __init__(self) -> None:
        self._io: Deque[Tuple[Callable[[], Any], Callable[[Any], None]]] = deque()
        self._main: Deque[Callable[[], None]] = deque()

    def run_io(self, task: Callable[[], T], on_done: Callable[[T], None]) -> None:
        self._io.append((task, on_done))

    def post(self, callback: Callable[[], None]) -> None:
        self._main.append(callback)

    @property
    def pending_io(self) -> int:
        return len(self._io)

    @property
    def pending_main(self) -> int:
        return len(self._main)

    def run_next_io(self) -> bool:
        """Execute the oldest worker task and deliver its result."""
        if not self._io:
            return False
        task, on_done = self._io.popleft()
        result = task()
        on_done(result)
        return True

    def run_main(self) -> int:
        """Run main callbacks queued so far (not ones they enqueue)."""
        count = len(self._main)
        for _ in range(count):
            self._main.popleft()()
        return count

    def run_pending(self, max_steps: int = 10_000) -> int:
        """Alternate main and worker queues until both are empty."""
        steps = 0
        while self._main or self._io:
            if steps >= max_steps:
                raise RuntimeError(f"dispatcher did not settle after {max_steps} steps")
            if self._main:
                self.run_main()
            else:
                self.run_next_io()
            steps += 1
        return steps
