"""Qt implementation of the main/worker dispatch contract."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from PySide6.QtCore import QObject, QThreadPool, Qt, Signal, Slot

from ..config import MAX_IO_THREADS
from .tasks.page_load_worker import PageLoadSignals, PageLoadWorker

LOGGER = logging.getLogger(__name__)


class QtDispatcher(QObject):
    """Offload loads to a private thread pool and deliver results on the GUI thread.

    The dispatcher must be created on the thread that owns the paging state.
    Worker signals are queued back to it, and :meth:`post` may be called from
    any thread.
    """

    _postRequested = Signal(object)

    def __init__(
        self,
        parent: Optional[QObject] = None,
        *,
        max_threads: int = MAX_IO_THREADS,
    ) -> None:
        super().__init__(parent)
        self._pool = QThreadPool()
        self._pool.setMaxThreadCount(max(1, int(max_threads)))
        self._tickets = itertools.count(1)
        self._pending: Dict[int, Tuple[Callable[[Any], None], PageLoadSignals]] = {}
        self._postRequested.connect(self._run_posted, Qt.QueuedConnection)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def run_io(self, task: Callable[[], Any], on_done: Callable[[Any], None]) -> None:
        ticket = next(self._tickets)
        worker = PageLoadWorker(ticket, task)
        worker.signals.completed.connect(self._on_completed)
        worker.signals.failed.connect(self._on_failed)
        # Keep the signal container alive until its result is delivered.
        self._pending[ticket] = (on_done, worker.signals)
        self._pool.start(worker)

    def post(self, callback: Callable[[], None]) -> None:
        self._postRequested.emit(callback)

    def shutdown(self, timeout_ms: int = 5000) -> bool:
        """Wait for running loads to return, then drop undelivered results."""
        done = self._pool.waitForDone(timeout_ms)
        self._pending.clear()
        return done

    @Slot(object)
    def _run_posted(self, callback: Callable[[], None]) -> None:
        callback()

    @Slot(int, object)
    def _on_completed(self, ticket: int, result: Any) -> None:
        entry = self._pending.pop(ticket, None)
        if entry is None:
            return
        on_done, _signals = entry
        on_done(result)

    @Slot(int, object)
    def _on_failed(self, ticket: int, error: Any) -> None:
        entry = self._pending.pop(ticket, None)
        if entry is None:
            return
        LOGGER.error("Dropping result of load %d: %s", ticket, error)
