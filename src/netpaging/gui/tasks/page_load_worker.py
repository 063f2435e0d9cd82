from __future__ import annotations

import logging
from typing import Any, Callable

from PySide6.QtCore import QObject, QRunnable, Signal

_logger = logging.getLogger(__name__)


class PageLoadSignals(QObject):
    completed = Signal(int, object)
    failed = Signal(int, object)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)


class PageLoadWorker(QRunnable):
    """Run one paging-source load on a pool thread and report by ticket."""

    def __init__(self, ticket: int, task: Callable[[], Any]) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self._ticket = ticket
        self._task = task
        self.signals = PageLoadSignals()

    @property
    def ticket(self) -> int:
        return self._ticket

    def run(self) -> None:  # pragma: no cover - runs in background thread
        try:
            result = self._task()
        except Exception as exc:
            _logger.error("Background load %d failed: %s", self._ticket, exc)
            self.signals.failed.emit(self._ticket, exc)
            return
        self.signals.completed.emit(self._ticket, result)
