from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Generic, List, Optional, TypeVar

from .models.core import PagePayload
from .models.paging import LoadParams, LoadResult, PagingState

if TYPE_CHECKING:  # pragma: no cover - import only for type checking
    from ..application.concurrency import CancellationToken

T = TypeVar("T")

_logger = logging.getLogger(__name__)


class PageFetcher(ABC, Generic[T]):
    @abstractmethod
    def fetch_page(
        self,
        page: int,
        *,
        token: Optional["CancellationToken"] = None,
        timeout: Optional[float] = None,
    ) -> PagePayload[T]:
        """Fetch one page (1-based); raise a ``FetchError`` on failure."""
        pass


class PagingSource(ABC, Generic[T]):
    """Single-use loader of pages for one pager generation."""

    def __init__(self) -> None:
        self._invalid = False
        self._invalidated_callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def invalid(self) -> bool:
        return self._invalid

    def register_invalidated_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            self._invalidated_callbacks.append(callback)

    def unregister_invalidated_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._invalidated_callbacks.remove(callback)
            except ValueError:
                pass

    def invalidate(self) -> None:
        """Mark the source dead; loads still running may return but are void."""
        with self._lock:
            if self._invalid:
                return
            self._invalid = True
            callbacks = list(self._invalidated_callbacks)
            self._invalidated_callbacks.clear()
        for callback in callbacks:
            try:
                callback()
            except Exception as exc:
                _logger.error("Invalidation callback %r failed: %s", callback, exc)

    @abstractmethod
    def load(
        self,
        params: LoadParams,
        token: Optional["CancellationToken"] = None,
    ) -> LoadResult:
        """Load one page; must always return, never raise."""
        pass

    @abstractmethod
    def refresh_key(self, state: PagingState[T]) -> Optional[int]:
        """Derive the key a new generation should start from."""
        pass
