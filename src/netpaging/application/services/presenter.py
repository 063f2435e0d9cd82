"""Consumer-side owner of the presented list.

The presenter folds paging events into the list a view displays, reporting
every structural change through a :class:`ListUpdateCallback`, and feeds
item accesses back upstream so the pager can prefetch.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Protocol

from ...domain.models.core import ItemComparator
from ...domain.models.events import (
    AppendEvent,
    DropEvent,
    PagingEvent,
    PrependEvent,
    RefreshEvent,
    StateUpdateEvent,
)
from ...domain.models.load_state import CombinedLoadStates
from ...domain.models.paging import LoadType
from ..concurrency import Dispatcher
from .cached_stream import CachedStream, StreamSubscription
from .list_differ import ListDiffCalculator, ListOp, ListUpdateCallback, apply_op
from .page_accumulator import PageEventAccumulator

LOGGER = logging.getLogger(__name__)

LoadStateObserver = Callable[[CombinedLoadStates], None]


class PagingReceiver(Protocol):
    def access_item_at(self, index: int) -> None: ...

    def retry(self) -> None: ...

    def refresh(self) -> None: ...


class PagingDataPresenter:
    """Applies paging events to a presented list of items and placeholders."""

    def __init__(
        self,
        comparator: ItemComparator,
        dispatcher: Dispatcher,
        list_callback: Optional[ListUpdateCallback] = None,
    ) -> None:
        self._comparator = comparator
        self._differ = ListDiffCalculator(comparator)
        self._dispatcher = dispatcher
        self._list_callback = list_callback
        self._state = PageEventAccumulator()
        self._items: List[Any] = []
        self._load_states: Optional[CombinedLoadStates] = None
        self._observers: List[LoadStateObserver] = []
        self._receiver: Optional[PagingReceiver] = None
        self._subscription: Optional[StreamSubscription] = None
        self._pending_access: Optional[int] = None
        self._pending_item: Any = None
        self._access_scheduled = False

    def set_list_callback(self, callback: Optional[ListUpdateCallback]) -> None:
        self._list_callback = callback

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------
    def collect_from(self, stream: CachedStream) -> StreamSubscription:
        """Subscribe to *stream* and route UI signals back to it."""
        if self._subscription is not None:
            self._subscription.cancel()
        self._receiver = stream
        self._subscription = stream.subscribe(self.submit, self._on_stream_complete)
        return self._subscription

    def stop_collecting(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._receiver = None

    def _on_stream_complete(self) -> None:
        LOGGER.debug("Paging stream completed; presenter detached")
        self._subscription = None
        self._receiver = None

    # ------------------------------------------------------------------
    # Event application
    # ------------------------------------------------------------------
    def submit(self, event: PagingEvent) -> None:
        old_presented = list(self._items)
        old_pages = self._state.pages
        old_resident = self._state.resident_count
        old_before = self._state.placeholders_before
        old_after = self._state.placeholders_after
        old_resident_items = self._state.resident() if isinstance(event, RefreshEvent) else []

        self._state.apply(event)
        new_presented = self._state.presented()

        if isinstance(event, RefreshEvent):
            ops = self._differ.diff_presented(
                old_before,
                old_resident_items,
                old_after,
                self._state.placeholders_before,
                self._state.resident(),
                self._state.placeholders_after,
            )
        elif isinstance(event, PrependEvent):
            fixed = old_resident + old_after
            ops = self._leading_region(old_presented, new_presented, fixed)
        elif isinstance(event, AppendEvent):
            fixed = old_before + old_resident
            ops = self._trailing_region(old_presented, new_presented, fixed)
        elif isinstance(event, DropEvent):
            if event.load_type is LoadType.PREPEND:
                dropped = sum(len(page.data) for page in old_pages[: event.page_count])
                fixed = old_resident - dropped + old_after
                ops = self._leading_region(old_presented, new_presented, fixed)
            else:
                dropped = sum(
                    len(page.data) for page in old_pages[len(old_pages) - event.page_count :]
                )
                fixed = old_before + old_resident - dropped
                ops = self._trailing_region(old_presented, new_presented, fixed)
        elif isinstance(event, StateUpdateEvent):
            ops = []
        else:
            raise TypeError(f"Unsupported paging event: {event!r}")

        for op in ops:
            self._apply(op)
        if len(self._items) != len(new_presented):
            LOGGER.error(
                "Presented list diverged after %s (%d != %d)",
                type(event).__name__, len(self._items), len(new_presented),
            )
        self._items = new_presented
        if self._pending_access is not None:
            self._pending_access = self._track_access(event, old_before, old_pages)
        self._update_load_states()

    def _track_access(self, event: PagingEvent, old_before: int, old_pages) -> Optional[int]:
        """Move a queued access hint so it still points at the item that was read.

        The hint is dropped when that item is no longer resident.
        """
        index = self._pending_access
        before = self._state.placeholders_before
        if isinstance(event, PrependEvent):
            added = sum(len(page.data) for page in event.pages)
            index += before + added - old_before
        elif isinstance(event, DropEvent) and event.load_type is LoadType.PREPEND:
            dropped = sum(len(page.data) for page in old_pages[: event.page_count])
            index += before - old_before - dropped
        elif isinstance(event, RefreshEvent):
            index = None
            for offset, item in enumerate(self._state.resident()):
                if self._comparator.same_identity(self._pending_item, item):
                    index = before + offset
                    break
        if index is None or not before <= index < before + self._state.resident_count:
            LOGGER.debug("Access hint dropped after %s", type(event).__name__)
            return None
        return index

    def _leading_region(self, old: List[Any], new: List[Any], fixed: int) -> List[ListOp]:
        return self._differ.region_ops(
            0, old[: len(old) - fixed], new[: len(new) - fixed], align_end=True
        )

    def _trailing_region(self, old: List[Any], new: List[Any], fixed: int) -> List[ListOp]:
        return self._differ.region_ops(fixed, old[fixed:], new[fixed:], align_end=False)

    def _apply(self, op: ListOp) -> None:
        callback = self._list_callback
        if callback is not None:
            callback.begin(op)
        apply_op(self._items, op)
        if callback is not None:
            callback.end(op)

    def _update_load_states(self) -> None:
        source = self._state.states
        if source is None:
            return
        combined = CombinedLoadStates.from_source(source)
        if combined == self._load_states:
            return
        self._load_states = combined
        for observer in list(self._observers):
            try:
                observer(combined)
            except Exception as exc:
                LOGGER.error("Load state observer %r failed: %s", observer, exc)

    # ------------------------------------------------------------------
    # UI surface
    # ------------------------------------------------------------------
    def item_at(self, index: int) -> Optional[Any]:
        """Return the item at *index*, ``None`` for a placeholder slot.

        Reads inside the resident range are forwarded upstream as access
        hints, at most one per main-loop tick.
        """
        item = self._items[index]
        before = self._state.placeholders_before
        if before <= index < before + self._state.resident_count:
            self._pending_access = index
            self._pending_item = item
            if not self._access_scheduled:
                self._access_scheduled = True
                self._dispatcher.post(self._flush_access)
        return item

    def peek(self, index: int) -> Optional[Any]:
        """Like :meth:`item_at` without producing an access hint."""
        return self._items[index]

    def item_count(self) -> int:
        return len(self._items)

    def snapshot(self) -> List[Any]:
        return list(self._items)

    @property
    def placeholders_before(self) -> int:
        return self._state.placeholders_before

    @property
    def placeholders_after(self) -> int:
        return self._state.placeholders_after

    @property
    def load_states(self) -> Optional[CombinedLoadStates]:
        return self._load_states

    def add_load_state_observer(self, observer: LoadStateObserver) -> None:
        """Register *observer*; it is called right away if states are known."""
        if observer in self._observers:
            return
        self._observers.append(observer)
        if self._load_states is not None:
            observer(self._load_states)

    def remove_load_state_observer(self, observer: LoadStateObserver) -> None:
        try:
            self._observers.remove(observer)
        except ValueError:
            pass

    def retry(self) -> None:
        if self._receiver is not None:
            self._receiver.retry()

    def refresh(self) -> None:
        if self._receiver is not None:
            self._receiver.refresh()

    def _flush_access(self) -> None:
        self._access_scheduled = False
        index, self._pending_access = self._pending_access, None
        self._pending_item = None
        if index is None or self._receiver is None:
            return
        self._receiver.access_item_at(index)
