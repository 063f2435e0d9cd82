from __future__ import annotations

from typing import Any, List, Optional, Tuple

from ...domain.models.events import (
    AppendEvent,
    DropEvent,
    PagingEvent,
    PrependEvent,
    RefreshEvent,
    StateUpdateEvent,
)
from ...domain.models.load_state import LoadStates
from ...domain.models.paging import LoadType, Page


class PageEventAccumulator:
    """Folds a paging event stream into the snapshot it currently describes.

    A late subscriber receives :meth:`snapshot` and from then on sees the same
    presented list as a subscriber that consumed every event.
    """

    def __init__(self) -> None:
        self._pages: List[Page] = []
        self._before = 0
        self._after = 0
        self._states: Optional[LoadStates] = None
        self._has_refresh = False

    @property
    def has_refresh(self) -> bool:
        return self._has_refresh

    @property
    def states(self) -> Optional[LoadStates]:
        return self._states

    @property
    def pages(self) -> Tuple[Page, ...]:
        return tuple(self._pages)

    @property
    def placeholders_before(self) -> int:
        return self._before

    @property
    def placeholders_after(self) -> int:
        return self._after

    @property
    def resident_count(self) -> int:
        return sum(len(page.data) for page in self._pages)

    def resident(self) -> List[Any]:
        return [item for page in self._pages for item in page.data]

    def apply(self, event: PagingEvent) -> None:
        if isinstance(event, RefreshEvent):
            self._pages = list(event.pages)
            self._before = event.placeholders_before
            self._after = event.placeholders_after
            self._states = event.source_states
            self._has_refresh = True
        elif isinstance(event, PrependEvent):
            self._pages[0:0] = list(event.pages)
            self._before = event.placeholders_before
            self._states = event.source_states
        elif isinstance(event, AppendEvent):
            self._pages.extend(event.pages)
            self._after = event.placeholders_after
            self._states = event.source_states
        elif isinstance(event, DropEvent):
            if event.load_type is LoadType.PREPEND:
                del self._pages[: event.page_count]
                self._before = event.placeholders
            else:
                del self._pages[len(self._pages) - event.page_count :]
                self._after = event.placeholders
        elif isinstance(event, StateUpdateEvent):
            self._states = event.source_states
        else:
            raise TypeError(f"Unsupported paging event: {event!r}")

    def snapshot(self) -> Optional[PagingEvent]:
        """Event that reproduces the accumulated state, or ``None`` if empty."""
        if self._has_refresh:
            return RefreshEvent(
                pages=tuple(self._pages),
                placeholders_before=self._before,
                placeholders_after=self._after,
                source_states=self._states or LoadStates(),
            )
        if self._states is not None:
            return StateUpdateEvent(source_states=self._states)
        return None

    def presented(self) -> List[Any]:
        """Flattened list with ``None`` standing in for each placeholder."""
        items: List[Any] = [None] * self._before
        for page in self._pages:
            items.extend(page.data)
        items.extend([None] * self._after)
        return items
