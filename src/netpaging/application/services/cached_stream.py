"""Multicast, replaying wrapper around a pager's event stream.

The upstream is started once, by the first subscriber, and shared by every
subscriber until the owning :class:`~netpaging.application.concurrency.Scope`
ends.  Subscribers that arrive late first receive one synthesized event that
reproduces the accumulated state, then the live events that follow.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

from ...domain.models.events import PagingEvent
from ...domain.models.load_state import LoadStates
from ..concurrency import Scope
from .page_accumulator import PageEventAccumulator

LOGGER = logging.getLogger(__name__)

EventHandler = Callable[[PagingEvent], None]


class PagingUpstream(Protocol):
    def start(self, sink: EventHandler) -> None: ...

    def close(self) -> None: ...

    def access_item_at(self, index: int) -> None: ...

    def retry(self) -> None: ...

    def refresh(self) -> None: ...


@dataclass
class StreamSubscription:
    """Handle returned by :meth:`CachedStream.subscribe`."""

    on_event: EventHandler
    on_complete: Optional[Callable[[], None]] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    active: bool = True
    _stream: Optional["CachedStream"] = field(default=None, repr=False)

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._stream is not None:
            self._stream._remove(self)
            self._stream = None


class CachedStream:
    """Shares one upstream generation among any number of collectors."""

    def __init__(self, upstream: PagingUpstream, scope: Scope) -> None:
        self._upstream = upstream
        self._scope = scope
        self._accumulator = PageEventAccumulator()
        self._subscribers: List[StreamSubscription] = []
        self._started = False
        self._completed = False
        scope.on_cancel(self._complete)

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def accumulator(self) -> PageEventAccumulator:
        return self._accumulator

    @property
    def states(self) -> Optional[LoadStates]:
        return self._accumulator.states

    def subscribe(
        self,
        on_event: EventHandler,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> StreamSubscription:
        subscription = StreamSubscription(on_event=on_event, on_complete=on_complete)
        if self._completed:
            subscription.active = False
            if on_complete is not None:
                on_complete()
            return subscription

        subscription._stream = self
        if self._started:
            replay = self._accumulator.snapshot()
            if replay is not None:
                LOGGER.debug("Replaying %s to late subscriber %s", type(replay).__name__, subscription.id)
                on_event(replay)
            if not subscription.active:
                return subscription
            self._subscribers.append(subscription)
            return subscription

        self._subscribers.append(subscription)
        self._started = True
        LOGGER.debug("First subscriber %s; starting upstream", subscription.id)
        self._upstream.start(self._dispatch)
        return subscription

    # -- receiver passthrough ----------------------------------------------

    def access_item_at(self, index: int) -> None:
        if not self._completed:
            self._upstream.access_item_at(index)

    def retry(self) -> None:
        if not self._completed:
            self._upstream.retry()

    def refresh(self) -> None:
        if not self._completed:
            self._upstream.refresh()

    # -- internals ---------------------------------------------------------

    def _dispatch(self, event: PagingEvent) -> None:
        if self._completed:
            return
        self._accumulator.apply(event)
        for subscription in list(self._subscribers):
            if not subscription.active:
                continue
            try:
                subscription.on_event(event)
            except Exception as exc:
                LOGGER.error("Paging subscriber %s failed: %s", subscription.id, exc)

    def _remove(self, subscription: StreamSubscription) -> None:
        try:
            self._subscribers.remove(subscription)
        except ValueError:
            pass

    def _complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        self._upstream.close()
        subscribers = list(self._subscribers)
        self._subscribers.clear()
        for subscription in subscribers:
            subscription.active = False
            subscription._stream = None
            if subscription.on_complete is None:
                continue
            try:
                subscription.on_complete()
            except Exception as exc:
                LOGGER.error("Completion handler of %s failed: %s", subscription.id, exc)
