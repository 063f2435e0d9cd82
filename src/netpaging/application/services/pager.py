"""Pager: decides what to load next and publishes paging events.

All methods must be called on the dispatcher's main context.  Loads run on the
worker side and their results come back through ``Dispatcher.run_io``; every
result is tagged with the cancellation token of its (generation, direction)
so completions from a superseded generation never touch the current window.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable, Dict, Generic, Optional, TypeVar

from ...config import INITIAL_PAGE_KEY
from ...domain.models.events import (
    AppendEvent,
    DropEvent,
    PagingEvent,
    PrependEvent,
    RefreshEvent,
    StateUpdateEvent,
)
from ...domain.models.load_state import (
    INCOMPLETE,
    LOADING,
    LoadStateError,
    LoadStates,
    Loading,
    NotLoading,
)
from ...domain.models.paging import (
    LoadError,
    LoadInvalid,
    LoadParams,
    LoadResult,
    LoadType,
    Page,
    PagingConfig,
    PagingState,
)
from ...domain.repositories import PagingSource
from ...errors import ConfigError, PagingLogicError
from ...errors.handler import ErrorHandler, ErrorSeverity
from ..concurrency import CancellationToken, Dispatcher
from .paging_window import Anchor, PagingWindow

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

EventSink = Callable[[PagingEvent], None]


def _guarded_load(
    source: PagingSource[T], params: LoadParams, token: CancellationToken
) -> LoadResult:
    """Run ``source.load`` on the worker; an escaping exception becomes a :class:`LoadError`."""
    try:
        return source.load(params, token)
    except Exception as exc:
        LOGGER.exception(
            "Paging source raised while loading %s key=%s", params.load_type.name, params.key
        )
        return LoadError(exc)


class Pager(Generic[T]):
    """Cold producer of :class:`PagingEvent` for one paged resource."""

    def __init__(
        self,
        config: PagingConfig,
        source_factory: Callable[[], PagingSource[T]],
        dispatcher: Dispatcher,
        *,
        initial_key: int = INITIAL_PAGE_KEY,
        error_handler: Optional[ErrorHandler] = None,
        strict: bool = __debug__,
    ) -> None:
        config.validate()
        if initial_key < 1:
            raise ConfigError(f"initial_key must be >= 1, got {initial_key}")
        self._config = config
        self._source_factory = source_factory
        self._dispatcher = dispatcher
        self._initial_key = initial_key
        self._error_handler = error_handler or ErrorHandler(LOGGER)
        self._strict = strict

        self._window = PagingWindow(config.enable_placeholders)
        self._states = LoadStates()
        self._generation = 0
        self._source: Optional[PagingSource[T]] = None
        self._invalidation_hook: Optional[Callable[[], None]] = None
        self._tokens: Dict[LoadType, CancellationToken] = {}
        self._refresh_key: int = initial_key
        self._anchor: Optional[Anchor] = None
        self._sink: Optional[EventSink] = None
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def config(self) -> PagingConfig:
        return self._config

    @property
    def states(self) -> LoadStates:
        return self._states

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def window(self) -> PagingWindow:
        return self._window

    @property
    def source(self) -> Optional[PagingSource[T]]:
        return self._source

    @property
    def is_closed(self) -> bool:
        return self._closed

    def in_flight(self, load_type: LoadType) -> bool:
        return load_type in self._tokens

    # ------------------------------------------------------------------
    # Upstream contract (driven by CachedStream)
    # ------------------------------------------------------------------
    def start(self, sink: EventSink) -> None:
        """Begin the first generation and publish every event to *sink*."""
        if self._started:
            raise RuntimeError("Pager has already been started")
        if self._closed:
            return
        self._started = True
        self._sink = sink
        self._emit(StateUpdateEvent(source_states=self._states))
        self._begin_generation(None)

    def close(self) -> None:
        """Cancel in-flight loads and release the current source."""
        if self._closed:
            return
        self._closed = True
        self._cancel_all()
        self._release_source()
        self._sink = None
        LOGGER.info("Pager closed at generation %d", self._generation)

    # ------------------------------------------------------------------
    # UI receiver
    # ------------------------------------------------------------------
    def access_item_at(self, index: int) -> None:
        if not self._started or self._closed or not len(self._window):
            return
        self._anchor = self._window.locate(index)
        self._maybe_prefetch()

    def retry(self) -> None:
        """Re-issue every direction currently in the error state."""
        if not self._started or self._closed:
            return
        failed = self._states.errors()
        if LoadType.REFRESH in failed:
            self._launch(LoadType.REFRESH, self._refresh_key, self._config.initial_load_size)
            return
        for load_type in failed:
            if load_type is LoadType.PREPEND:
                key = self._window.first_prev_key
            else:
                key = self._window.last_next_key
            if key is None:
                self._set_states(self._states.modified(load_type, NotLoading(True)))
                continue
            self._launch(load_type, key, self._config.page_size)

    def refresh(self) -> None:
        """Invalidate the current source and reload around the last access."""
        if not self._started or self._closed:
            return
        self._restart("refresh requested")

    # ------------------------------------------------------------------
    # Generations
    # ------------------------------------------------------------------
    def _begin_generation(self, state: Optional[PagingState[T]]) -> None:
        self._generation += 1
        generation = self._generation
        source = self._source_factory()
        self._source = source
        self._invalidation_hook = partial(self._post_invalidation, generation)
        source.register_invalidated_callback(self._invalidation_hook)

        key = source.refresh_key(state) if state is not None else None
        if key is None:
            key = self._initial_key
        self._refresh_key = key
        LOGGER.info("Starting paging generation %d at key %s", generation, key)
        self._launch(LoadType.REFRESH, key, self._config.initial_load_size)

    def _restart(self, reason: str) -> None:
        LOGGER.info("Restarting pager (generation %d): %s", self._generation, reason)
        state = self._paging_state()
        self._cancel_all()
        self._release_source()
        states = self._states
        for load_type in (LoadType.PREPEND, LoadType.APPEND):
            if isinstance(states.get(load_type), Loading):
                states = states.modified(load_type, INCOMPLETE)
        self._states = states
        self._begin_generation(state)

    def _release_source(self) -> None:
        source = self._source
        if source is None:
            return
        if self._invalidation_hook is not None:
            source.unregister_invalidated_callback(self._invalidation_hook)
            self._invalidation_hook = None
        source.invalidate()
        self._source = None

    def _post_invalidation(self, generation: int) -> None:
        # May fire on any thread; the restart itself happens on main.
        self._dispatcher.post(partial(self._on_source_invalidated, generation))

    def _on_source_invalidated(self, generation: int) -> None:
        if self._closed or generation != self._generation:
            return
        self._restart("source invalidated")

    def _paging_state(self) -> PagingState[T]:
        anchor_position = None
        if self._anchor is not None:
            anchor_position = self._window.presented_index(self._anchor)
        return PagingState(
            pages=self._window.pages,
            anchor_position=anchor_position,
            config=self._config,
            leading_placeholder_count=self._window.placeholders_before,
        )

    # ------------------------------------------------------------------
    # Loads
    # ------------------------------------------------------------------
    def _launch(self, load_type: LoadType, key: int, load_size: int) -> None:
        states = self._states
        if load_type is LoadType.REFRESH:
            for other in (LoadType.PREPEND, LoadType.APPEND):
                token = self._tokens.pop(other, None)
                if token is not None:
                    token.cancel()
                    states = states.modified(other, INCOMPLETE)
        elif load_type in self._tokens:
            LOGGER.debug("%s load already in flight; ignoring", load_type.name)
            return

        previous = self._tokens.pop(load_type, None)
        if previous is not None:
            previous.cancel()
        token = CancellationToken(self._generation, load_type)
        self._tokens[load_type] = token
        self._set_states(states.modified(load_type, LOADING))

        source = self._source
        params = LoadParams(key=key, load_size=load_size, load_type=load_type)
        LOGGER.debug(
            "Loading %s key=%s size=%d (generation %d)",
            load_type.name, key, load_size, self._generation,
        )
        self._dispatcher.run_io(
            partial(_guarded_load, source, params, token),
            partial(self._on_load_result, source, params, token),
        )

    def _on_load_result(
        self,
        source: PagingSource[T],
        params: LoadParams,
        token: CancellationToken,
        result: LoadResult,
    ) -> None:
        load_type = params.load_type
        if self._closed or token.cancelled or token.generation != self._generation:
            LOGGER.debug(
                "Discarding %s result for key %s from generation %d",
                load_type.name, params.key, token.generation,
            )
            return
        if self._tokens.get(load_type) is token:
            del self._tokens[load_type]

        if source.invalid or isinstance(result, LoadInvalid):
            self._restart("source returned invalid")
            return
        if isinstance(result, LoadError):
            self._error_handler.handle(
                result.cause,
                ErrorSeverity.ERROR,
                context={"load_type": load_type.value, "key": params.key},
            )
            self._set_states(self._states.modified(load_type, LoadStateError(result.cause)))
            return
        if not isinstance(result, Page):
            self._logic_error(f"unexpected load result {result!r}")
            return

        if load_type is LoadType.REFRESH:
            self._apply_refresh(params.key, result)
        elif load_type is LoadType.PREPEND:
            self._apply_prepend(params.key, result)
        else:
            self._apply_append(params.key, result)

    def _apply_refresh(self, key: int, page: Page) -> None:
        self._window.reset(key, page)
        self._anchor = None
        self._states = LoadStates(
            refresh=NotLoading(page.prev_key is None and page.next_key is None),
            prepend=NotLoading(page.prev_key is None),
            append=NotLoading(page.next_key is None),
        )
        self._emit(
            RefreshEvent(
                pages=self._window.pages,
                placeholders_before=self._window.placeholders_before,
                placeholders_after=self._window.placeholders_after,
                source_states=self._states,
            )
        )
        self._maybe_prefetch()

    def _apply_prepend(self, key: int, page: Page) -> None:
        first_key = self._window.first_key
        if self._window.contains_key(key) or (
            page.next_key is not None and page.next_key != first_key
        ):
            self._logic_error(
                f"prepended page {key} (next={page.next_key}) does not precede {first_key}"
            )
            return
        if page.prev_key is not None and self._window.contains_key(page.prev_key):
            self._logic_error(f"prevKey {page.prev_key} of page {key} is already resident")
            return
        self._window.prepend(key, page)
        self._states = self._states.modified(LoadType.PREPEND, NotLoading(page.prev_key is None))
        self._emit(
            PrependEvent(
                pages=(page,),
                placeholders_before=self._window.placeholders_before,
                source_states=self._states,
            )
        )
        self._evict(LoadType.PREPEND)
        self._maybe_prefetch()

    def _apply_append(self, key: int, page: Page) -> None:
        last_key = self._window.last_key
        if self._window.contains_key(key) or (
            page.prev_key is not None and page.prev_key != last_key
        ):
            self._logic_error(
                f"appended page {key} (prev={page.prev_key}) does not follow {last_key}"
            )
            return
        if page.next_key is not None and self._window.contains_key(page.next_key):
            self._logic_error(f"nextKey {page.next_key} of page {key} is already resident")
            return
        self._window.append(key, page)
        self._states = self._states.modified(LoadType.APPEND, NotLoading(page.next_key is None))
        self._emit(
            AppendEvent(
                pages=(page,),
                placeholders_after=self._window.placeholders_after,
                source_states=self._states,
            )
        )
        self._evict(LoadType.APPEND)
        self._maybe_prefetch()

    # ------------------------------------------------------------------
    # Prefetch and eviction
    # ------------------------------------------------------------------
    def _maybe_prefetch(self) -> None:
        if self._closed or self._anchor is None or not len(self._window):
            return
        if not isinstance(self._states.refresh, NotLoading):
            return
        index = self._window.presented_index(self._anchor)
        if index is None:
            return
        before = self._window.placeholders_before
        distance_from_front = index - before
        distance_from_end = before + self._window.item_count - 1 - index
        prefetch = self._config.prefetch_distance

        prev_key = self._window.first_prev_key
        if (
            distance_from_front <= prefetch
            and self._states.prepend == INCOMPLETE
            and prev_key is not None
        ):
            self._launch(LoadType.PREPEND, prev_key, self._config.page_size)

        next_key = self._window.last_next_key
        if (
            distance_from_end <= prefetch
            and self._states.append == INCOMPLETE
            and next_key is not None
        ):
            self._launch(LoadType.APPEND, next_key, self._config.page_size)

    def _evict(self, loaded: LoadType) -> None:
        max_size = self._config.max_size
        if max_size is None:
            return
        from_front = self._drop_from_front(loaded)
        protected = self._anchor.key if self._anchor is not None else None
        dropped = 0
        while self._window.item_count > max_size and len(self._window) > 1:
            edge = self._window.first_key if from_front else self._window.last_key
            if edge == protected:
                break
            if from_front:
                self._window.drop_first()
            else:
                self._window.drop_last()
            dropped += 1
        if not dropped:
            return

        direction = LoadType.PREPEND if from_front else LoadType.APPEND
        token = self._tokens.pop(direction, None)
        if token is not None:
            token.cancel()
        placeholders = (
            self._window.placeholders_before if from_front else self._window.placeholders_after
        )
        LOGGER.debug(
            "Evicted %d page(s) from the %s side; %d items resident",
            dropped, direction.value, self._window.item_count,
        )
        self._emit(DropEvent(load_type=direction, page_count=dropped, placeholders=placeholders))
        self._set_states(self._states.modified(direction, INCOMPLETE))

    def _drop_from_front(self, loaded: LoadType) -> bool:
        """Pick the eviction end farthest from the most recent access.

        Without a resident anchor the end opposite *loaded* is used.
        """
        anchor = self._anchor
        if anchor is not None:
            start = self._window.start_of(anchor.key)
            if start is not None:
                position = start - self._window.placeholders_before + anchor.offset
                return position * 2 >= self._window.item_count
        return loaded is LoadType.APPEND

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _set_states(self, states: LoadStates) -> None:
        if states == self._states:
            return
        self._states = states
        self._emit(StateUpdateEvent(source_states=states))

    def _emit(self, event: PagingEvent) -> None:
        if self._sink is not None:
            self._sink(event)

    def _cancel_all(self) -> None:
        tokens = list(self._tokens.values())
        self._tokens.clear()
        for token in tokens:
            token.cancel()

    def _logic_error(self, message: str) -> None:
        error = PagingLogicError(message)
        if self._strict:
            raise error
        self._error_handler.handle(
            error, ErrorSeverity.WARNING, context={"generation": self._generation}
        )
        self._restart("logic error")
