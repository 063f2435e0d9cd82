"""Behaviour of the Pager state machine driven through ManualDispatcher."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from conftest import FakeFetcher
from netpaging.application.concurrency import ManualDispatcher
from netpaging.application.services.pager import Pager
from netpaging.domain.models.events import (
    AppendEvent,
    DropEvent,
    PrependEvent,
    RefreshEvent,
    StateUpdateEvent,
)
from netpaging.domain.models.load_state import (
    COMPLETE,
    INCOMPLETE,
    LOADING,
    LoadStateError,
    LoadStates,
)
from netpaging.domain.models.paging import (
    LoadError,
    LoadParams,
    LoadType,
    Page,
    PagingConfig,
)
from netpaging.domain.repositories import PagingSource
from netpaging.errors import ConfigError, PagingLogicError, RequestTimeoutError
from netpaging.errors.handler import ErrorSeverity
from netpaging.infrastructure.sources.movie_paging_source import MoviePagingSource


def _start(pager):
    events = []
    pager.start(events.append)
    return events


def _grow_to(pager, dispatcher, last_key):
    """Append pages by touching the last resident item until *last_key* is resident."""
    while pager.window.last_key < last_key:
        pager.access_item_at(pager.window.item_count - 1)
        dispatcher.run_pending()


class TestInitialLoad:
    def test_initial_refresh_matches_first_page(self, make_pager, dispatcher, fetcher):
        fetcher.total_pages = 5
        pager, _ = make_pager()
        events = _start(pager)

        assert events == [StateUpdateEvent(LoadStates())]
        assert dispatcher.pending_io == 1

        dispatcher.run_pending()

        assert fetcher.calls == [1]
        refresh = events[-1]
        assert isinstance(refresh, RefreshEvent)
        assert len(refresh.pages) == 1
        assert len(refresh.pages[0].data) == 20
        assert refresh.placeholders_before == 0
        assert refresh.placeholders_after == 0
        assert refresh.source_states == LoadStates(
            refresh=INCOMPLETE, prepend=COMPLETE, append=INCOMPLETE
        )
        assert pager.window.keys == (1,)

    def test_refresh_load_uses_initial_load_size(self, dispatcher):
        source = Mock(spec=PagingSource)
        source.refresh_key.return_value = None
        pager = Pager(PagingConfig(), lambda: source, dispatcher, initial_key=4)
        _start(pager)

        dispatcher._io[0][0]()

        params = source.load.call_args[0][0]
        assert params == LoadParams(key=4, load_size=60, load_type=LoadType.REFRESH)

    def test_empty_first_page_is_terminal_both_ways(self, make_pager, dispatcher, fetcher):
        fetcher.total_pages = 0
        pager, _ = make_pager()
        events = _start(pager)
        dispatcher.run_pending()

        refresh = events[-1]
        assert isinstance(refresh, RefreshEvent)
        assert refresh.pages[0].data == ()
        assert refresh.source_states == LoadStates(
            refresh=COMPLETE, prepend=COMPLETE, append=COMPLETE
        )

    def test_placeholders_reported_on_refresh(self, make_pager, dispatcher, fetcher):
        fetcher.total_pages = 5
        pager, _ = make_pager(PagingConfig(enable_placeholders=True), initial_key=2)
        events = _start(pager)
        dispatcher.run_pending()

        refresh = events[-1]
        assert refresh.placeholders_before == 20
        assert refresh.placeholders_after == 60

    def test_invalid_config_rejected_at_construction(self, dispatcher):
        with pytest.raises(ConfigError):
            Pager(PagingConfig(page_size=0), Mock(), dispatcher)
        with pytest.raises(ConfigError):
            Pager(PagingConfig(max_size=50), Mock(), dispatcher)
        with pytest.raises(ConfigError):
            Pager(PagingConfig(), Mock(), dispatcher, initial_key=0)

    def test_start_twice_is_an_error(self, make_pager):
        pager, _ = make_pager()
        _start(pager)
        with pytest.raises(RuntimeError):
            pager.start(lambda event: None)


class TestPrefetch:
    def test_access_near_end_appends_next_page(self, make_pager, dispatcher, fetcher):
        fetcher.total_pages = 5
        pager, _ = make_pager()
        events = _start(pager)
        dispatcher.run_pending()
        del events[:]

        pager.access_item_at(12)

        assert events == [
            StateUpdateEvent(LoadStates(refresh=INCOMPLETE, prepend=COMPLETE, append=LOADING))
        ]
        dispatcher.run_pending()

        append = events[-1]
        assert isinstance(append, AppendEvent)
        assert append.placeholders_after == 0
        assert append.source_states.append == INCOMPLETE
        assert [movie.id for movie in append.pages[0].data] == list(range(20, 40))
        assert pager.window.keys == (1, 2)

    def test_access_far_from_edges_does_nothing(self, make_pager, dispatcher):
        pager, _ = make_pager()
        events = _start(pager)
        dispatcher.run_pending()
        _grow_to(pager, dispatcher, 2)
        del events[:]

        pager.access_item_at(15)

        assert events == []
        assert dispatcher.pending_io == 0

    def test_access_near_front_prepends(self, make_pager, dispatcher):
        pager, _ = make_pager(initial_key=3)
        events = _start(pager)
        dispatcher.run_pending()

        pager.access_item_at(2)
        dispatcher.run_pending()

        assert pager.window.keys == (2, 3)
        assert pager.states.prepend == INCOMPLETE
        assert [type(event) for event in events[-2:]] == [StateUpdateEvent, PrependEvent]

    def test_at_most_one_load_per_direction(self, make_pager, dispatcher, fetcher):
        pager, _ = make_pager()
        _start(pager)
        dispatcher.run_pending()

        for _ in range(5):
            pager.access_item_at(19)

        assert dispatcher.pending_io == 1
        dispatcher.run_pending()
        assert fetcher.calls == [1, 2]

    def test_no_prefetch_while_refresh_loading(self, make_pager, dispatcher):
        pager, _ = make_pager()
        _start(pager)
        dispatcher.run_pending()

        pager.refresh()
        pager.access_item_at(19)

        assert not pager.in_flight(LoadType.APPEND)
        assert pager.in_flight(LoadType.REFRESH)

    def test_no_load_past_last_page(self, make_pager, dispatcher, fetcher):
        fetcher.total_pages = 2
        pager, _ = make_pager()
        _start(pager)
        dispatcher.run_pending()
        _grow_to(pager, dispatcher, 2)

        pager.access_item_at(39)

        assert pager.states.append == COMPLETE
        assert dispatcher.pending_io == 0
        assert fetcher.calls == [1, 2]

    def test_forward_progress_until_end_of_pagination(self, make_pager, dispatcher, fetcher):
        pager, _ = make_pager()
        _start(pager)
        dispatcher.run_pending()

        for _ in range(50):
            if pager.states.append == COMPLETE:
                break
            pager.access_item_at(pager.window.item_count - 1)
            dispatcher.run_pending()
            assert pager.window.item_count <= pager.config.max_size
            assert pager.window.is_contiguous()

        assert pager.states.append == COMPLETE
        assert pager.window.last_key == fetcher.total_pages


class TestErrors:
    def test_append_timeout_then_retry(self, make_pager, dispatcher, fetcher):
        fetcher.total_pages = 5
        pager, _ = make_pager()
        events = _start(pager)
        dispatcher.run_pending()
        pager.access_item_at(12)
        dispatcher.run_pending()

        timeout = RequestTimeoutError("page 3 timed out")
        fetcher.fail(3, timeout)
        del events[:]
        pager.access_item_at(32)
        dispatcher.run_pending()

        assert events[-1] == StateUpdateEvent(
            LoadStates(
                refresh=INCOMPLETE, prepend=COMPLETE, append=LoadStateError(timeout)
            )
        )
        assert pager.window.keys == (1, 2)

        del events[:]
        pager.retry()
        dispatcher.run_pending()

        assert isinstance(events[0], StateUpdateEvent)
        assert events[0].source_states.append == LOADING
        assert isinstance(events[-1], AppendEvent)
        assert events[-1].source_states.append == INCOMPLETE
        assert pager.window.keys == (1, 2, 3)

    def test_refresh_error_reported_and_retried(self, make_pager, dispatcher, fetcher):
        error = RequestTimeoutError("slow")
        fetcher.fail(1, error)
        handler = Mock()
        pager, _ = make_pager(error_handler=handler)
        events = _start(pager)
        dispatcher.run_pending()

        assert pager.states.refresh == LoadStateError(error)
        assert isinstance(events[-1], StateUpdateEvent)
        handler.handle.assert_called_once()
        assert handler.handle.call_args[0][0] is error
        assert handler.handle.call_args[0][1] is ErrorSeverity.ERROR

        pager.retry()
        dispatcher.run_pending()

        assert isinstance(events[-1], RefreshEvent)
        assert fetcher.calls == [1, 1]

    def test_raising_source_settles_as_error(self, dispatcher):
        error = RuntimeError("source exploded")
        handler = Mock()
        source = Mock(spec=PagingSource)
        source.invalid = False
        source.refresh_key.return_value = None
        source.load.side_effect = error
        pager = Pager(PagingConfig(), lambda: source, dispatcher, error_handler=handler)
        _start(pager)

        dispatcher.run_pending()

        assert pager.states.refresh == LoadStateError(error)
        assert not pager.in_flight(LoadType.REFRESH)
        assert handler.handle.call_args[0][0] is error

    def test_retry_without_errors_is_noop(self, make_pager, dispatcher, fetcher):
        pager, _ = make_pager()
        events = _start(pager)
        dispatcher.run_pending()
        del events[:]

        pager.retry()

        assert events == []
        assert dispatcher.pending_io == 0

    def test_logic_error_raises_in_strict_mode(self, dispatcher):
        pager = Pager(PagingConfig(), lambda: _ScriptedSource(), dispatcher, strict=True)
        _start(pager)
        dispatcher.run_pending()

        pager.access_item_at(19)
        with pytest.raises(PagingLogicError):
            dispatcher.run_pending()

    def test_logic_error_restarts_when_lenient(self, dispatcher):
        handler = Mock()
        sources = []

        def factory():
            sources.append(_ScriptedSource())
            return sources[-1]

        pager = Pager(PagingConfig(), factory, dispatcher, strict=False, error_handler=handler)
        _start(pager)
        dispatcher.run_pending()
        pager.access_item_at(19)
        dispatcher.run_next_io()

        assert isinstance(handler.handle.call_args[0][0], PagingLogicError)
        assert handler.handle.call_args[0][1] is ErrorSeverity.WARNING
        assert pager.generation == 2
        assert sources[0].invalid
        assert pager.in_flight(LoadType.REFRESH)


class TestEviction:
    def test_append_beyond_max_size_drops_front_page(self, make_pager, dispatcher, fetcher):
        fetcher.total_pages = 6
        pager, _ = make_pager()
        events = _start(pager)
        dispatcher.run_pending()
        _grow_to(pager, dispatcher, 5)
        assert pager.window.item_count == 100

        pager.access_item_at(20)
        assert dispatcher.pending_io == 0
        del events[:]

        pager.access_item_at(99)
        dispatcher.run_pending()

        kinds = [type(event) for event in events]
        assert kinds == [StateUpdateEvent, AppendEvent, DropEvent, StateUpdateEvent]
        assert events[2] == DropEvent(load_type=LoadType.PREPEND, page_count=1, placeholders=0)
        assert events[3].source_states.prepend == INCOMPLETE
        assert pager.window.keys == (2, 3, 4, 5, 6)
        assert pager.window.item_count == 100

    def test_evicts_the_end_farthest_from_the_last_access(self, dispatcher):
        fetcher = FakeFetcher(total_pages=10, page_size=60)
        config = PagingConfig(page_size=60, prefetch_distance=10, initial_load_size=60, max_size=140)
        pager = Pager(
            config,
            lambda: MoviePagingSource(fetcher, page_size=60),
            dispatcher,
        )
        events = _start(pager)
        dispatcher.run_pending()
        pager.access_item_at(59)
        dispatcher.run_pending()
        pager.access_item_at(119)
        # The user scrolls back to the top while page 3 is still loading.
        pager.access_item_at(0)
        dispatcher.run_pending()

        assert pager.window.keys == (1, 2)
        assert pager.window.item_count <= config.max_size
        assert events[-1] == DropEvent(load_type=LoadType.APPEND, page_count=1, placeholders=0)
        assert pager.states.append == INCOMPLETE

    def test_prepend_beyond_max_size_drops_back_page(self, make_pager, dispatcher, fetcher):
        pager, _ = make_pager(PagingConfig(enable_placeholders=True), initial_key=10)
        events = _start(pager)
        dispatcher.run_pending()
        assert pager.states.append == COMPLETE

        while pager.window.first_key > 6:
            pager.access_item_at(pager.window.placeholders_before)
            dispatcher.run_pending()
        assert pager.window.item_count == 100
        del events[:]

        pager.access_item_at(pager.window.placeholders_before)
        dispatcher.run_pending()

        kinds = [type(event) for event in events]
        assert kinds == [StateUpdateEvent, PrependEvent, DropEvent, StateUpdateEvent]
        drop = events[2]
        assert drop == DropEvent(load_type=LoadType.APPEND, page_count=1, placeholders=20)
        assert drop.placeholders == pager.window.placeholders_after
        assert events[3].source_states.append == INCOMPLETE
        assert pager.window.keys == (5, 6, 7, 8, 9)
        assert pager.window.item_count == 100

    def test_unbounded_window_never_drops(self, make_pager, dispatcher):
        pager, _ = make_pager(PagingConfig(max_size=None))
        events = _start(pager)
        dispatcher.run_pending()
        _grow_to(pager, dispatcher, 8)

        assert not any(isinstance(event, DropEvent) for event in events)
        assert pager.window.keys == tuple(range(1, 9))


class TestRefreshAndGenerations:
    def test_refresh_resumes_from_anchor_page(self, make_pager, dispatcher, fetcher):
        pager, sources = make_pager(PagingConfig(max_size=None), initial_key=2)
        events = _start(pager)
        dispatcher.run_pending()
        _grow_to(pager, dispatcher, 4)
        assert pager.window.keys == (2, 3, 4)

        pager.access_item_at(25)
        del events[:]
        fetcher.calls.clear()
        pager.refresh()
        dispatcher.run_pending()

        assert sources[0].invalid
        assert len(sources) == 2
        assert fetcher.calls == [3]
        refreshes = [event for event in events if isinstance(event, RefreshEvent)]
        assert len(refreshes) == 1
        assert pager.window.keys == (3,)
        assert pager.generation == 2

    def test_stale_completion_is_discarded(self, make_pager, dispatcher, fetcher):
        pager, _ = make_pager()
        events = _start(pager)
        dispatcher.run_pending()
        pager.access_item_at(19)
        assert pager.in_flight(LoadType.APPEND)

        pager.refresh()
        dispatcher.run_pending()

        assert not any(isinstance(event, AppendEvent) for event in events)
        assert pager.window.keys == (1,)
        assert fetcher.calls == [1, 1]

    def test_cancelled_tokens_carry_generation(self, make_pager, dispatcher, fetcher):
        pager, _ = make_pager()
        _start(pager)
        dispatcher.run_pending()

        pager.refresh()
        dispatcher.run_pending()

        first, second = fetcher.tokens
        assert first.generation == 1
        assert second.generation == 2
        assert second.load_type is LoadType.REFRESH

    def test_external_invalidation_restarts_on_main(self, make_pager, dispatcher, fetcher):
        pager, sources = make_pager()
        events = _start(pager)
        dispatcher.run_pending()

        sources[0].invalidate()
        assert pager.generation == 1
        assert dispatcher.pending_main == 1

        dispatcher.run_pending()

        assert pager.generation == 2
        assert len(sources) == 2
        assert isinstance(events[-1], RefreshEvent)

    def test_close_discards_inflight_and_invalidates(self, make_pager, dispatcher, fetcher):
        pager, sources = make_pager()
        events = _start(pager)
        dispatcher.run_pending()
        pager.access_item_at(19)
        count = len(events)

        pager.close()
        dispatcher.run_pending()

        assert len(events) == count
        assert sources[0].invalid
        assert pager.is_closed
        pager.access_item_at(19)
        pager.retry()
        pager.refresh()
        assert dispatcher.pending_io == 0


class _ScriptedSource(PagingSource):
    """Returns a well-formed page 1 and then an append page that does not follow it."""

    def load(self, params, token=None):
        if params.load_type is LoadType.REFRESH:
            return Page(data=tuple(range(20)), prev_key=None, next_key=2)
        if params.load_type is LoadType.APPEND:
            return Page(data=tuple(range(20, 40)), prev_key=7, next_key=3)
        return LoadError(RuntimeError("unexpected"))

    def refresh_key(self, state):
        return None


def test_manual_dispatcher_guards_runaway_loops():
    dispatcher = ManualDispatcher()

    def requeue():
        dispatcher.post(requeue)

    dispatcher.post(requeue)
    with pytest.raises(RuntimeError):
        dispatcher.run_pending(max_steps=5)
