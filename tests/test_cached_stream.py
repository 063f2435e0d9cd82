"""Multicast, replay and lifecycle behaviour of CachedStream."""

from unittest.mock import Mock

import pytest

from netpaging.application.concurrency import Scope
from netpaging.application.services.cached_stream import CachedStream
from netpaging.application.services.page_accumulator import PageEventAccumulator
from netpaging.domain.models.events import (
    AppendEvent,
    DropEvent,
    PrependEvent,
    RefreshEvent,
    StateUpdateEvent,
)
from netpaging.domain.models.load_state import COMPLETE, INCOMPLETE, LOADING, LoadStates
from netpaging.domain.models.paging import LoadType, Page


class _Collector:
    def __init__(self):
        self.events = []
        self.completed = 0
        self.accumulator = PageEventAccumulator()

    def on_event(self, event):
        self.events.append(event)
        self.accumulator.apply(event)

    def on_complete(self):
        self.completed += 1


@pytest.fixture
def scope():
    return Scope("test")


def _stream(make_pager, scope, **kwargs):
    pager, sources = make_pager(**kwargs)
    return CachedStream(pager, scope), pager, sources


class TestSharing:
    def test_upstream_started_once(self, scope):
        upstream = Mock()
        stream = CachedStream(upstream, scope)

        stream.subscribe(lambda event: None)
        stream.subscribe(lambda event: None)

        upstream.start.assert_called_once()
        assert stream.subscriber_count == 2

    def test_first_subscriber_sees_everything(self, make_pager, dispatcher, scope):
        stream, _, _ = _stream(make_pager, scope)
        collector = _Collector()
        stream.subscribe(collector.on_event)
        dispatcher.run_pending()

        assert [type(event) for event in collector.events] == [StateUpdateEvent, RefreshEvent]

    def test_late_subscriber_before_refresh_gets_state_update(self, make_pager, dispatcher, scope):
        stream, _, _ = _stream(make_pager, scope)
        stream.subscribe(lambda event: None)
        late = _Collector()

        stream.subscribe(late.on_event)

        assert late.events == [StateUpdateEvent(LoadStates())]
        dispatcher.run_pending()
        assert isinstance(late.events[-1], RefreshEvent)

    def test_late_subscriber_matches_early_one(self, make_pager, dispatcher, scope, fetcher):
        stream, pager, _ = _stream(make_pager, scope)
        early = _Collector()
        stream.subscribe(early.on_event)
        dispatcher.run_pending()
        for _ in range(5):
            stream.access_item_at(pager.window.item_count - 1)
            dispatcher.run_pending()
        assert any(isinstance(event, DropEvent) for event in early.events)

        late = _Collector()
        stream.subscribe(late.on_event)

        assert len(late.events) == 1
        assert isinstance(late.events[0], RefreshEvent)
        assert late.accumulator.presented() == early.accumulator.presented()
        assert late.accumulator.states == early.accumulator.states

        stream.access_item_at(pager.window.item_count - 1)
        dispatcher.run_pending()
        assert late.accumulator.presented() == early.accumulator.presented()
        assert late.events[1:] == early.events[-(len(late.events) - 1):]

    def test_failing_subscriber_does_not_starve_others(self, make_pager, dispatcher, scope):
        stream, _, _ = _stream(make_pager, scope)
        stream.subscribe(Mock(side_effect=RuntimeError("broken view")))
        healthy = _Collector()
        stream.subscribe(healthy.on_event)

        dispatcher.run_pending()

        assert isinstance(healthy.events[-1], RefreshEvent)

    def test_cancelled_subscription_stops_receiving(self, make_pager, dispatcher, scope):
        stream, pager, _ = _stream(make_pager, scope)
        collector = _Collector()
        subscription = stream.subscribe(collector.on_event)
        subscription.cancel()
        subscription.cancel()

        dispatcher.run_pending()

        assert len(collector.events) == 1
        assert stream.subscriber_count == 0
        assert not pager.is_closed
        assert not subscription.active

    def test_receiver_calls_forwarded(self, scope):
        upstream = Mock()
        stream = CachedStream(upstream, scope)

        stream.access_item_at(3)
        stream.retry()
        stream.refresh()

        upstream.access_item_at.assert_called_once_with(3)
        upstream.retry.assert_called_once_with()
        upstream.refresh.assert_called_once_with()


class TestScope:
    def test_scope_end_mid_load_drops_result(self, make_pager, dispatcher, scope, fetcher):
        stream, pager, sources = _stream(make_pager, scope)
        collector = _Collector()
        stream.subscribe(collector.on_event, collector.on_complete)
        fetcher.on_fetch = lambda page: scope.cancel()

        dispatcher.run_pending()

        assert fetcher.tokens[0].cancelled
        assert collector.events == [StateUpdateEvent(LoadStates())]
        assert collector.completed == 1
        assert pager.is_closed
        assert sources[0].invalid
        assert stream.completed

    def test_subscribe_after_completion_completes_immediately(self, make_pager, dispatcher, scope):
        stream, _, _ = _stream(make_pager, scope)
        stream.subscribe(lambda event: None)
        dispatcher.run_pending()
        scope.cancel()

        late = _Collector()
        subscription = stream.subscribe(late.on_event, late.on_complete)

        assert late.events == []
        assert late.completed == 1
        assert not subscription.active

    def test_receiver_calls_ignored_after_completion(self, scope):
        upstream = Mock()
        stream = CachedStream(upstream, scope)
        scope.cancel()

        stream.access_item_at(0)
        stream.retry()

        upstream.close.assert_called_once_with()
        upstream.access_item_at.assert_not_called()
        upstream.retry.assert_not_called()

    def test_registering_on_ended_scope_completes_at_once(self):
        scope = Scope()
        scope.cancel()
        upstream = Mock()

        stream = CachedStream(upstream, scope)

        assert stream.completed
        upstream.close.assert_called_once_with()


class TestAccumulator:
    def _pages(self, *keys):
        return tuple(
            Page(data=tuple(f"{key}-{i}" for i in range(2)), prev_key=key - 1, next_key=key + 1)
            for key in keys
        )

    def test_folds_events(self):
        accumulator = PageEventAccumulator()
        states = LoadStates(refresh=INCOMPLETE, prepend=INCOMPLETE, append=INCOMPLETE)
        accumulator.apply(RefreshEvent(self._pages(2), 4, 6, states))
        accumulator.apply(PrependEvent(self._pages(1), 2, states))
        accumulator.apply(AppendEvent(self._pages(3), 4, states))
        accumulator.apply(DropEvent(LoadType.APPEND, 1, 6))

        assert accumulator.presented() == [None, None, "1-0", "1-1", "2-0", "2-1"] + [None] * 6
        assert accumulator.resident_count == 4
        assert accumulator.resident() == ["1-0", "1-1", "2-0", "2-1"]

    def test_state_update_only_changes_states(self):
        accumulator = PageEventAccumulator()
        assert accumulator.snapshot() is None

        states = LoadStates(refresh=COMPLETE, prepend=COMPLETE, append=LOADING)
        accumulator.apply(StateUpdateEvent(states))

        assert accumulator.snapshot() == StateUpdateEvent(states)
        assert not accumulator.has_refresh

    def test_unknown_event_rejected(self):
        with pytest.raises(TypeError):
            PageEventAccumulator().apply(object())
