"""View model for the paged movie list screen."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ...application.concurrency import Dispatcher, Scope
from ...application.services.cached_stream import CachedStream, PagingUpstream
from ...application.services.presenter import LoadStateObserver, PagingDataPresenter
from ...domain.models.core import ItemComparator, MovieComparator
from ...domain.models.load_state import CombinedLoadStates, LoadStateError, Loading
from .base import BaseViewModel
from .load_state_viewmodel import LoadStateViewModel, error_text
from .signal import ObservableProperty

LOGGER = logging.getLogger(__name__)


@dataclass
class _ObserverRegistration:
    presenter: PagingDataPresenter
    observer: LoadStateObserver

    def cancel(self) -> None:
        self.presenter.remove_load_state_observer(self.observer)


class MovieListViewModel(BaseViewModel):
    """Owns the cached paging stream of the screen and its presenter.

    The stream lives in the view model's own :class:`Scope`, so the pager
    survives views being rebuilt and is torn down by :meth:`dispose`.
    """

    def __init__(
        self,
        pager: PagingUpstream,
        dispatcher: Dispatcher,
        *,
        comparator: Optional[ItemComparator] = None,
        scope: Optional[Scope] = None,
    ) -> None:
        super().__init__()
        self._scope = scope or Scope("movie-list")
        self.stream = CachedStream(pager, self._scope)
        self.presenter = PagingDataPresenter(comparator or MovieComparator(), dispatcher)
        self.header = LoadStateViewModel()
        self.footer = LoadStateViewModel()
        self.load_states = ObservableProperty(None)
        self.refreshing = ObservableProperty(False)
        self.error_message = ObservableProperty("")
        self._bound = False

        self.track(self.header.retry_requested.connect(self.retry))
        self.track(self.footer.retry_requested.connect(self.retry))

    @property
    def scope(self) -> Scope:
        return self._scope

    def bind(self) -> None:
        """Start collecting the paging stream into the presenter."""
        if self._bound or self.disposed:
            return
        self._bound = True
        self.presenter.add_load_state_observer(self._on_load_states)
        self.track(_ObserverRegistration(self.presenter, self._on_load_states))
        self.track(self.presenter.collect_from(self.stream))

    def retry(self) -> None:
        self.presenter.retry()

    def refresh(self) -> None:
        self.presenter.refresh()

    def dispose(self) -> None:
        super().dispose()
        self._scope.cancel()
        LOGGER.debug("Movie list view model disposed")

    def _on_load_states(self, states: CombinedLoadStates) -> None:
        self.load_states.value = states
        self.header.set_load_state(states.prepend)
        self.footer.set_load_state(states.append)
        self.refreshing.value = isinstance(states.refresh, Loading)
        if isinstance(states.refresh, LoadStateError):
            self.error_message.value = error_text(states.refresh.cause)
        else:
            self.error_message.value = ""
