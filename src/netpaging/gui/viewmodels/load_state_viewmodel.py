"""Header/footer presentation of a single direction's load state."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from ...domain.models.load_state import LoadState, LoadStateError, Loading
from .base import BaseViewModel
from .signal import ObservableProperty, Signal


class LoadStateMode(Enum):
    HIDDEN = "hidden"
    SPINNER = "spinner"
    ERROR = "error"


def mode_for(state: Optional[LoadState]) -> LoadStateMode:
    if isinstance(state, Loading):
        return LoadStateMode.SPINNER
    if isinstance(state, LoadStateError):
        return LoadStateMode.ERROR
    return LoadStateMode.HIDDEN


def error_text(error: BaseException) -> str:
    return str(error) or error.__class__.__name__


class LoadStateViewModel(BaseViewModel):
    """Maps a load state to hidden, spinner or error-with-retry.

    Holds no paging state of its own; retry clicks are re-emitted through
    :attr:`retry_requested` for whoever owns the presenter.
    """

    def __init__(self) -> None:
        super().__init__()
        self.load_state = ObservableProperty(None)
        self.mode = ObservableProperty(LoadStateMode.HIDDEN)
        self.message = ObservableProperty("")
        self.retry_requested = Signal()

    @property
    def visible(self) -> bool:
        return self.mode.value is not LoadStateMode.HIDDEN

    def set_load_state(self, state: Optional[LoadState]) -> None:
        self.load_state.value = state
        mode = mode_for(state)
        self.message.value = error_text(state.cause) if mode is LoadStateMode.ERROR else ""
        self.mode.value = mode

    def retry(self) -> None:
        self.retry_requested.emit()
