"""Pure Python view models; Qt widgets bind to these."""

from .base import BaseViewModel
from .load_state_viewmodel import LoadStateMode, LoadStateViewModel
from .movie_list_viewmodel import MovieListViewModel
from .signal import Connection, ObservableProperty, Signal

__all__ = [
    "BaseViewModel",
    "Connection",
    "LoadStateMode",
    "LoadStateViewModel",
    "MovieListViewModel",
    "ObservableProperty",
    "Signal",
]
