"""Events published by the pager, in emission order, for one stream."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .load_state import LoadStates
from .paging import LoadType, Page


@dataclass(frozen=True)
class PagingEvent:
    """Base class of everything a pager emits."""


@dataclass(frozen=True)
class RefreshEvent(PagingEvent):
    pages: Tuple[Page, ...]
    placeholders_before: int
    placeholders_after: int
    source_states: LoadStates


@dataclass(frozen=True)
class PrependEvent(PagingEvent):
    pages: Tuple[Page, ...]
    placeholders_before: int
    source_states: LoadStates


@dataclass(frozen=True)
class AppendEvent(PagingEvent):
    pages: Tuple[Page, ...]
    placeholders_after: int
    source_states: LoadStates


@dataclass(frozen=True)
class DropEvent(PagingEvent):
    # PREPEND drops from the front of the window, APPEND from the end.
    load_type: LoadType
    page_count: int
    placeholders: int


@dataclass(frozen=True)
class StateUpdateEvent(PagingEvent):
    source_states: LoadStates
