from .core import ItemComparator, Movie, MovieComparator, PagePayload
from .events import (
    AppendEvent,
    DropEvent,
    PagingEvent,
    PrependEvent,
    RefreshEvent,
    StateUpdateEvent,
)
from .load_state import (
    COMPLETE,
    INCOMPLETE,
    LOADING,
    CombinedLoadStates,
    LoadState,
    LoadStateError,
    LoadStates,
    Loading,
    NotLoading,
    is_terminal,
)
from .paging import (
    LoadError,
    LoadInvalid,
    LoadParams,
    LoadResult,
    LoadType,
    Page,
    PagingConfig,
    PagingState,
    total_items,
)

__all__ = [
    "AppendEvent",
    "COMPLETE",
    "CombinedLoadStates",
    "DropEvent",
    "INCOMPLETE",
    "ItemComparator",
    "LOADING",
    "LoadError",
    "LoadInvalid",
    "LoadParams",
    "LoadResult",
    "LoadState",
    "LoadStateError",
    "LoadStates",
    "LoadType",
    "Loading",
    "Movie",
    "MovieComparator",
    "NotLoading",
    "Page",
    "PagePayload",
    "PagingConfig",
    "PagingEvent",
    "PagingState",
    "PrependEvent",
    "RefreshEvent",
    "StateUpdateEvent",
    "is_terminal",
    "total_items",
]
