"""Value types exchanged between the pager and its paging sources."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, Sequence, Tuple, TypeVar, Union

from ...config import INITIAL_LOAD_SIZE, MAX_CACHE_SIZE, PAGE_SIZE, PREFETCH_DISTANCE
from ...errors import ConfigError

T = TypeVar("T")


class LoadType(Enum):
    REFRESH = "refresh"
    PREPEND = "prepend"
    APPEND = "append"


@dataclass(frozen=True)
class LoadParams:
    key: Optional[int]
    load_size: int
    load_type: LoadType


@dataclass(frozen=True)
class Page(Generic[T]):
    """A successfully loaded page.

    ``items_before``/``items_after`` are ``None`` when the source cannot tell
    how many items exist on either side.
    """

    data: Tuple[T, ...]
    prev_key: Optional[int]
    next_key: Optional[int]
    items_before: Optional[int] = None
    items_after: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.data, tuple):
            object.__setattr__(self, "data", tuple(self.data))

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class LoadError:
    cause: Exception


@dataclass(frozen=True)
class LoadInvalid:
    """The source has been superseded; the pager restarts with a new one."""


LoadResult = Union[Page, LoadError, LoadInvalid]


@dataclass(frozen=True)
class PagingConfig:
    page_size: int = PAGE_SIZE
    prefetch_distance: int = PREFETCH_DISTANCE
    enable_placeholders: bool = False
    initial_load_size: int = INITIAL_LOAD_SIZE
    # ``None`` disables eviction.
    max_size: Optional[int] = MAX_CACHE_SIZE

    def validate(self) -> None:
        """Raise :class:`ConfigError` if any invariant is violated."""

        if self.page_size < 1:
            raise ConfigError(f"page_size must be >= 1, got {self.page_size}")
        if self.prefetch_distance < 0:
            raise ConfigError(
                f"prefetch_distance must be >= 0, got {self.prefetch_distance}"
            )
        if self.initial_load_size < self.page_size:
            raise ConfigError(
                "initial_load_size must be >= page_size "
                f"({self.initial_load_size} < {self.page_size})"
            )
        if self.max_size is not None:
            minimum = self.page_size * 2 + self.prefetch_distance * 2
            if self.max_size < minimum:
                raise ConfigError(
                    "max_size must be at least page_size*2 + prefetch_distance*2 "
                    f"({self.max_size} < {minimum})"
                )


@dataclass(frozen=True)
class PagingState(Generic[T]):
    """Snapshot handed to :meth:`PagingSource.refresh_key`."""

    pages: Tuple[Page[T], ...]
    anchor_position: Optional[int]
    config: PagingConfig = field(default_factory=PagingConfig)
    leading_placeholder_count: int = 0

    def _paged_indices(self, anchor_position: int) -> Tuple[int, int]:
        page_index = 0
        index = anchor_position - self.leading_placeholder_count
        last = len(self.pages) - 1
        while page_index < last and index > len(self.pages[page_index].data) - 1:
            index -= len(self.pages[page_index].data)
            page_index += 1
        return page_index, index

    def closest_page_to_position(self, anchor_position: int) -> Optional[Page[T]]:
        """Return the loaded page containing *anchor_position*, or the nearest one."""

        if all(not page.data for page in self.pages):
            return None
        page_index, index = self._paged_indices(anchor_position)
        non_empty = [page for page in self.pages if page.data]
        if index < 0:
            return non_empty[0]
        if page_index == len(self.pages) - 1 and index > len(self.pages[-1].data) - 1:
            return non_empty[-1]
        return self.pages[page_index]

    def closest_item_to_position(self, anchor_position: int) -> Optional[Any]:
        if all(not page.data for page in self.pages):
            return None
        page_index, index = self._paged_indices(anchor_position)
        if index < 0:
            return next(page for page in self.pages if page.data).data[0]
        page = self.pages[page_index]
        if index > len(page.data) - 1:
            return next(p for p in reversed(self.pages) if p.data).data[-1]
        return page.data[index]

    @property
    def is_empty(self) -> bool:
        return all(not page.data for page in self.pages)


def total_items(pages: Sequence[Page]) -> int:
    return sum(len(page.data) for page in pages)
