"""Resident page window of a pager generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ...domain.models.paging import Page


@dataclass(frozen=True)
class Anchor:
    """A presented position expressed relative to a resident page.

    ``offset`` may fall outside the page (placeholder region) so the anchor
    survives prepends and drops that shift presented indices.
    """

    key: int
    offset: int


@dataclass
class _Entry:
    key: int
    page: Page


class PagingWindow:
    """Contiguous run of loaded pages plus the placeholders around them."""

    def __init__(self, enable_placeholders: bool = False) -> None:
        self._enable_placeholders = enable_placeholders
        self._entries: List[_Entry] = []

    # -- inspection --------------------------------------------------------

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def pages(self) -> Tuple[Page, ...]:
        return tuple(entry.page for entry in self._entries)

    @property
    def keys(self) -> Tuple[int, ...]:
        return tuple(entry.key for entry in self._entries)

    @property
    def item_count(self) -> int:
        return sum(len(entry.page.data) for entry in self._entries)

    @property
    def first_key(self) -> Optional[int]:
        return self._entries[0].key if self._entries else None

    @property
    def last_key(self) -> Optional[int]:
        return self._entries[-1].key if self._entries else None

    @property
    def first_prev_key(self) -> Optional[int]:
        return self._entries[0].page.prev_key if self._entries else None

    @property
    def last_next_key(self) -> Optional[int]:
        return self._entries[-1].page.next_key if self._entries else None

    @property
    def placeholders_before(self) -> int:
        if not self._enable_placeholders or not self._entries:
            return 0
        return max(0, self._entries[0].page.items_before or 0)

    @property
    def placeholders_after(self) -> int:
        if not self._enable_placeholders or not self._entries:
            return 0
        return max(0, self._entries[-1].page.items_after or 0)

    def contains_key(self, key: int) -> bool:
        return any(entry.key == key for entry in self._entries)

    def is_contiguous(self) -> bool:
        for previous, current in zip(self._entries, self._entries[1:]):
            if previous.page.next_key != current.key:
                return False
            if current.page.prev_key is not None and current.page.prev_key != previous.key:
                return False
        return True

    # -- mutation ----------------------------------------------------------

    def reset(self, key: int, page: Page) -> None:
        self._entries = [_Entry(key, page)]

    def prepend(self, key: int, page: Page) -> None:
        self._entries.insert(0, _Entry(key, page))

    def append(self, key: int, page: Page) -> None:
        self._entries.append(_Entry(key, page))

    def drop_first(self) -> Page:
        return self._entries.pop(0).page

    def drop_last(self) -> Page:
        return self._entries.pop().page

    # -- presented coordinates ----------------------------------------------

    def start_of(self, key: int) -> Optional[int]:
        """Presented index of the first item of the page loaded for *key*."""
        position = self.placeholders_before
        for entry in self._entries:
            if entry.key == key:
                return position
            position += len(entry.page.data)
        return None

    def locate(self, presented_index: int) -> Optional[Anchor]:
        """Anchor *presented_index* to the closest resident page."""
        if not self._entries:
            return None
        index = presented_index - self.placeholders_before
        start = 0
        chosen = self._entries[0]
        chosen_start = 0
        for entry in self._entries:
            size = len(entry.page.data)
            if index < start + size or entry is self._entries[-1]:
                chosen, chosen_start = entry, start
                break
            start += size
        if index < 0:
            chosen, chosen_start = self._entries[0], 0
        return Anchor(chosen.key, index - chosen_start)

    def presented_index(self, anchor: Anchor) -> Optional[int]:
        start = self.start_of(anchor.key)
        if start is None:
            return None
        return start + anchor.offset
