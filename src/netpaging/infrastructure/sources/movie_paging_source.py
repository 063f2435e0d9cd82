"""Paging source backed by the page-indexed movie fetcher."""

from __future__ import annotations

import logging
from typing import Optional

from ...application.concurrency import CancellationToken
from ...config import PAGE_SIZE
from ...domain.models.core import Movie, PagePayload
from ...domain.models.paging import (
    LoadError,
    LoadInvalid,
    LoadParams,
    LoadResult,
    Page,
    PagingState,
)
from ...domain.repositories import PageFetcher, PagingSource
from ...errors import FetchError, LoadCancelledError

logger = logging.getLogger(__name__)


class MoviePagingSource(PagingSource[Movie]):
    """Maps pager load requests onto 1-based remote pages.

    ``page_size`` is the size the remote serves, used for placeholder
    estimates; the requested ``load_size`` only informs the fetch.
    """

    def __init__(
        self,
        fetcher: PageFetcher[Movie],
        *,
        page_size: int = PAGE_SIZE,
        enable_placeholders: bool = False,
        request_timeout: Optional[float] = None,
    ) -> None:
        super().__init__()
        self._fetcher = fetcher
        self._page_size = page_size
        self._enable_placeholders = enable_placeholders
        self._request_timeout = request_timeout

    def load(
        self,
        params: LoadParams,
        token: Optional[CancellationToken] = None,
    ) -> LoadResult:
        page = params.key if params.key is not None else 1
        if self.invalid:
            return LoadInvalid()
        try:
            payload = self._fetcher.fetch_page(
                page, token=token, timeout=self._request_timeout
            )
        except LoadCancelledError as exc:
            logger.debug("Load of page %d cancelled: %s", page, exc)
            return LoadError(exc)
        except FetchError as exc:
            logger.error("Error loading page %d: %s", page, exc)
            return LoadError(exc)
        except Exception as exc:
            logger.exception("Unexpected failure loading page %d", page)
            return LoadError(exc)

        if self.invalid:
            return LoadInvalid()
        return self._to_page(payload, page)

    def _to_page(self, payload: PagePayload[Movie], page: int) -> Page[Movie]:
        if not payload.items:
            return Page(data=(), prev_key=None, next_key=None)

        total_pages = payload.total_pages
        prev_key = page - 1 if page > 1 else None
        next_key = page + 1 if page < total_pages else None
        items_before = items_after = None
        if self._enable_placeholders:
            items_before = max(0, (page - 1) * self._page_size)
            items_after = max(0, (total_pages - page) * self._page_size)
        return Page(
            data=tuple(payload.items),
            prev_key=prev_key,
            next_key=next_key,
            items_before=items_before,
            items_after=items_after,
        )

    def refresh_key(self, state: PagingState[Movie]) -> Optional[int]:
        anchor = state.anchor_position
        if anchor is None:
            return None
        anchor_page = state.closest_page_to_position(anchor)
        if anchor_page is None:
            return None
        if anchor_page.prev_key is not None:
            return anchor_page.prev_key + 1
        if anchor_page.next_key is not None:
            return anchor_page.next_key - 1
        return None

