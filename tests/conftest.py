"""Shared fixtures: a scripted remote, a deterministic dispatcher and pager factory."""

from __future__ import annotations

import os
from typing import Callable, Dict, List, Optional

# Qt widgets in the GUI tests must not need a display server.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from netpaging.application.concurrency import CancellationToken, ManualDispatcher
from netpaging.application.services.pager import Pager
from netpaging.domain.models.core import Movie, PagePayload
from netpaging.domain.models.paging import PagingConfig
from netpaging.domain.repositories import PageFetcher
from netpaging.infrastructure.sources.movie_paging_source import MoviePagingSource


def make_movie(movie_id: int, title: Optional[str] = None) -> Movie:
    return Movie(id=movie_id, title=title or f"Movie {movie_id}", poster_path=f"/p{movie_id}.jpg")


class FakeFetcher(PageFetcher[Movie]):
    """In-memory remote serving ``total_pages`` pages of ``page_size`` movies."""

    def __init__(self, total_pages: int = 10, page_size: int = 20) -> None:
        self.total_pages = total_pages
        self.page_size = page_size
        self.calls: List[int] = []
        self.tokens: List[Optional[CancellationToken]] = []
        self.failures: Dict[int, List[Exception]] = {}
        self.on_fetch: Optional[Callable[[int], None]] = None

    def fail(self, page: int, error: Exception, times: int = 1) -> None:
        self.failures.setdefault(page, []).extend([error] * times)

    def items_for(self, page: int) -> List[Movie]:
        if page > self.total_pages:
            return []
        start = (page - 1) * self.page_size
        return [make_movie(start + offset) for offset in range(self.page_size)]

    def fetch_page(self, page, *, token=None, timeout=None):
        self.calls.append(page)
        self.tokens.append(token)
        if self.on_fetch is not None:
            self.on_fetch(page)
        pending = self.failures.get(page)
        if pending:
            raise pending.pop(0)
        return PagePayload(
            page=page,
            items=self.items_for(page),
            total_pages=self.total_pages,
            total_results=self.total_pages * self.page_size,
        )


@pytest.fixture
def dispatcher() -> ManualDispatcher:
    return ManualDispatcher()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def make_pager(dispatcher, fetcher):
    """Return ``(pager, sources)``; *sources* lists every source the pager built."""

    def _make(
        config: Optional[PagingConfig] = None,
        *,
        initial_key: int = 1,
        strict: bool = True,
        error_handler=None,
    ):
        config = config or PagingConfig()
        sources: List[MoviePagingSource] = []

        def _factory() -> MoviePagingSource:
            source = MoviePagingSource(
                fetcher,
                page_size=fetcher.page_size,
                enable_placeholders=config.enable_placeholders,
            )
            sources.append(source)
            return source

        pager = Pager(
            config,
            _factory,
            dispatcher,
            initial_key=initial_key,
            error_handler=error_handler,
            strict=strict,
        )
        return pager, sources

    return _make
