"""Wiring helpers that assemble the paging stack for an application."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import httpx

from .application.concurrency import Dispatcher, Scope
from .application.services.pager import Pager
from .domain.models.core import Movie
from .errors.handler import ErrorHandler
from .infrastructure.http.movie_fetcher import CredentialProvider, MoviePageFetcher
from .infrastructure.sources.movie_paging_source import MoviePagingSource
from .settings.loader import PagingSettings, load_settings
from .utils.logging import ensure_console_logger, get_logger

if TYPE_CHECKING:  # pragma: no cover - only for type checking
    from .gui.viewmodels.movie_list_viewmodel import MovieListViewModel


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    logger = get_logger()
    ensure_console_logger(logger, "netpaging-console", level=level)
    return logger


def create_movie_pager(
    settings: PagingSettings,
    dispatcher: Dispatcher,
    *,
    client: Optional[httpx.Client] = None,
    credential_provider: Optional[CredentialProvider] = None,
    error_handler: Optional[ErrorHandler] = None,
    strict: bool = __debug__,
) -> Pager[Movie]:
    """Build a pager whose sources share one fetcher (and HTTP client)."""

    fetcher = MoviePageFetcher(
        settings.fetcher_config(),
        client=client,
        credential_provider=credential_provider,
    )

    def _create_source() -> MoviePagingSource:
        return MoviePagingSource(
            fetcher,
            page_size=settings.page_size,
            enable_placeholders=settings.enable_placeholders,
            request_timeout=settings.request_timeout,
        )

    return Pager(
        settings.paging_config(),
        _create_source,
        dispatcher,
        initial_key=settings.initial_key,
        error_handler=error_handler,
        strict=strict,
    )


def create_movie_list_view_model(
    settings: PagingSettings,
    dispatcher: Dispatcher,
    *,
    client: Optional[httpx.Client] = None,
    credential_provider: Optional[CredentialProvider] = None,
    error_handler: Optional[ErrorHandler] = None,
    scope: Optional[Scope] = None,
) -> "MovieListViewModel":
    from .gui.viewmodels.movie_list_viewmodel import MovieListViewModel

    pager = create_movie_pager(
        settings,
        dispatcher,
        client=client,
        credential_provider=credential_provider,
        error_handler=error_handler,
    )
    return MovieListViewModel(pager, dispatcher, scope=scope)


@dataclass
class AppContext:
    """Container object shared across GUI components."""

    settings: PagingSettings = field(default_factory=load_settings)
    error_handler: ErrorHandler = field(default_factory=lambda: ErrorHandler(get_logger()))

    def movie_list(self, dispatcher: Dispatcher) -> "MovieListViewModel":
        return create_movie_list_view_model(
            self.settings,
            dispatcher,
            error_handler=self.error_handler,
        )
