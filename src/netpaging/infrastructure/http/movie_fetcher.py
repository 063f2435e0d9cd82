"""Remote fetcher for the page-indexed movie feed."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx

from ...application.concurrency import CancellationToken
from ...config import (
    CREDENTIAL_IN_HEADER,
    CREDENTIAL_IN_QUERY,
    DEFAULT_BASE_URL,
    DEFAULT_QUERY_CREDENTIAL_NAME,
    DEFAULT_RESOURCE_PATH,
    REQUEST_TIMEOUT_SEC,
)
from ...domain.models.core import Movie, PagePayload
from ...domain.repositories import PageFetcher
from ...errors import (
    DecodeError,
    HttpStatusError,
    LoadCancelledError,
    NetworkError,
    RequestTimeoutError,
)
from .client import default_timeout, shared_client

logger = logging.getLogger(__name__)

CredentialProvider = Callable[[], Optional[str]]


@dataclass(frozen=True)
class FetcherConfig:
    base_url: str = DEFAULT_BASE_URL
    resource_path: str = DEFAULT_RESOURCE_PATH
    credential: Optional[str] = None
    credential_location: str = CREDENTIAL_IN_QUERY
    credential_name: str = DEFAULT_QUERY_CREDENTIAL_NAME
    request_timeout: float = REQUEST_TIMEOUT_SEC

    @property
    def page_url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.resource_path.lstrip("/")


class MoviePageFetcher(PageFetcher[Movie]):
    """Fetch one page of ``GET <base>/<resource>?page=N`` per call.

    The credential is attached to every request, either as a query parameter
    or as a header (``Bearer`` scheme for ``Authorization``).  The body is
    streamed: cancelling the token closes the response, and the per-load
    deadline is checked between chunks.
    """

    def __init__(
        self,
        config: Optional[FetcherConfig] = None,
        *,
        client: Optional[httpx.Client] = None,
        credential_provider: Optional[CredentialProvider] = None,
        item_decoder: Callable[[Mapping[str, Any]], Movie] = Movie.from_json,
    ) -> None:
        self._config = config or FetcherConfig()
        self._client = client
        self._credential_provider = credential_provider
        self._decode_item = item_decoder

    @property
    def config(self) -> FetcherConfig:
        return self._config

    def fetch_page(
        self,
        page: int,
        *,
        token: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> PagePayload[Movie]:
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        if token is not None:
            token.raise_if_cancelled()

        seconds = timeout if timeout is not None else self._config.request_timeout
        deadline = time.monotonic() + seconds
        params, headers = self._request_parts(page)
        client = self._client or shared_client()

        body = bytearray()
        try:
            with client.stream(
                "GET",
                self._config.page_url,
                params=params,
                headers=headers,
                timeout=default_timeout(seconds),
            ) as response:
                if token is not None:
                    # Closing the response from the cancelling thread fails the blocked read.
                    token.on_cancel(response.close)
                if response.status_code >= 400:
                    raise HttpStatusError(
                        response.status_code,
                        f"HTTP {response.status_code} for page {page}",
                    )
                for chunk in response.iter_bytes():
                    if token is not None:
                        token.raise_if_cancelled()
                    if time.monotonic() > deadline:
                        raise RequestTimeoutError(
                            f"page {page} exceeded its {seconds:g}s deadline"
                        )
                    body.extend(chunk)
        except (httpx.HTTPError, httpx.StreamError) as exc:
            if token is not None and token.cancelled:
                raise LoadCancelledError(f"page {page} cancelled while reading") from exc
            if isinstance(exc, httpx.TimeoutException):
                raise RequestTimeoutError(f"page {page} timed out after {seconds:g}s") from exc
            raise NetworkError(f"page {page}: {exc}") from exc

        if token is not None:
            token.raise_if_cancelled()
        return self._decode(page, bytes(body))

    def _request_parts(self, page: int) -> tuple[Dict[str, Any], Dict[str, str]]:
        params: Dict[str, Any] = {"page": page}
        headers: Dict[str, str] = {"Accept": "application/json"}
        credential = (
            self._credential_provider()
            if self._credential_provider is not None
            else self._config.credential
        )
        if not credential:
            return params, headers

        name = self._config.credential_name
        if self._config.credential_location == CREDENTIAL_IN_HEADER:
            if name.lower() == "authorization":
                headers[name] = f"Bearer {credential}"
            else:
                headers[name] = credential
        else:
            params[name] = credential
        return params, headers

    def _decode(self, page: int, body: bytes) -> PagePayload[Movie]:
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise DecodeError(f"page {page}: body is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise DecodeError(f"page {page}: expected a JSON object")

        results = payload.get("results")
        if not isinstance(results, list):
            raise DecodeError(f"page {page}: response has no 'results' array")
        try:
            page_number = int(payload["page"])
            total_pages = int(payload["total_pages"])
        except (KeyError, TypeError, ValueError) as exc:
            raise DecodeError(f"page {page}: missing or invalid page metadata") from exc
        try:
            total_results = int(payload.get("total_results") or 0)
        except (TypeError, ValueError):
            total_results = 0

        items: List[Movie] = []
        for index, raw in enumerate(results):
            try:
                items.append(self._decode_item(raw))
            except (KeyError, TypeError, ValueError) as exc:
                raise DecodeError(f"page {page}: result {index} is malformed") from exc

        logger.debug("Decoded page %d: %d items of %d pages", page_number, len(items), total_pages)
        return PagePayload(
            page=page_number,
            items=items,
            total_pages=total_pages,
            total_results=total_results,
        )
