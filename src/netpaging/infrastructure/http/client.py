"""Process-wide HTTP client shared by every fetcher."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import httpx

from ...config import REQUEST_TIMEOUT_SEC

logger = logging.getLogger(__name__)

_client: Optional[httpx.Client] = None
_client_lock = threading.Lock()


def default_timeout(seconds: float = REQUEST_TIMEOUT_SEC) -> httpx.Timeout:
    return httpx.Timeout(connect=seconds, read=seconds, write=seconds, pool=seconds)


def shared_client() -> httpx.Client:
    """Return the lazily created shared client.

    ``httpx.Client`` is safe to use from several worker threads at once, so
    one instance (and its connection pool) serves all loads.
    """
    global _client
    with _client_lock:
        if _client is None or _client.is_closed:
            _client = httpx.Client(timeout=default_timeout(), follow_redirects=True)
            logger.debug("Created shared HTTP client")
        return _client


def close_shared_client() -> None:
    global _client
    with _client_lock:
        client, _client = _client, None
    if client is not None and not client.is_closed:
        client.close()
        logger.debug("Closed shared HTTP client")
