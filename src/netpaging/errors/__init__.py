"""Custom exception hierarchy for netpaging."""

from __future__ import annotations

from typing import Optional


class NetPagingError(Exception):
    """Base class for all custom errors raised by netpaging."""


# --- Fetch errors (surfaced through LoadState.Error) ---

class FetchError(NetPagingError):
    """Base class for failures of a single page fetch."""


class NetworkError(FetchError):
    """Raised when the transport fails before a response is received."""


class RequestTimeoutError(FetchError):
    """Raised when a page fetch exceeds its deadline."""


class HttpStatusError(FetchError):
    """Raised when the remote answers with a non-success status."""

    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"HTTP {status_code}")


class DecodeError(FetchError):
    """Raised when the response body does not match the page contract."""


# --- Internal paging errors ---

class LoadCancelledError(NetPagingError):
    """Raised inside a load when its cancellation token fires."""


class PagingLogicError(NetPagingError):
    """Raised when the pager observes an impossible window state."""


# --- Configuration errors ---

class ConfigError(NetPagingError):
    """Raised when a paging configuration violates its invariants."""


class SettingsError(ConfigError):
    """Base class for settings related failures."""


class SettingsLoadError(SettingsError):
    """Raised when the settings file cannot be parsed or loaded."""


class SettingsValidationError(SettingsError):
    """Raised when settings data fails schema validation."""
