"""Default configuration values for netpaging."""

from __future__ import annotations

from typing import Final

# The remote feed always serves fixed-size pages; the paging defaults below
# are derived from it so that one prefetch equals one remote page.
PAGE_SIZE: Final[int] = 20
PREFETCH_DISTANCE: Final[int] = PAGE_SIZE // 2
INITIAL_LOAD_SIZE: Final[int] = PAGE_SIZE * 3
MAX_CACHE_SIZE: Final[int] = PAGE_SIZE * 5
INITIAL_PAGE_KEY: Final[int] = 1

# ---------------------------------------------------------------------------
# Remote addressing
# ---------------------------------------------------------------------------

DEFAULT_BASE_URL: Final[str] = "https://api.themoviedb.org/3/"
DEFAULT_RESOURCE_PATH: Final[str] = "movie/popular"
IMAGE_BASE_URL: Final[str] = "https://image.tmdb.org/t/p/"
DEFAULT_POSTER_SIZE: Final[str] = "w500"

CREDENTIAL_IN_QUERY: Final[str] = "query"
CREDENTIAL_IN_HEADER: Final[str] = "header"
DEFAULT_QUERY_CREDENTIAL_NAME: Final[str] = "api_key"
DEFAULT_HEADER_CREDENTIAL_NAME: Final[str] = "Authorization"
CREDENTIAL_ENV_VAR: Final[str] = "NETPAGING_API_KEY"

# Connect, read and write budgets of the shared HTTP client.
REQUEST_TIMEOUT_SEC: Final[float] = 59.0

# ---------------------------------------------------------------------------
# Worker pool
# ---------------------------------------------------------------------------

# REFRESH, PREPEND and APPEND may each have one load in flight.
MAX_IO_THREADS: Final[int] = 3
