"""Load paging settings from defaults, a JSON file, a mapping and the environment."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from jsonschema import ValidationError

from ..config import CREDENTIAL_ENV_VAR, CREDENTIAL_IN_HEADER, DEFAULT_HEADER_CREDENTIAL_NAME
from ..domain.models.paging import PagingConfig
from ..errors import SettingsLoadError, SettingsValidationError
from ..infrastructure.http.movie_fetcher import FetcherConfig
from .schema import merge_with_defaults

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PagingSettings:
    page_size: int
    prefetch_distance: int
    initial_load_size: int
    max_size: Optional[int]
    enable_placeholders: bool
    initial_key: int
    request_timeout: float
    base_url: str
    resource_path: str
    credential: Optional[str]
    credential_location: str
    credential_name: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PagingSettings:
        return cls(
            page_size=data["pageSize"],
            prefetch_distance=data["prefetchDistance"],
            initial_load_size=data["initialLoadSize"],
            max_size=data["maxSize"],
            enable_placeholders=data["enablePlaceholders"],
            initial_key=data["initialKey"],
            request_timeout=float(data["requestTimeout"]),
            base_url=data["baseUrl"],
            resource_path=data["resourcePath"],
            credential=data["credential"],
            credential_location=data["credentialLocation"],
            credential_name=data["credentialName"],
        )

    def paging_config(self) -> PagingConfig:
        return PagingConfig(
            page_size=self.page_size,
            prefetch_distance=self.prefetch_distance,
            enable_placeholders=self.enable_placeholders,
            initial_load_size=self.initial_load_size,
            max_size=self.max_size,
        )

    def fetcher_config(self) -> FetcherConfig:
        return FetcherConfig(
            base_url=self.base_url,
            resource_path=self.resource_path,
            credential=self.credential,
            credential_location=self.credential_location,
            credential_name=self.credential_name,
            request_timeout=self.request_timeout,
        )


def _read_settings_file(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise SettingsLoadError(f"Cannot read settings from {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise SettingsLoadError(f"Settings file {path} must contain a JSON object")
    return payload


def load_settings(
    payload: Optional[Mapping[str, Any]] = None,
    *,
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> PagingSettings:
    """Return validated settings.

    Later sources win: defaults, then *path*, then *payload*.  The credential
    falls back to ``NETPAGING_API_KEY`` when none was given explicitly.
    Raises :class:`SettingsLoadError` for unreadable files and
    :class:`SettingsValidationError` (a ``ConfigError``) for invalid values.
    """

    data: dict[str, Any] = {}
    if path is not None:
        data.update(_read_settings_file(Path(path)))
    if payload:
        data.update(payload)

    env = os.environ if environ is None else environ
    env_credential = env.get(CREDENTIAL_ENV_VAR)
    if env_credential and not data.get("credential"):
        data["credential"] = env_credential
    if data.get("credentialLocation") == CREDENTIAL_IN_HEADER and "credentialName" not in data:
        data["credentialName"] = DEFAULT_HEADER_CREDENTIAL_NAME

    try:
        merged = merge_with_defaults(data)
    except ValidationError as exc:
        raise SettingsValidationError(exc.message) from exc

    settings = PagingSettings.from_mapping(merged)
    # Cross-field invariants are enforced by PagingConfig itself.
    settings.paging_config().validate()
    logger.debug(
        "Loaded paging settings: page_size=%d prefetch=%d max_size=%s placeholders=%s",
        settings.page_size,
        settings.prefetch_distance,
        settings.max_size,
        settings.enable_placeholders,
    )
    return settings
