"""Schema helpers for the paging configuration surface."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator

from ..config import (
    CREDENTIAL_IN_HEADER,
    CREDENTIAL_IN_QUERY,
    DEFAULT_BASE_URL,
    DEFAULT_QUERY_CREDENTIAL_NAME,
    DEFAULT_RESOURCE_PATH,
    INITIAL_LOAD_SIZE,
    INITIAL_PAGE_KEY,
    MAX_CACHE_SIZE,
    PAGE_SIZE,
    PREFETCH_DISTANCE,
    REQUEST_TIMEOUT_SEC,
)

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "netpaging/settings.schema.json",
    "type": "object",
    "properties": {
        "pageSize": {"type": "integer", "minimum": 1},
        "prefetchDistance": {"type": "integer", "minimum": 0},
        "initialLoadSize": {"type": "integer", "minimum": 1},
        "maxSize": {"type": ["integer", "null"], "minimum": 1},
        "enablePlaceholders": {"type": "boolean"},
        "initialKey": {"type": "integer", "minimum": 1},
        "requestTimeout": {"type": "number", "exclusiveMinimum": 0},
        "baseUrl": {"type": "string", "pattern": "^https?://"},
        "resourcePath": {"type": "string", "minLength": 1},
        "credential": {"type": ["string", "null"]},
        "credentialLocation": {
            "type": "string",
            "enum": [CREDENTIAL_IN_QUERY, CREDENTIAL_IN_HEADER],
        },
        "credentialName": {"type": "string", "minLength": 1},
    },
    "additionalProperties": False,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "pageSize": PAGE_SIZE,
    "prefetchDistance": PREFETCH_DISTANCE,
    "initialLoadSize": INITIAL_LOAD_SIZE,
    "maxSize": MAX_CACHE_SIZE,
    "enablePlaceholders": False,
    "initialKey": INITIAL_PAGE_KEY,
    "requestTimeout": REQUEST_TIMEOUT_SEC,
    "baseUrl": DEFAULT_BASE_URL,
    "resourcePath": DEFAULT_RESOURCE_PATH,
    "credential": None,
    "credentialLocation": CREDENTIAL_IN_QUERY,
    "credentialName": DEFAULT_QUERY_CREDENTIAL_NAME,
}

_validator = Draft202012Validator(SETTINGS_SCHEMA)


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS` and validate the result."""

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            merged[key] = value
    _validator.validate(merged)
    return merged


def validate_settings(data: dict[str, Any]) -> None:
    """Validate *data* against the settings schema."""

    _validator.validate(data)


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "merge_with_defaults", "validate_settings"]
