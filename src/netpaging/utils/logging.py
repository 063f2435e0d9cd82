from __future__ import annotations

import logging
import sys

_INSTALLED_HANDLERS: set[str] = set()

ROOT_LOGGER_NAME = "netpaging"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger or one of its children."""

    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def ensure_console_logger(
    logger: logging.Logger,
    handler_name: str,
    *,
    level: int = logging.INFO,
    fmt: str = "%(asctime)s %(levelname)s %(name)s: %(message)s",
) -> None:
    if handler_name in _INSTALLED_HANDLERS:
        return
    for handler in logger.handlers:
        if getattr(handler, "name", None) == handler_name:
            _INSTALLED_HANDLERS.add(handler_name)
            return
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.name = handler_name
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)
    logger.setLevel(level)
    _INSTALLED_HANDLERS.add(handler_name)
