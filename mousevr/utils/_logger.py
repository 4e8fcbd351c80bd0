"""Logging helpers shared by every mousevr module."""

from __future__ import annotations

import functools
import logging
import sys
from typing import Any, Callable, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

ROOT_LOGGER = "mousevr"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def _configure_root(level: int = logging.INFO) -> None:
    global _configured
    if _configured:
        return
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the ``mousevr`` hierarchy."""
    _configure_root()
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def set_level(level: int | str) -> None:
    _configure_root()
    logging.getLogger(ROOT_LOGGER).setLevel(level)


def log_this_fr(func: F) -> F:
    """Debug-log entry and exit of ``func``."""
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        logger.debug("-> %s", func.__qualname__)
        result = func(*args, **kwargs)
        logger.debug("<- %s", func.__qualname__)
        return result

    return wrapper  # type: ignore[return-value]
