"""Centralised logging helpers for rpc-bindgen."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

_LOGGER_CACHE: Dict[str, logging.Logger] = {}

LOG_LEVEL_ENV = "RPC_BINDGEN_LOG_LEVEL"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def get_logger(name: str = "rpc_bindgen") -> logging.Logger:
    """Return a cached :class:`logging.Logger` instance."""

    if name not in _LOGGER_CACHE:
        _LOGGER_CACHE[name] = logging.getLogger(name)
    return _LOGGER_CACHE[name]


def log_event(
    message: str,
    *,
    event: str,
    data: Optional[Dict[str, Any]] = None,
    level: int = logging.INFO,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Emit a structured log entry carrying an event name and payload."""

    target_logger = logger or get_logger()
    target_logger.log(
        level,
        message,
        extra={"rpc_bindgen_event": event, "rpc_bindgen_data": dict(data or {})},
    )


def configure_logging(level: Optional[str] = None) -> int:
    """
    Attach a console handler to the ``rpc_bindgen`` logger.

    The level comes from ``level``, then ``RPC_BINDGEN_LOG_LEVEL``, then
    defaults to ``warning``. Returns the numeric level applied.
    """

    name = (level or os.getenv(LOG_LEVEL_ENV, "warning")).lower()
    numeric_level = _LEVELS.get(name, logging.WARNING)

    root = get_logger("rpc_bindgen")
    root.setLevel(numeric_level)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root.addHandler(handler)
        # Avoid duplicate lines through the root logger
        root.propagate = False
    return numeric_level
