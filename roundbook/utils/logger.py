"""Structured logging utilities."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from roundbook.utils.config import get_settings


ROOT_LOGGER_NAME = "roundbook"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stdout handler to the package logger once.

    Only the `roundbook` logger tree is configured; uvicorn and other
    libraries keep their own handlers. Passing `level` later adjusts the
    level without adding another handler.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    resolved_level = (level or get_settings().log_level).upper()
    root.setLevel(resolved_level)

    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger inside the `roundbook` tree for the requested module."""
    if not logging.getLogger(ROOT_LOGGER_NAME).handlers:
        configure_logging()
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
