"""Diagnostic logging for outputbuddy.

Everything goes to stderr through a single handler on the ``outputbuddy``
logger. The default level is WARNING so diagnostics stay out of the way of
the child's mirrored output.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

ROOT_LOGGER = "outputbuddy"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure and return the package logger.

    Calling this again only adjusts the level; the handler is installed once.
    """
    log = logging.getLogger(ROOT_LOGGER)
    level_name = (level or os.getenv("OUTPUTBUDDY_LOG_LEVEL", "WARNING")).upper()
    resolved = logging.getLevelName(level_name.strip())
    if not isinstance(resolved, int):
        resolved = logging.WARNING
    log.setLevel(resolved)

    if not log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        log.addHandler(handler)
        log.propagate = False

    return log


def get_logger(name: str) -> logging.Logger:
    """Return a child of the package logger, e.g. ``outputbuddy.sink``."""
    if name.startswith(ROOT_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
