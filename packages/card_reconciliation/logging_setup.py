"""Centralized logging configuration for the ``card_reconciliation`` package.

- ``configure_logging(...)`` attaches a ``StreamHandler`` to the package root
  logger (``"card_reconciliation"``) exactly once. Entrypoints (the CLI) call
  it at startup.
- ``get_logger(name)`` returns a child logger and makes sure the package root
  has a ``NullHandler`` while unconfigured, so library use stays silent.

Library modules never attach handlers themselves; they call
``get_logger("card_reconciliation.<module>")``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "card_reconciliation"
_LEVEL_ENV = "CARD_RECONCILIATION_LOG_LEVEL"
_DEFAULT_FMT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str) and level.strip():
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
    env_val = os.getenv(_LEVEL_ENV)
    if env_val and env_val != level:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package root logger once per process.

    Parameters
    ----------
    level:
        ``int`` or level name. When ``None``, ``CARD_RECONCILIATION_LOG_LEVEL``
        is consulted, then ``INFO``.
    fmt:
        Optional format string.
    stream:
        Target of the console handler (``sys.stderr`` by default so CSV output
        written to stdout stays clean).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    formatter = logging.Formatter(fmt or _DEFAULT_FMT)

    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    logger.setLevel(resolved)
    # Avoid double emission via the root logger.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
