"""Pytest configuration for test isolation.

The ``db`` client keeps one process-wide engine bound to the first URL it
sees, and the CLI configures package logging once per process. Both are reset
around every test so each test can use its own SQLite file and ``caplog``
keeps receiving package records.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

import card_reconciliation.logging_setup as logging_setup
from db.client import reset_engine


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's .env/shell settings out of the tests."""

    for var in (
        "DATABASE_URL",
        "CARD_RECONCILIATION_LOG_LEVEL",
        "CARD_RECONCILIATION_REPORT_PAGE_SIZE",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def _isolate_engine() -> Iterator[None]:
    reset_engine()
    yield
    reset_engine()


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    pkg_logger = logging.getLogger("card_reconciliation")
    handlers = list(pkg_logger.handlers)
    level = pkg_logger.level
    propagate = pkg_logger.propagate
    configured = logging_setup._CONFIGURED
    yield
    for h in list(pkg_logger.handlers):
        if h not in handlers:
            h.close()
    pkg_logger.handlers[:] = handlers
    pkg_logger.setLevel(level)
    pkg_logger.propagate = propagate
    logging_setup._CONFIGURED = configured
