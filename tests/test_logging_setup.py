from __future__ import annotations

import io
import logging

import pytest

from card_reconciliation.logging_setup import configure_logging, get_logger


def test_configure_logging_once_with_env_level(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CARD_RECONCILIATION_LOG_LEVEL", "warning")
    buf = io.StringIO()

    configure_logging(stream=buf, fmt="%(levelname)s %(name)s %(message)s")
    configure_logging("DEBUG", stream=io.StringIO())  # no-op once configured

    log = get_logger("card_reconciliation.test")
    log.info("hidden")
    log.warning("shown %d", 1)

    assert buf.getvalue() == "WARNING card_reconciliation.test shown 1\n"
    assert logging.getLogger("card_reconciliation").propagate is False


def test_unconfigured_package_logger_is_silent():
    get_logger("card_reconciliation.quiet")
    pkg = logging.getLogger("card_reconciliation")
    assert any(isinstance(h, logging.NullHandler) for h in pkg.handlers)


def test_configure_logging_attaches_a_single_stream_handler():
    buf = io.StringIO()

    configure_logging("INFO", stream=buf)

    handlers = logging.getLogger("card_reconciliation").handlers
    assert len(handlers) == 1
    assert type(handlers[0]) is logging.StreamHandler
    assert handlers[0].stream is buf
