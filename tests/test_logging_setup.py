import io
import logging

import pytest

from ledger_ingest.logging_setup import configure_logging, get_logger, resolve_level


@pytest.fixture
def package_logger():
    logger = logging.getLogger("ledger_ingest")
    handlers, level, propagate = logger.handlers[:], logger.level, logger.propagate
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def test_resolve_level_prefers_argument_then_env(monkeypatch):
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(30) == logging.WARNING
    monkeypatch.setenv("LEDGER_INGEST_LOG_LEVEL", "error")
    assert resolve_level() == logging.ERROR
    assert resolve_level("chatty") == logging.ERROR
    monkeypatch.delenv("LEDGER_INGEST_LOG_LEVEL")
    assert resolve_level("chatty") == logging.INFO


def test_reconfiguring_replaces_the_package_handler(package_logger):
    first, second = io.StringIO(), io.StringIO()

    configure_logging("INFO", stream=first)
    configure_logging("WARNING", stream=second)

    assert len(package_logger.handlers) == 1
    log = get_logger("ledger_ingest.tests")
    log.info("dropped")
    log.warning("kept %s", "שלום")
    assert first.getvalue() == ""
    assert "ledger_ingest.tests: kept שלום" in second.getvalue()
    assert "dropped" not in second.getvalue()
