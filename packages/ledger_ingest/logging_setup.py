"""Logging for ``ledger_ingest``.

Modules log through ``get_logger("ledger_ingest.<module>")`` and never add
handlers of their own. Output is switched on by :func:`configure_logging`,
which the CLI calls from its root callback. Calling it again (another CLI
invocation in the same process, or a test) replaces the package handler instead
of stacking a second one.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

ROOT_LOGGER = "ledger_ingest"
LEVEL_ENV = "LEDGER_INGEST_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HANDLER_NAME = "ledger_ingest.stream"


def resolve_level(level: int | str | None = None) -> int:
    """Level from the argument, else ``$LEDGER_INGEST_LOG_LEVEL``, else INFO.

    Unknown level names are ignored rather than rejected.
    """

    for candidate in (level, os.getenv(LEVEL_ENV)):
        if isinstance(candidate, int):
            return candidate
        name = (candidate or "").strip().upper()
        if name.isdigit():
            return int(name)
        value = logging.getLevelNamesMapping().get(name)
        if value is not None:
            return value
    return logging.INFO


def configure_logging(level: int | str | None = None, *, stream: IO[str] | None = None) -> None:
    """Send ``ledger_ingest`` records to ``stream`` (stderr by default)."""

    logger = logging.getLogger(ROOT_LOGGER)
    resolved = resolve_level(level)
    target = stream if stream is not None else sys.stderr

    for stale in logger.handlers[:]:
        if isinstance(stale, logging.NullHandler) or stale.get_name() == _HANDLER_NAME:
            logger.removeHandler(stale)

    handler = logging.StreamHandler(target)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(resolved)
    logger.addHandler(handler)
    logger.setLevel(resolved)
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger; silent until :func:`configure_logging` runs."""

    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
