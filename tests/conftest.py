"""Pytest configuration for test isolation.

Puts the workspace source roots on ``sys.path`` so the suite runs from a plain
checkout, and strips every environment variable the package reads so a
developer's ``.env`` or shell (API keys, database URL, rule files) can never
leak into a test.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
# Local source roots precede site-packages so the working tree is what runs.
sys.path[:0] = [
    p
    for p in (str(_ROOT / "packages"), str(_ROOT / "libs" / "db" / "src"), str(_ROOT))
    if p not in sys.path
]

_ISOLATED_VARS = ("OPENAI_API_KEY", "DATABASE_URL")


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name in _ISOLATED_VARS or name.startswith("LEDGER_INGEST_"):
            monkeypatch.delenv(name, raising=False)
