"""Adapter for savings-account CSV exports.

Columns (by position): date, description, amount, [balance]. Deposits are
positive and withdrawals negative in the source; the sign is kept as-is.
"""

from __future__ import annotations

from ...models import AdapterOutput, SourceTag
from .positional_csv import PositionalLayout, parse_positional

LAYOUT = PositionalLayout(source_tag=SourceTag.SAVINGS_CSV)


def parse(text: str) -> AdapterOutput:
    return parse_positional(text, LAYOUT)
