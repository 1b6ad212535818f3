"""Adapter for the bank's flat CSV ledger export.

Columns (by position): date, description, amount, [value date], [reference].
The amount column already carries the bank's polarity, so it is passed through
unchanged: negative rows become expenses, positive rows income.
"""

from __future__ import annotations

from ...models import AdapterOutput, SourceTag
from .positional_csv import PositionalLayout, parse_positional

LAYOUT = PositionalLayout(source_tag=SourceTag.LEDGER_FLAT, reference_col=4)


def parse(text: str) -> AdapterOutput:
    return parse_positional(text, LAYOUT)
