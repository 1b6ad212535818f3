"""Adapter for credit-card statement CSV exports.

Columns (by position): date, merchant, amount, [card category]. Every row is a
card charge, so the amount is stored as an expense regardless of the sign in
the file. The merchant doubles as the description.
"""

from __future__ import annotations

from ...models import AdapterOutput, SourceTag
from .positional_csv import PositionalLayout, always_expense, parse_positional

LAYOUT = PositionalLayout(
    source_tag=SourceTag.CARD_CSV,
    sign=always_expense,
    description_is_merchant=True,
)


def parse(text: str) -> AdapterOutput:
    return parse_positional(text, LAYOUT)
