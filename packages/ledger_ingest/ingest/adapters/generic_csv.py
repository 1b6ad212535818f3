"""Catch-all adapter for unstructured ``date, description, amount`` CSVs."""

from __future__ import annotations

from ...models import AdapterOutput, SourceTag
from .positional_csv import PositionalLayout, parse_positional

LAYOUT = PositionalLayout(source_tag=SourceTag.GENERIC_CSV)


def parse(text: str) -> AdapterOutput:
    return parse_positional(text, LAYOUT)
