"""Shared row loop for the fixed-position CSV formats.

Flat ledger, card statement, savings and generic exports all carry the date,
the description (or merchant) and the amount in columns 0, 1 and 2. They
differ only in sign handling and in which optional columns they read, which
callers express through :class:`PositionalLayout`.

Rows are skipped, never fatal, when they have fewer than three fields, an
unreadable date, an empty description or a zero/non-numeric amount.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal

from ...logging_setup import get_logger
from ...models import AdapterOutput, ParsedTransaction, SourceTag
from ...normalizers import normalize_date, normalize_text, parse_amount
from ..csv_lines import cell, iter_csv_rows
from .base import finalize

_logger = get_logger("ledger_ingest.ingest.adapters.positional_csv")

DATE_COL = 0
DESCRIPTION_COL = 1
AMOUNT_COL = 2
MIN_FIELDS = 3


def pass_through(amount: Decimal) -> Decimal:
    return amount


def always_expense(amount: Decimal) -> Decimal:
    return -abs(amount)


@dataclass(frozen=True, slots=True)
class PositionalLayout:
    source_tag: SourceTag
    sign: Callable[[Decimal], Decimal] = pass_through
    reference_col: int | None = None
    description_is_merchant: bool = False


def parse_positional(text: str, layout: PositionalLayout) -> AdapterOutput:
    transactions: list[ParsedTransaction] = []
    skipped = 0

    for row_no, fields in enumerate(iter_csv_rows(text)):
        if len(fields) < MIN_FIELDS:
            skipped += 1
            continue
        tx_date = normalize_date(fields[DATE_COL])
        if tx_date is None:
            # The first row is normally the header; anything later is noise.
            if row_no > 0:
                _logger.debug(
                    "%s: row %d skipped, unreadable date %r",
                    layout.source_tag,
                    row_no,
                    fields[DATE_COL],
                )
            skipped += 1
            continue
        description = normalize_text(fields[DESCRIPTION_COL])
        amount = parse_amount(fields[AMOUNT_COL])
        if not description or amount == 0:
            skipped += 1
            continue

        reference = None
        if layout.reference_col is not None:
            reference = normalize_text(cell(fields, layout.reference_col)) or None

        transactions.append(
            finalize(
                source_tag=layout.source_tag,
                transaction_date=tx_date,
                description=description,
                signed_amount=layout.sign(amount),
                merchant=description if layout.description_is_merchant else None,
                reference=reference,
            )
        )

    _logger.debug(
        "%s: parsed %d transactions, skipped %d rows",
        layout.source_tag,
        len(transactions),
        skipped,
    )
    return AdapterOutput(transactions=transactions)


__all__ = ["PositionalLayout", "always_expense", "parse_positional", "pass_through"]
