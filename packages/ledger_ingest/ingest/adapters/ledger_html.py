"""Adapter for the bank ledger exported as an HTML table (``.xls`` download).

Header columns (Hebrew, as exported): תאריך (date), תאריך ערך (value date),
תיאור (description), אסמכתא (reference), בחובה (debit), בזכות (credit),
היתרה בש"ח (balance), תאור מורחב (extended description).

Mapping rules
-------------
- ``description``: the extended description when non-empty (it carries the
  transfer recipient), otherwise the short description.
- ``amount``: the credit when it is positive, otherwise minus the debit. Both
  columns are read as magnitudes.
- ``latest_balance`` metadata: the balance of the first valid row. Rows are
  ordered newest-first in these exports, so the first balance is the current
  one.

Rows without a date or description, with zero debit and credit, with an
unreadable date, or that repeat the header text are skipped.
"""

from __future__ import annotations

from decimal import Decimal

from ...logging_setup import get_logger
from ...models import AdapterOutput, ImportMetadata, ParsedTransaction, SourceTag
from ...normalizers import normalize_date, parse_amount, try_parse_amount
from ..html_table import DATE_KEYWORDS, MIN_CELLS, extract_table
from .base import finalize

_logger = get_logger("ledger_ingest.ingest.adapters.ledger_html")

_HEADER_DESCRIPTIONS: frozenset[str] = frozenset({"תיאור", "description"})


def _is_header_like(date_text: str, description: str) -> bool:
    lowered = date_text.lower()
    if any(k in lowered for k in DATE_KEYWORDS):
        return True
    return description.lower() in _HEADER_DESCRIPTIONS


def parse(text: str) -> AdapterOutput:
    table = extract_table(text)
    cols = table.columns

    transactions: list[ParsedTransaction] = []
    latest_balance: Decimal | None = None

    for offset, cells in enumerate(table.data_rows):
        row_no = table.data_start + offset
        if len(cells) < MIN_CELLS:
            continue

        date_text = cols.value(cells, "date")
        extended = cols.value(cells, "extended_description")
        description = extended or cols.value(cells, "description")
        debit = parse_amount(cols.value(cells, "debit"), signed=False)
        credit = parse_amount(cols.value(cells, "credit"), signed=False)
        signed_amount = credit if credit > 0 else -debit

        if not date_text or not description or (debit == 0 and credit == 0):
            continue
        if _is_header_like(date_text, description):
            continue

        tx_date = normalize_date(date_text)
        if tx_date is None:
            _logger.debug("ledger_html: row %d skipped, unreadable date %r", row_no, date_text)
            continue

        if latest_balance is None:
            latest_balance = try_parse_amount(cols.value(cells, "balance"))

        transactions.append(
            finalize(
                source_tag=SourceTag.LEDGER_HTML,
                transaction_date=tx_date,
                description=description,
                signed_amount=signed_amount,
                reference=cols.value(cells, "reference") or None,
            )
        )

    _logger.debug(
        "ledger_html: %d rows, header_found=%s, parsed %d transactions",
        len(table.rows),
        table.header_found,
        len(transactions),
    )
    metadata = ImportMetadata(latest_balance=latest_balance) if latest_balance is not None else None
    return AdapterOutput(transactions=transactions, metadata=metadata)


__all__ = ["parse"]
