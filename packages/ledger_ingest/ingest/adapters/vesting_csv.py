"""Adapter for equity-vesting portfolio CSV exports.

Rows are grants, not cash movements. Typical header::

    Grant Name, Grant Date, Granted, Sellable, Next Vesting, Estimated Value, Open Orders

The header may sit below a section title (e.g. ``RS/RSU``), so it is located
by requiring one grant-identity keyword and one quantity keyword within the
first ten rows. Each valid grant becomes a synthetic ``investment``
transaction whose amount is the grant's estimated value, and the batch
metadata carries the portfolio totals used to refresh the account balance.

Unlike the ledger adapters, grant keys are salted with the import time (see
:func:`ledger_ingest.dedup.vesting_grant_key`).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal

from ...dedup import vesting_grant_key
from ...logging_setup import get_logger
from ...models import AdapterOutput, ImportMetadata, ParsedTransaction, SourceTag, TransactionType
from ...normalizers import normalize_date, normalize_text, parse_amount
from ..csv_lines import cell, iter_csv_rows
from .base import finalize

_logger = get_logger("ledger_ingest.ingest.adapters.vesting_csv")

HEADER_SCAN_ROWS = 10
_IDENTITY_KEYWORDS: tuple[str, ...] = ("grant name", "grant date")
_QUANTITY_KEYWORDS: tuple[str, ...] = ("granted", "sellable")
_SECTION_MARKERS: tuple[str, ...] = ("rs/rsu", "portfolio")

# Keyword lists are in priority order: the most specific spelling is tried
# against every column before falling back to the looser one.
_COLUMN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "grant_name": ("grant name", "grant"),
    "grant_date": ("grant date", "date"),
    "granted": ("granted", "total"),
    "sellable": ("sellable", "available"),
    "next_vesting": ("next vesting", "vesting", "next"),
    "estimated_value": ("estimated value", "value", "estimated"),
}

TAGS: tuple[str, ...] = ("vesting", "equity")


def _find_header(rows: Sequence[list[str]]) -> int:
    for i, fields in enumerate(rows[:HEADER_SCAN_ROWS]):
        joined = ",".join(fields).lower()
        if any(k in joined for k in _IDENTITY_KEYWORDS) and any(
            k in joined for k in _QUANTITY_KEYWORDS
        ):
            return i
    return 0


def find_column(header: Sequence[str], keywords: Sequence[str], *, taken: set[int]) -> int:
    lowered = [h.lower().strip() for h in header]
    for keyword in keywords:
        for idx, col in enumerate(lowered):
            if idx not in taken and keyword in col:
                return idx
    return -1


def resolve_columns(header: Sequence[str]) -> dict[str, int]:
    columns: dict[str, int] = {}
    taken: set[int] = set()
    for role, keywords in _COLUMN_KEYWORDS.items():
        idx = find_column(header, keywords, taken=taken)
        columns[role] = idx
        if idx != -1:
            taken.add(idx)
    return columns


def _fmt(d: Decimal) -> str:
    return f"{d.normalize():f}"


def parse(
    text: str,
    *,
    clock: Callable[[], int] | None = None,
    today: date | None = None,
) -> AdapterOutput:
    rows = list(iter_csv_rows(text))
    if not rows:
        return AdapterOutput(
            metadata=ImportMetadata(
                total_estimated_value=Decimal(0), total_sellable_shares=Decimal(0), grant_count=0
            )
        )

    header_idx = _find_header(rows)
    cols = resolve_columns(rows[header_idx])
    fallback_date = (today or date.today()).isoformat()
    key_kwargs = {"clock": clock} if clock is not None else {}

    transactions: list[ParsedTransaction] = []
    total_value = Decimal(0)
    total_sellable = Decimal(0)

    for fields in rows[header_idx + 1 :]:
        joined = ",".join(fields).lower()
        if any(m in joined for m in _SECTION_MARKERS):
            continue
        if len(fields) < 3:
            continue

        name = normalize_text(cell(fields, cols["grant_name"]))
        grant_date_text = normalize_text(cell(fields, cols["grant_date"]))
        granted = parse_amount(cell(fields, cols["granted"]))
        sellable = parse_amount(cell(fields, cols["sellable"]))
        next_vesting = normalize_text(cell(fields, cols["next_vesting"]))
        estimated_value = parse_amount(cell(fields, cols["estimated_value"]))

        if not name or (granted == 0 and sellable == 0 and estimated_value == 0):
            continue

        total_value += estimated_value
        total_sellable += sellable

        grant_date = normalize_date(grant_date_text) or fallback_date
        description = f"Equity grant {name}"
        if grant_date_text:
            description += f" (Granted: {grant_date_text})"
        description += f" | Next Vesting: {next_vesting}" if next_vesting else " | Fully Vested"
        notes = (
            f"Grant: {name}, Granted: {_fmt(granted)} shares, "
            f"Sellable (Vested): {_fmt(sellable)} shares, "
            f"Next Vesting: {next_vesting or 'Fully Vested'}, "
            f"Estimated Value: {_fmt(estimated_value)} ILS"
        )

        transactions.append(
            finalize(
                source_tag=SourceTag.VESTING_CSV,
                transaction_date=grant_date,
                description=description,
                signed_amount=abs(estimated_value),
                tx_type=TransactionType.INVESTMENT,
                dedup_key=vesting_grant_key(
                    grant_name=name, grant_date=grant_date, granted=granted, **key_kwargs
                ),
                notes=notes,
                tags=TAGS,
            )
        )

    _logger.debug(
        "vesting_csv: header row %d columns=%s grants=%d", header_idx, cols, len(transactions)
    )
    metadata = ImportMetadata(
        total_estimated_value=total_value,
        total_sellable_shares=total_sellable,
        grant_count=len(transactions),
    )
    return AdapterOutput(transactions=transactions, metadata=metadata)


__all__ = ["parse", "resolve_columns"]
