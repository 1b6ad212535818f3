"""Helpers shared by the per-source adapters.

Adapters work with a signed amount while parsing (expense negative, income or
investment positive). :func:`finalize` is the single place where that sign is
turned into a non-negative magnitude plus an explicit ``TransactionType``.
"""

from __future__ import annotations

from decimal import Decimal

from ...dedup import compute_dedup_key
from ...models import ParsedTransaction, SourceTag, TransactionType


def type_for_signed_amount(amount: Decimal) -> TransactionType:
    return TransactionType.INCOME if amount >= 0 else TransactionType.EXPENSE


def finalize(
    *,
    source_tag: SourceTag,
    transaction_date: str,
    description: str,
    signed_amount: Decimal,
    merchant: str | None = None,
    reference: str | None = None,
    tx_type: TransactionType | None = None,
    dedup_key: str | None = None,
    notes: str | None = None,
    tags: tuple[str, ...] = (),
) -> ParsedTransaction:
    """Build the outgoing record from an adapter's signed draft values."""

    resolved_type = tx_type or type_for_signed_amount(signed_amount)
    key = dedup_key or compute_dedup_key(
        source_tag=source_tag,
        transaction_date=transaction_date,
        amount=signed_amount,
        reference=reference,
        description=description,
    )
    return ParsedTransaction(
        transaction_date=transaction_date,
        description=description,
        amount=abs(signed_amount),
        type=resolved_type,
        dedup_key=key,
        merchant=merchant or None,
        reference=reference or None,
        notes=notes,
        tags=tags,
    )


__all__ = ["finalize", "type_for_signed_amount"]
