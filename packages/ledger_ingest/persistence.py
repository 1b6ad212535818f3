# ruff: noqa: I001
"""Persistence integration for ledger_ingest.

Functions here write imported transactions and account facts to the shared
database owned by ``libs/db``. They take an open ``Session`` and never commit;
transaction boundaries belong to the caller (see ``db.client.session_scope``).

Scope:
- Insert transactions into ``ledger_transactions``, skipping rows whose
  ``(account_id, dedup_key)`` already exists. Existing rows are never
  updated, so manual edits survive a re-import.
- Refresh account balance and import metadata from a batch.
- Re-run the local categorization tiers over stored rows.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from db.models.ledger import LedgerAccount, LedgerTransaction
from .categories import DEFAULT_CATEGORY
from .categorization import CategorizationEngine
from .logging_setup import get_logger
from .models import ClassificationRequest, ImportMetadata, ParsedTransaction, SourceTag

_logger = get_logger("ledger_ingest.persistence")

_CHUNK_SIZE = 200


def _to_decimal_2(d: Decimal) -> Decimal:
    return d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _insert_for(session: Session):
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return pg_insert
    if name == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"upsert is not supported for dialect {name!r}")


def _row(account_id: str, source_tag: SourceTag, tx: ParsedTransaction) -> dict[str, Any]:
    return {
        "account_id": account_id,
        "import_source": source_tag.value,
        "dedup_key": tx.dedup_key,
        "transaction_date": date.fromisoformat(tx.transaction_date),
        "description": tx.description,
        "merchant": tx.merchant,
        "amount": _to_decimal_2(tx.amount),
        "type": tx.type.value,
        "reference": tx.reference,
        "category_suggestion": tx.category_suggestion,
        "confidence": tx.confidence,
        "notes": tx.notes,
        "tags": list(tx.tags) or None,
    }


def ensure_account(session: Session, account_id: str, *, name: str | None = None) -> LedgerAccount:
    """Return the account row, creating an empty one when missing."""

    account = session.get(LedgerAccount, account_id)
    if account is None:
        account = LedgerAccount(id=account_id, name=name or account_id)
        session.add(account)
        session.flush()
    return account


def upsert_transactions(
    session: Session,
    *,
    account_id: str,
    source_tag: SourceTag | str,
    transactions: Iterable[ParsedTransaction],
) -> int:
    """Insert transactions, skipping duplicates; return the inserted count.

    Idempotency: ``ON CONFLICT (account_id, dedup_key) DO NOTHING``. Keys that
    repeat within the same batch are collapsed to their first occurrence.
    """

    tag = SourceTag.resolve(source_tag)
    rows: list[dict[str, Any]] = []
    seen: set[str] = set()
    for tx in transactions:
        if tx.dedup_key in seen:
            continue
        seen.add(tx.dedup_key)
        rows.append(_row(account_id, tag, tx))
    if not rows:
        return 0

    insert = _insert_for(session)
    inserted = 0
    for start in range(0, len(rows), _CHUNK_SIZE):
        chunk = rows[start : start + _CHUNK_SIZE]
        stmt = (
            insert(LedgerTransaction)
            .values(chunk)
            .on_conflict_do_nothing(index_elements=["account_id", "dedup_key"])
            .returning(LedgerTransaction.id)
        )
        inserted += len(session.execute(stmt).all())

    _logger.info(
        "persistence:upsert account=%s source=%s rows=%d inserted=%d skipped=%d",
        account_id,
        tag,
        len(rows),
        inserted,
        len(rows) - inserted,
    )
    return inserted


def apply_import_metadata(
    session: Session,
    *,
    account_id: str,
    source_tag: SourceTag | str,
    metadata: ImportMetadata | None,
    transactions: Sequence[ParsedTransaction] = (),
    today: date | None = None,
) -> LedgerAccount:
    """Refresh account-level facts after an import.

    - Vesting portfolio: balance = total estimated value; sellable shares and
      grant count go into ``extra``.
    - Table-format ledger: balance = the file's latest balance; the last
      import date is the newest transaction date in the batch.
    - Everything else only stamps ``last_import_date`` with today.
    """

    tag = SourceTag.resolve(source_tag)
    account = ensure_account(session, account_id)
    stamp = today or date.today()

    if tag is SourceTag.VESTING_CSV and metadata is not None:
        if metadata.total_estimated_value is not None:
            account.balance = _to_decimal_2(metadata.total_estimated_value)
        extra = dict(account.extra or {})
        if metadata.total_sellable_shares is not None:
            extra["total_sellable_shares"] = str(metadata.total_sellable_shares)
        if metadata.grant_count is not None:
            extra["grant_count"] = metadata.grant_count
        account.extra = extra
        account.last_import_date = stamp
    elif tag is SourceTag.LEDGER_HTML:
        if metadata is not None and metadata.latest_balance is not None:
            account.balance = _to_decimal_2(metadata.latest_balance)
        dates = [date.fromisoformat(tx.transaction_date) for tx in transactions]
        account.last_import_date = max(dates) if dates else stamp
    else:
        account.last_import_date = stamp

    account.updated_at = func.now()
    session.flush()
    _logger.info(
        "persistence:account_refresh account=%s source=%s balance=%s last_import=%s",
        account_id,
        tag,
        account.balance,
        account.last_import_date,
    )
    return account


def recategorize_transactions(
    session: Session,
    *,
    engine: CategorizationEngine,
    account_id: str | None = None,
    source_tag: SourceTag | str | None = None,
) -> int:
    """Re-run the local tiers over stored rows; return the number updated.

    Rows whose local result is ``Other`` keep their current suggestion.
    """

    local = engine.without_remote()
    stmt = select(LedgerTransaction)
    if account_id is not None:
        stmt = stmt.where(LedgerTransaction.account_id == account_id)
    if source_tag is not None:
        stmt = stmt.where(LedgerTransaction.import_source == SourceTag.resolve(source_tag).value)

    updated = 0
    for row in session.scalars(stmt).all():
        signed = -row.amount if row.type == "expense" else row.amount
        decision = local.categorize_locally(
            ClassificationRequest(
                description=row.description,
                amount=signed,
                merchant=row.merchant,
                account_type=row.import_source,
            )
        )
        if decision.category == DEFAULT_CATEGORY:
            continue
        if (
            row.category_suggestion == decision.category
            and row.confidence == decision.confidence
        ):
            continue
        row.category_suggestion = decision.category
        row.confidence = decision.confidence
        row.updated_at = func.now()
        updated += 1

    session.flush()
    _logger.info("persistence:recategorize account=%s updated=%d", account_id, updated)
    return updated


__all__ = [
    "apply_import_metadata",
    "ensure_account",
    "recategorize_transactions",
    "upsert_transactions",
]
