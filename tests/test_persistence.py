from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from db.client import session_scope
from db.models.ledger import LedgerAccount, LedgerTransaction
from sqlalchemy import func, select

from ledger_ingest import CategorizationEngine, ImportMetadata, RawImportBatch, ingest_batch
from ledger_ingest.persistence import (
    apply_import_metadata,
    ensure_account,
    recategorize_transactions,
    upsert_transactions,
)
from tests.helpers.db import bootstrap_sqlite_db

CARD = "16/03/2025,Cafe Noir,120.00\n17/03/2025,Netflix,45.90\n"


@pytest.fixture
def factory(tmp_path: Path):
    _url, session_factory = bootstrap_sqlite_db(tmp_path / "ledger.db")
    return session_factory


def _count(factory) -> int:
    with session_scope(factory) as s:
        return s.scalar(select(func.count()).select_from(LedgerTransaction))


def test_upsert_skips_duplicates_on_reimport(factory):
    result = ingest_batch(RawImportBatch(source_tag="card_csv", raw_text=CARD))

    with session_scope(factory) as s:
        ensure_account(s, "acct-1")
        assert (
            upsert_transactions(
                s, account_id="acct-1", source_tag="card_csv", transactions=result.transactions
            )
            == 2
        )
    with session_scope(factory) as s:
        assert (
            upsert_transactions(
                s, account_id="acct-1", source_tag="card_csv", transactions=result.transactions
            )
            == 0
        )
    assert _count(factory) == 2

    with session_scope(factory) as s:
        row = s.scalars(
            select(LedgerTransaction).where(LedgerTransaction.description == "Cafe Noir")
        ).one()
        assert row.amount == Decimal("120.00")
        assert row.type == "expense"
        assert row.transaction_date == date(2025, 3, 16)
        assert row.category_suggestion == "Food & Dining"
        assert row.import_source == "card_csv"


def test_manual_edits_survive_reimport(factory):
    result = ingest_batch(RawImportBatch(source_tag="card_csv", raw_text=CARD))
    with session_scope(factory) as s:
        ensure_account(s, "acct-1")
        upsert_transactions(
            s, account_id="acct-1", source_tag="card_csv", transactions=result.transactions
        )
    with session_scope(factory) as s:
        row = s.scalars(select(LedgerTransaction).order_by(LedgerTransaction.id)).first()
        row.category_suggestion = "Travel"
    with session_scope(factory) as s:
        upsert_transactions(
            s, account_id="acct-1", source_tag="card_csv", transactions=result.transactions
        )
    with session_scope(factory) as s:
        row = s.scalars(select(LedgerTransaction).order_by(LedgerTransaction.id)).first()
        assert row.category_suggestion == "Travel"


def test_same_key_in_other_account_is_inserted(factory):
    result = ingest_batch(RawImportBatch(source_tag="card_csv", raw_text=CARD))
    with session_scope(factory) as s:
        for account in ("a", "b"):
            ensure_account(s, account)
            upsert_transactions(
                s, account_id=account, source_tag="card_csv", transactions=result.transactions
            )
    assert _count(factory) == 4


def test_apply_metadata_for_html_ledger(factory):
    html = (
        "<table><tr><th>תאריך</th><th>תיאור</th><th>בחובה</th><th>בזכות</th><th>יתרה</th></tr>"
        "<tr><td>10/03/2025</td><td>A</td><td>5</td><td></td><td>95.00</td></tr>"
        "<tr><td>21/03/2025</td><td>B</td><td>5</td><td></td><td>100.00</td></tr>"
        "</table>"
    )
    result = ingest_batch(RawImportBatch(source_tag="ledger_html", raw_text=html))
    with session_scope(factory) as s:
        account = apply_import_metadata(
            s,
            account_id="checking",
            source_tag=result.source_tag,
            metadata=result.metadata,
            transactions=result.transactions,
        )
        assert account.balance == Decimal("95.00")
        assert account.last_import_date == date(2025, 3, 21)


def test_apply_metadata_for_vesting_and_other_sources(factory):
    meta = ImportMetadata(
        total_estimated_value=Decimal("20500"),
        total_sellable_shares=Decimal("750"),
        grant_count=2,
    )
    with session_scope(factory) as s:
        apply_import_metadata(
            s,
            account_id="equity",
            source_tag="vesting_csv",
            metadata=meta,
            today=date(2025, 4, 1),
        )
        apply_import_metadata(
            s, account_id="card", source_tag="card_csv", metadata=None, today=date(2025, 4, 2)
        )
    with session_scope(factory) as s:
        equity = s.get(LedgerAccount, "equity")
        assert equity.balance == Decimal("20500.00")
        assert equity.extra == {"total_sellable_shares": "750", "grant_count": 2}
        assert equity.last_import_date == date(2025, 4, 1)
        card = s.get(LedgerAccount, "card")
        assert card.balance is None
        assert card.last_import_date == date(2025, 4, 2)


def test_recategorize_updates_only_rows_with_a_local_match(factory):
    result = ingest_batch(
        RawImportBatch(source_tag="card_csv", raw_text=CARD + "18/03/2025,Vendor,5\n")
    )
    with session_scope(factory) as s:
        ensure_account(s, "acct-1")
        upsert_transactions(
            s, account_id="acct-1", source_tag="card_csv", transactions=result.transactions
        )
    with session_scope(factory) as s:
        for row in s.scalars(select(LedgerTransaction)):
            row.category_suggestion = "Other"
            row.confidence = 0.5

    with session_scope(factory) as s:
        updated = recategorize_transactions(s, engine=CategorizationEngine(), account_id="acct-1")
    assert updated == 2

    with session_scope(factory) as s:
        cats = dict(
            s.execute(
                select(LedgerTransaction.description, LedgerTransaction.category_suggestion)
            ).all()
        )
    assert cats == {"Cafe Noir": "Food & Dining", "Netflix": "Entertainment", "Vendor": "Other"}

    with session_scope(factory) as s:
        assert recategorize_transactions(s, engine=CategorizationEngine()) == 0
