import textwrap
from datetime import date
from decimal import Decimal

from ledger_ingest.ingest.adapters import vesting_csv
from ledger_ingest.models import TransactionType


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n").rstrip()


PORTFOLIO = _dedent(
    """
    RS/RSU
    Grant Name,Grant Date,Granted,Sellable,Next Vesting,Estimated Value,Open Orders
    G-1001,15/03/2023,"1,000",250,15/06/2025,"$12,500.00",0
    G-1002,01/01/2022,500,500,,"8,000.00",0
    G-0000,01/01/2021,0,0,,0,0
    Portfolio total,,,,,20500,
    """
)


def _fixed_clock() -> int:
    return 1_700_000_000_000


def test_vesting_grants_become_investments_with_totals():
    out = vesting_csv.parse(PORTFOLIO, clock=_fixed_clock)

    assert len(out.transactions) == 2
    first, second = out.transactions

    assert first.type is TransactionType.INVESTMENT
    assert first.amount == Decimal("12500.00")
    assert first.transaction_date == "2023-03-15"
    assert first.description == (
        "Equity grant G-1001 (Granted: 15/03/2023) | Next Vesting: 15/06/2025"
    )
    assert first.tags == ("vesting", "equity")
    assert "Sellable (Vested): 250 shares" in (first.notes or "")
    assert first.dedup_key == "vesting_csv_grant_G-1001_2023-03-15_1000_1700000000000"

    assert second.description.endswith("| Fully Vested")

    meta = out.metadata
    assert meta is not None
    assert meta.total_estimated_value == Decimal("20500.00")
    assert meta.total_sellable_shares == Decimal("750")
    assert meta.grant_count == 2


def test_vesting_keys_are_salted_with_import_time():
    a = vesting_csv.parse(PORTFOLIO, clock=lambda: 1)
    b = vesting_csv.parse(PORTFOLIO, clock=lambda: 2)
    assert [t.dedup_key for t in a.transactions] != [t.dedup_key for t in b.transactions]


def test_vesting_unreadable_grant_date_uses_import_day():
    text = _dedent(
        """
        Grant Name,Grant Date,Granted,Sellable,Estimated Value
        G-7,soon,10,0,100
        """
    )
    out = vesting_csv.parse(text, clock=_fixed_clock, today=date(2025, 1, 2))
    (tx,) = out.transactions
    assert tx.transaction_date == "2025-01-02"
    assert tx.description == "Equity grant G-7 (Granted: soon) | Fully Vested"


def test_vesting_resolves_columns_by_most_specific_keyword():
    cols = vesting_csv.resolve_columns(
        ["Granted", "Grant Date", "Grant Name", "Estimated Value", "Sellable"]
    )
    assert cols["grant_name"] == 2
    assert cols["grant_date"] == 1
    assert cols["granted"] == 0
    assert cols["estimated_value"] == 3
    assert cols["sellable"] == 4
    assert cols["next_vesting"] == -1


def test_vesting_empty_input_has_zero_totals():
    out = vesting_csv.parse("")
    assert out.transactions == []
    assert out.metadata is not None
    assert out.metadata.grant_count == 0
