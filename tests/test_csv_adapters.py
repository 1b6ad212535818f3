import textwrap
from decimal import Decimal

from ledger_ingest.ingest.adapters import card_csv, flat_ledger, generic_csv, savings_csv
from ledger_ingest.models import TransactionType


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n").rstrip()


FLAT_LEDGER = _dedent(
    """
    תאריך,תיאור,סכום,תאריך ערך,אסמכתא
    16/03/2025,"סופר, מרקט",-120.50,16/03/2025,12345
    17/03/2025,משכורת,"10,000.00",17/03/2025,
    18/03/2025,zero row,0,,
    bad,row,1
    19/03/2025,,15
    20/03/2025,short
    """
)


def test_flat_ledger_passes_sign_through_and_skips_bad_rows():
    out = flat_ledger.parse(FLAT_LEDGER)

    assert [t.transaction_date for t in out.transactions] == ["2025-03-16", "2025-03-17"]
    grocery, salary = out.transactions

    assert grocery.description == "סופר, מרקט"
    assert grocery.amount == Decimal("120.50")
    assert grocery.type is TransactionType.EXPENSE
    assert grocery.reference == "12345"
    assert grocery.dedup_key == "ledger_flat_2025-03-16_12345_120.50"

    assert salary.amount == Decimal("10000.00")
    assert salary.type is TransactionType.INCOME
    assert salary.reference is None
    assert salary.dedup_key == "ledger_flat_2025-03-17_משכורת_10000.00"
    assert out.metadata is None


def test_card_statement_amounts_are_always_expenses():
    text = _dedent(
        """
        Date,Merchant,Amount,Category
        16/03/2025,Cafe Noir,120.00,Food
        17/03/2025,Refund Shop,-35,Shopping
        """
    )
    out = card_csv.parse(text)

    first, second = out.transactions
    assert first.amount == Decimal("120.00")
    assert first.type is TransactionType.EXPENSE
    assert first.merchant == "Cafe Noir"
    assert first.signed_amount == Decimal("-120.00")
    assert second.amount == Decimal("35")
    assert second.type is TransactionType.EXPENSE


def test_savings_and_generic_pass_sign_through():
    text = _dedent(
        """
        01/02/2025,Withdrawal,5000
        02/02/2025,Deposit fee,-12.5
        """
    )
    for adapter, prefix in ((savings_csv, "savings_csv_"), (generic_csv, "generic_csv_")):
        out = adapter.parse(text)
        withdrawal, fee = out.transactions
        assert withdrawal.type is TransactionType.INCOME
        assert fee.type is TransactionType.EXPENSE
        assert fee.amount == Decimal("12.5")
        assert withdrawal.dedup_key.startswith(prefix)


def test_dedup_keys_are_stable_across_parses():
    first = [t.dedup_key for t in flat_ledger.parse(FLAT_LEDGER).transactions]
    second = [t.dedup_key for t in flat_ledger.parse(FLAT_LEDGER).transactions]
    assert first == second


def test_empty_and_header_only_inputs_yield_nothing():
    assert generic_csv.parse("").transactions == []
    assert card_csv.parse("Date,Merchant,Amount\n").transactions == []


def test_iter_csv_rows_and_cell_helpers():
    from ledger_ingest.ingest.csv_lines import cell, iter_csv_rows

    rows = list(iter_csv_rows('\ufeff16/03/2025, "Coffee, large" ,12.50\n,,,\n\n17/03/2025,Tea,\n'))
    assert rows == [["16/03/2025", "Coffee, large", "12.50"], ["17/03/2025", "Tea", ""]]
    fields = rows[0]
    assert cell(fields, 1) == "Coffee, large"
    assert cell(fields, 5) == ""
    assert cell(fields, -1) == ""
