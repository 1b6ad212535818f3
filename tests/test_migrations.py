from sqlalchemy import inspect
from typer.testing import CliRunner

from db import Base
from db.client import create_db_engine
from db.migrations import upgrade_database
from ledger_ingest.cli import app

runner = CliRunner()

CARD = "Date,Merchant,Amount\n16/03/2025,Cafe Noir,120.00\n17/03/2025,Netflix,45.90\n"


def test_migrations_match_the_orm_schema(tmp_path):
    url = f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}"
    upgrade_database(url)

    insp = inspect(create_db_engine(database_url=url))
    for table in Base.metadata.sorted_tables:
        got = {c["name"] for c in insp.get_columns(table.name)}
        assert got == {c.name for c in table.columns}, table.name

    uniques = {u["name"] for u in insp.get_unique_constraints("ledger_transactions")}
    assert "uq_ledger_tx_account_dedup" in uniques
    indexes = {i["name"] for i in insp.get_indexes("ledger_transactions")}
    assert {"ix_ledger_transactions_date", "ix_ledger_transactions_source"} <= indexes


def test_migrate_then_persist_on_a_fresh_database(tmp_path):
    url = f"sqlite+pysqlite:///{tmp_path / 'fresh.db'}"
    path = tmp_path / "card.csv"
    path.write_text(CARD, encoding="utf-8")

    migrated = runner.invoke(app, ["migrate", "--database-url", url])
    assert migrated.exit_code == 0, migrated.output
    assert "database upgraded to head" in migrated.stdout

    args = ["import", str(path), "--source", "card_csv", "--no-remote", "--persist"]
    args += ["--account-id", "card-1", "--database-url", url]
    result = runner.invoke(app, args)
    assert result.exit_code == 0, result.output
    assert "persisted inserted=2 skipped=0" in result.stdout

    again = runner.invoke(app, ["migrate", "--database-url", url])
    assert again.exit_code == 0, again.output


def test_migrate_without_database_url_fails():
    result = runner.invoke(app, ["migrate"])
    assert result.exit_code == 1
