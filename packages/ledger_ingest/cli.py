# ruff: noqa: I001
"""CLI for the ``ledger_ingest`` package.

Typer-based console interface over :mod:`ledger_ingest.api`. Environment
variables (``OPENAI_API_KEY``, ``DATABASE_URL``, ``LEDGER_INGEST_*``) are loaded
from a local ``.env`` with ``python-dotenv`` without overriding values that
are already set. Business logic lives in ``ledger_ingest.api`` and
``ledger_ingest.persistence``.
"""

from __future__ import annotations

import json
import sys
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import ArgumentInfo

from .categories import load_recipient_rules
from .categorization import CategorizationEngine
from .errors import IngestError
from .logging_setup import configure_logging
from .models import ClassificationRequest, ImportResult, RawImportBatch

_FALLBACK_ENCODING = "cp1255"


# ---- Small module-level helpers used by CLI commands -------------------------


def read_export(path: Path, *, encoding: str | None = None) -> str:
    """Read an export file as text.

    Without an explicit encoding, UTF-8 (BOM tolerated) is tried first and
    legacy Hebrew Windows exports fall back to cp1255.
    """

    data = path.read_bytes()
    if encoding:
        return data.decode(encoding)
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode(_FALLBACK_ENCODING)


def _build_engine(*, recipient_rules: Path | None, remote: bool):
    """Return ``(engine, translator)``; remote ports only when a key is set."""

    rules = load_recipient_rules(recipient_rules)
    if not remote:
        return CategorizationEngine(rules), None

    from .openai_client import OpenAIClassifier, OpenAITranslator, build_openai_client

    client = build_openai_client()
    if client is None:
        return CategorizationEngine(rules), None
    return CategorizationEngine(rules, OpenAIClassifier(client)), OpenAITranslator(client)


def _fmt_amount(d: Decimal | None) -> str:
    return "" if d is None else f"{d:.2f}"


def _print_result(result: ImportResult) -> None:
    for tx in result.transactions:
        typer.echo(
            "\t".join(
                [
                    tx.transaction_date,
                    tx.type.value,
                    _fmt_amount(tx.amount),
                    tx.category_suggestion,
                    f"{tx.confidence:.2f}",
                    tx.description,
                ]
            )
        )
    meta = result.metadata
    summary = f"source={result.source_tag} transactions={len(result.transactions)}"
    if meta is not None:
        if meta.latest_balance is not None:
            summary += f" latest_balance={_fmt_amount(meta.latest_balance)}"
        if meta.total_estimated_value is not None:
            summary += f" total_estimated_value={_fmt_amount(meta.total_estimated_value)}"
        if meta.total_sellable_shares is not None:
            summary += f" total_sellable_shares={meta.total_sellable_shares}"
        if meta.grant_count is not None:
            summary += f" grants={meta.grant_count}"
    typer.echo(summary)


def _persist(result: ImportResult, *, account_id: str, database_url: str | None) -> None:
    from db.client import create_session_factory, session_scope

    from .persistence import apply_import_metadata, upsert_transactions

    factory = create_session_factory(database_url=database_url)
    with session_scope(factory) as session:
        apply_import_metadata(
            session,
            account_id=account_id,
            source_tag=result.source_tag,
            metadata=result.metadata,
            transactions=result.transactions,
        )
        inserted = upsert_transactions(
            session,
            account_id=account_id,
            source_tag=result.source_tag,
            transactions=result.transactions,
        )
    typer.echo(f"persisted inserted={inserted} skipped={len(result.transactions) - inserted}")


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank and broker exports (CSV or HTML-table .xls) into a categorized, "
        "deduplicated ledger. Loads settings from a local .env before running."
    ),
)


# Module-level argument object to satisfy ruff B008 (no calls in parameter
# defaults).
EXPORT_PATH_ARGUMENT: ArgumentInfo = typer.Argument(
    ...,
    help="Path to the export file (CSV, or an .xls that is really an HTML table)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports a clean error instead
)


@app.command("import")
def import_cmd(
    path: Annotated[Path, EXPORT_PATH_ARGUMENT],
    *,
    source: str = typer.Option(
        "generic_csv",
        "--source",
        help="Source tag: ledger_flat, ledger_html, card_csv, savings_csv, vesting_csv, "
        "generic_csv (legacy bank-specific tags are accepted).",
    ),
    file_type: str | None = typer.Option(
        None, "--file-type", help="Optional file type hint: csv, xls, xls_html."
    ),
    account_id: str | None = typer.Option(
        None, help="Target account id; required with --persist."
    ),
    persist: bool = typer.Option(False, help="Write transactions to the database."),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    recipient_rules: Path | None = typer.Option(
        None, help="JSON file of transfer-recipient rules (else LEDGER_INGEST_RECIPIENT_RULES)."
    ),
    remote: bool = typer.Option(
        True, "--remote/--no-remote", help="Use the OpenAI classifier when a key is set."
    ),
    concurrency: int | None = typer.Option(
        None, min=1, help="Max in-flight remote calls (else LEDGER_INGEST_CONCURRENCY or 4)."
    ),
    encoding: str | None = typer.Option(
        None, help="Force the file encoding (default: UTF-8, falling back to cp1255)."
    ),
) -> None:
    """Parse, categorize and optionally persist one export file."""

    from .api import ingest_batch

    if persist and not account_id:
        typer.echo("Error: --account-id is required with --persist.", err=True)
        raise typer.Exit(1)

    try:
        raw_text = read_export(path, encoding=encoding)
    except (OSError, UnicodeDecodeError, LookupError) as e:
        typer.echo(f"Error: could not read {path}: {e}", err=True)
        raise typer.Exit(1) from e

    engine, translator = _build_engine(recipient_rules=recipient_rules, remote=remote)
    try:
        result = ingest_batch(
            RawImportBatch(source_tag=source, raw_text=raw_text, file_type_hint=file_type),
            engine=engine,
            translator=translator,
            concurrency=concurrency,
        )
    except IngestError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    _print_result(result)

    if persist and account_id:
        _persist(result, account_id=account_id, database_url=database_url)


@app.command("categorize")
def categorize_cmd(
    description: str = typer.Argument(..., help="Transaction description"),
    *,
    amount: str | None = typer.Option(None, help="Signed amount, e.g. -120.50"),
    merchant: str | None = typer.Option(None),
    account_type: str | None = typer.Option(None),
    recipient_rules: Path | None = typer.Option(None, help="JSON recipient rules file."),
    remote: bool = typer.Option(True, "--remote/--no-remote"),
) -> None:
    """Categorize one description and print the decision as JSON."""

    from .normalizers import try_parse_amount

    engine, _ = _build_engine(recipient_rules=recipient_rules, remote=remote)
    decision = engine.categorize(
        ClassificationRequest(
            description=description,
            amount=try_parse_amount(amount) if amount else None,
            merchant=merchant,
            account_type=account_type,
        )
    )
    typer.echo(json.dumps(decision.model_dump(), ensure_ascii=False))


@app.command("recategorize")
def recategorize_cmd(
    *,
    account_id: str | None = typer.Option(None, help="Limit to one account."),
    source: str | None = typer.Option(None, "--source", help="Limit to one source tag."),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    recipient_rules: Path | None = typer.Option(None, help="JSON recipient rules file."),
) -> None:
    """Re-run the local rule tiers over stored transactions."""

    from db.client import create_session_factory, session_scope

    from .persistence import recategorize_transactions

    engine = CategorizationEngine(load_recipient_rules(recipient_rules))
    factory = create_session_factory(database_url=database_url)
    try:
        with session_scope(factory) as session:
            updated = recategorize_transactions(
                session, engine=engine, account_id=account_id, source_tag=source
            )
    except IngestError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    typer.echo(f"recategorized={updated}")


@app.command("migrate")
def migrate_cmd(
    *,
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    revision: str = typer.Option("head", help="Alembic revision to upgrade to."),
) -> None:
    """Create or upgrade the ledger tables with the bundled Alembic migrations."""

    from db.migrations import upgrade_database

    try:
        upgrade_database(database_url, revision=revision)
    except RuntimeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    typer.echo(f"database upgraded to {revision}")


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, help="Log level (else LEDGER_INGEST_LOG_LEVEL, default INFO)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging once.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level, stream=sys.stderr)


if __name__ == "__main__":  # pragma: no cover
    app()
