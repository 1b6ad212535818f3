"""Public API for ``ledger_ingest``.

It parses one raw export with the adapter for its source tag, then
categorizes (and optionally annotates with an English translation) every
transaction.

- Structural problems (blank input, unknown source tag) raise
  :class:`~ledger_ingest.errors.IngestError` subclasses.
- Per-row problems are skipped by the adapters.
- Remote failures (classifier or translator) degrade that single transaction
  to the local rule tiers and never abort the batch.

Remote calls fan out through :func:`~ledger_ingest.pmap.p_map` with a bounded
concurrency; output order always matches the adapter's row order.
"""

from __future__ import annotations

import os
import re
from dataclasses import replace

from .categorization import CategorizationEngine
from .ingest.dispatch import parse_batch
from .logging_setup import get_logger
from .models import (
    CategoryDecision,
    ClassificationRequest,
    ImportResult,
    ParsedTransaction,
    RawImportBatch,
    SourceTag,
)
from .openai_client import DescriptionTranslator
from .pmap import MAX_CONCURRENCY, p_map

_logger = get_logger("ledger_ingest.api")

CONCURRENCY_ENV = "LEDGER_INGEST_CONCURRENCY"
DEFAULT_CONCURRENCY = 4

_HEBREW_RE = re.compile("[\u0590-\u05ff]")


def resolve_concurrency(value: int | None = None) -> int:
    """Explicit value, else ``$LEDGER_INGEST_CONCURRENCY``, else 4; capped at 32."""

    if value is None:
        raw = os.getenv(CONCURRENCY_ENV, "").strip()
        try:
            value = int(raw) if raw else DEFAULT_CONCURRENCY
        except ValueError:
            _logger.warning("api: ignoring non-integer %s=%r", CONCURRENCY_ENV, raw)
            value = DEFAULT_CONCURRENCY
    return max(1, min(value, MAX_CONCURRENCY))


def _request_for(tx: ParsedTransaction, source_tag: SourceTag) -> ClassificationRequest:
    return ClassificationRequest(
        description=tx.description,
        amount=tx.signed_amount,
        merchant=tx.merchant,
        account_type=source_tag.value,
    )


def _apply(tx: ParsedTransaction, decision: CategoryDecision, notes: str | None) -> ParsedTransaction:
    return replace(
        tx,
        category_suggestion=decision.category,
        confidence=decision.confidence,
        notes=notes,
    )


def _append_translation(
    tx: ParsedTransaction, translator: DescriptionTranslator | None
) -> str | None:
    """Return ``tx.notes`` extended with an English translation when available."""

    if translator is None or not _HEBREW_RE.search(tx.description):
        return tx.notes
    try:
        english = (translator.translate(tx.description) or "").strip()
    except Exception as e:  # noqa: BLE001 - translation is advisory only
        _logger.warning("api: translation failed for %r: %s", tx.description[:80], e)
        return tx.notes
    if not english or english == tx.description:
        return tx.notes
    note = f"English: {english}"
    return f"{tx.notes} | {note}" if tx.notes else note


def categorize_transactions(
    transactions: list[ParsedTransaction],
    *,
    source_tag: SourceTag,
    engine: CategorizationEngine,
    translator: DescriptionTranslator | None = None,
    concurrency: int | None = None,
) -> list[ParsedTransaction]:
    """Fill in category suggestion, confidence and translation notes."""

    def _one(tx: ParsedTransaction) -> ParsedTransaction:
        notes = _append_translation(tx, translator)
        return _apply(tx, engine.categorize(_request_for(tx, source_tag)), notes)

    def _fallback(tx: ParsedTransaction, exc: Exception) -> ParsedTransaction:
        _logger.warning("api: remote step failed for %s: %s", tx.dedup_key, exc)
        return _apply(tx, engine.categorize_locally(_request_for(tx, source_tag)), tx.notes)

    if not engine.has_remote and translator is None:
        return [_one(tx) for tx in transactions]
    return p_map(
        transactions,
        _one,
        concurrency=resolve_concurrency(concurrency),
        on_error=_fallback,
    )


def ingest_batch(
    batch: RawImportBatch,
    *,
    engine: CategorizationEngine | None = None,
    translator: DescriptionTranslator | None = None,
    concurrency: int | None = None,
) -> ImportResult:
    """Parse and categorize one raw export.

    Parameters
    ----------
    batch:
        Raw text plus source tag and optional file-type hint.
    engine:
        Categorization engine; defaults to local tiers only.
    translator:
        Optional remote translator. Hebrew descriptions get ``English: ...``
        appended to their notes; the description itself never changes.
    concurrency:
        Bound on in-flight remote calls. Defaults to
        ``$LEDGER_INGEST_CONCURRENCY`` or 4.

    Raises
    ------
    EmptyInputError, UnknownSourceError
        On structural problems only.
    """

    engine = engine or CategorizationEngine()
    tag, output = parse_batch(batch)
    transactions = categorize_transactions(
        output.transactions,
        source_tag=tag,
        engine=engine,
        translator=translator,
        concurrency=concurrency,
    )
    _logger.info(
        "ingest_batch: source=%s transactions=%d metadata=%s",
        tag,
        len(transactions),
        output.metadata is not None,
    )
    return ImportResult(source_tag=tag, transactions=transactions, metadata=output.metadata)


__all__ = ["categorize_transactions", "ingest_batch", "resolve_concurrency"]
