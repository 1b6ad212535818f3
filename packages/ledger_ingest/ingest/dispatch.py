"""Route a raw import batch to the adapter for its source format.

The flat-ledger family is ambiguous: the bank offers both a CSV download and
an "Excel" download that is really an HTML table. Either tag in that family
goes through the HTML adapter when the caller says so (``ledger_html`` tag or
``xls_html`` hint) or when the text itself looks like an HTML table or
carries the Hebrew date header.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeAlias

from ..errors import EmptyInputError
from ..logging_setup import get_logger
from ..models import AdapterOutput, FileTypeHint, RawImportBatch, SourceTag
from .adapters import card_csv, flat_ledger, generic_csv, ledger_html, savings_csv, vesting_csv
from .html_table import looks_like_html_table

_logger = get_logger("ledger_ingest.ingest.dispatch")

Adapter: TypeAlias = Callable[[str], AdapterOutput]

ADAPTERS: dict[SourceTag, Adapter] = {
    SourceTag.LEDGER_FLAT: flat_ledger.parse,
    SourceTag.LEDGER_HTML: ledger_html.parse,
    SourceTag.CARD_CSV: card_csv.parse,
    SourceTag.SAVINGS_CSV: savings_csv.parse,
    SourceTag.VESTING_CSV: vesting_csv.parse,
    SourceTag.GENERIC_CSV: generic_csv.parse,
}

_LEDGER_FAMILY: frozenset[SourceTag] = frozenset({SourceTag.LEDGER_FLAT, SourceTag.LEDGER_HTML})
_HEBREW_DATE_HEADER = "תאריך"


def _resolve_hint(hint: FileTypeHint | str | None) -> FileTypeHint | None:
    if hint is None or isinstance(hint, FileTypeHint):
        return hint
    try:
        return FileTypeHint(hint.strip().lower())
    except ValueError:
        _logger.debug("dispatch: ignoring unknown file type hint %r", hint)
        return None


def effective_source(
    source_tag: SourceTag | str | None,
    raw_text: str,
    file_type_hint: FileTypeHint | str | None = None,
) -> SourceTag:
    """Return the tag whose adapter should parse ``raw_text``."""

    tag = SourceTag.resolve(source_tag)
    if tag not in _LEDGER_FAMILY:
        return tag
    if tag is SourceTag.LEDGER_HTML or _resolve_hint(file_type_hint) is FileTypeHint.XLS_HTML:
        return SourceTag.LEDGER_HTML
    if looks_like_html_table(raw_text) or _HEBREW_DATE_HEADER in raw_text[:4096]:
        return SourceTag.LEDGER_HTML
    return SourceTag.LEDGER_FLAT


def adapter_for(tag: SourceTag | str | None) -> Adapter:
    return ADAPTERS[SourceTag.resolve(tag)]


def _retry_as_flat_ledger(raw_text: str, output: AdapterOutput) -> AdapterOutput | None:
    """Re-parse a sniffed ledger export as CSV when the HTML pass found nothing.

    The Hebrew date header also opens the bank's CSV download, so a file with
    that header but no table markup may be a flat ledger after all.
    """

    if output.transactions or looks_like_html_table(raw_text):
        return None
    flat = flat_ledger.parse(raw_text)
    return flat if flat.transactions else None


def parse_batch(batch: RawImportBatch) -> tuple[SourceTag, AdapterOutput]:
    """Parse one batch; raises on structural problems only.

    Raises:
        EmptyInputError: the raw text is missing or blank.
        UnknownSourceError: the tag is non-empty but not a known format.
    """

    tag = SourceTag.resolve(batch.source_tag)
    if not batch.raw_text or not batch.raw_text.strip():
        raise EmptyInputError("import text is empty")
    tag = effective_source(tag, batch.raw_text, batch.file_type_hint)
    _logger.info("dispatch: parsing %d chars as %s", len(batch.raw_text), tag)
    output = adapter_for(tag)(batch.raw_text)
    if tag is SourceTag.LEDGER_HTML:
        flat = _retry_as_flat_ledger(batch.raw_text, output)
        if flat is not None:
            _logger.info("dispatch: no table rows found; parsed as %s", SourceTag.LEDGER_FLAT)
            return SourceTag.LEDGER_FLAT, flat
    return tag, output


__all__ = ["ADAPTERS", "adapter_for", "effective_source", "parse_batch"]
