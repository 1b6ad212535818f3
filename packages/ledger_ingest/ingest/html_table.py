"""Row/cell extraction for HTML-table bank exports.

Some banks offer an "Excel" download that is really an HTML document with a
``.xls`` extension. Its layout drifts between export revisions, so the column
positions are discovered from the header row when one can be found and fall
back to a fixed positional layout when it cannot.

Contract
--------
``extract_table(markup)`` returns every ``<tr>`` as a list of normalized cell
strings, the resolved :class:`ColumnMap`, and the index of the first data row.
Markup is parsed with ``lxml.html``, which tolerates the unclosed tags these
exports tend to carry; cell text then goes through
:func:`ledger_ingest.normalizers.normalize_text`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from lxml import etree
from lxml import html as lxml_html

from ..logging_setup import get_logger
from ..normalizers import normalize_text

_logger = get_logger("ledger_ingest.ingest.html_table")

_PARSER = lxml_html.HTMLParser(encoding="utf-8")
_TABLE_MARKERS: tuple[str, ...] = ("<table", "<tr", "<html")
_FALLBACK_DATE_RE = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")

HEADER_SCAN_ROWS = 20
FALLBACK_SCAN_ROWS = 10
MIN_CELLS = 4
FALLBACK_MIN_CELLS = 6

DATE_KEYWORDS: tuple[str, ...] = ("תאריך", "date")
VALUE_DATE_MARKERS: tuple[str, ...] = ("ערך", "value")
EXTENDED_MARKERS: tuple[str, ...] = ("תאור מורחב", "מורחב", "extended")

# Priority order matters: a cell is assigned to the first role it matches.
_ROLE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("date", DATE_KEYWORDS),
    ("description", ("תיאור", "description")),
    ("extended_description", EXTENDED_MARKERS),
    ("debit", ("חובה", "debit")),
    ("credit", ("זכות", "credit")),
    ("reference", ("אסמכתא", "reference")),
    ("balance", ("יתרה", "balance")),
)


@dataclass(slots=True)
class ColumnMap:
    """Resolved column index per role; ``-1`` means the column is absent."""

    date: int = -1
    description: int = -1
    extended_description: int = -1
    debit: int = -1
    credit: int = -1
    reference: int = -1
    balance: int = -1

    def value(self, row: list[str], role: str) -> str:
        idx = getattr(self, role)
        if 0 <= idx < len(row):
            return row[idx]
        return ""


# Layout of the bank's long-standing export when no header row is present.
def default_columns() -> ColumnMap:
    return ColumnMap(
        date=0,
        description=2,
        extended_description=7,
        debit=4,
        credit=5,
        reference=3,
        balance=6,
    )


@dataclass(slots=True)
class ExtractedTable:
    rows: list[list[str]] = field(default_factory=list)
    columns: ColumnMap = field(default_factory=ColumnMap)
    data_start: int = 0
    header_found: bool = False

    @property
    def data_rows(self) -> list[list[str]]:
        return self.rows[self.data_start :]


def looks_like_html_table(text: str) -> bool:
    """Return True when ``text`` contains table markup."""

    head = text[:65536].lower()
    return any(marker in head for marker in _TABLE_MARKERS)


def extract_rows(markup: str) -> list[list[str]]:
    """Return the normalized cell texts of every table row in ``markup``."""

    if not markup.strip():
        return []
    try:
        doc = lxml_html.fromstring(markup.encode("utf-8"), parser=_PARSER)
    except (etree.ParserError, ValueError) as e:
        _logger.debug("html_table:unparseable markup: %s", e)
        return []
    rows: list[list[str]] = []
    for tr in doc.iter("tr"):
        cells = [normalize_text("".join(td.itertext())) for td in tr if td.tag in ("td", "th")]
        rows.append(cells)
    return rows


def _is_header_cell(text: str) -> bool:
    lowered = text.lower()
    return any(k in lowered for k in DATE_KEYWORDS)


def _role_for_cell(text: str) -> str | None:
    lowered = text.lower()
    for role, keywords in _ROLE_KEYWORDS:
        if not any(k in lowered for k in keywords):
            continue
        if role == "date" and any(m in lowered for m in VALUE_DATE_MARKERS):
            # "Value date" duplicates the booking date column; never use it.
            continue
        if role == "description" and any(m in lowered for m in EXTENDED_MARKERS):
            continue
        return role
    return None


def resolve_columns(header: list[str]) -> ColumnMap:
    """Assign column roles from a header row; the first cell per role wins."""

    columns = ColumnMap()
    for idx, text in enumerate(header):
        role = _role_for_cell(text)
        if role is not None and getattr(columns, role) == -1:
            setattr(columns, role, idx)
    return columns


def _find_header(rows: list[list[str]]) -> tuple[int, ColumnMap] | None:
    for i, cells in enumerate(rows[:HEADER_SCAN_ROWS]):
        if len(cells) < MIN_CELLS:
            continue
        if _is_header_cell(cells[0]):
            return i, resolve_columns(cells)
    return None


def _find_first_data_row(rows: list[list[str]]) -> int:
    for i, cells in enumerate(rows[:FALLBACK_SCAN_ROWS]):
        if len(cells) >= FALLBACK_MIN_CELLS and _FALLBACK_DATE_RE.match(cells[0]):
            return i
    return 0


def extract_table(markup: str) -> ExtractedTable:
    """Extract rows and resolve the column layout of an HTML-table export."""

    rows = extract_rows(markup)
    found = _find_header(rows)
    if found is not None:
        header_idx, columns = found
        if columns.date != -1:
            _logger.debug("html_table:header row=%d columns=%s", header_idx, columns)
            return ExtractedTable(
                rows=rows, columns=columns, data_start=header_idx + 1, header_found=True
            )

    data_start = _find_first_data_row(rows)
    _logger.debug(
        "html_table:no usable header in first %d rows; positional layout from row %d",
        HEADER_SCAN_ROWS,
        data_start,
    )
    return ExtractedTable(rows=rows, columns=default_columns(), data_start=data_start)


__all__ = [
    "ColumnMap",
    "ExtractedTable",
    "default_columns",
    "extract_rows",
    "extract_table",
    "looks_like_html_table",
    "resolve_columns",
]
