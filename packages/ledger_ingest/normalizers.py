"""Text, date and amount normalizers shared by every adapter.

Bank exports in this domain mix Hebrew and English, arrive either as CSV or as
HTML tables saved with an ``.xls`` extension, and sprinkle bidirectional
control marks through otherwise ordinary text. The helpers here turn those
cells into plain strings, canonical ``YYYY-MM-DD`` dates and ``Decimal``
amounts. None of them raise on bad input: a date that cannot be read comes
back as ``None`` and an amount that cannot be read comes back as zero, so the
calling adapter can skip the row and carry on.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation

# ---------------------------------------------------------------------------
# Text / entity normalization
# ---------------------------------------------------------------------------

_TAG_RE = re.compile(r"<[^>]+>")
_NUMERIC_ENTITY_RE = re.compile(r"&#(?:(\d+)|[xX]([0-9a-fA-F]+));")
_NAMED_ENTITIES: dict[str, str] = {
    "&nbsp;": " ",
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&apos;": "'",
}
_NAMED_ENTITY_RE = re.compile("|".join(re.escape(k) for k in _NAMED_ENTITIES))

# Code point ranges a numeric entity may decode into; anything else is dropped.
_ALLOWED_ENTITY_RANGES: tuple[tuple[int, int], ...] = (
    (32, 126),  # ASCII printable
    (160, 255),  # Latin-1 supplement
    (0x0590, 0x05FF),  # Hebrew
    (0x2000, 0x206F),  # General punctuation
    (0x20A0, 0x20CF),  # Currency symbols
)

# LRM/RLM, embeddings/overrides, isolates, ZW space/joiners, BOM, Arabic mark.
_INVISIBLE_RE = re.compile("[\u200b-\u200f\u202a-\u202e\u2066-\u2069\ufeff\u061c]")
_CONTROL_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WS_RE = re.compile(r"\s+")


def _decode_numeric_entity(match: re.Match[str]) -> str:
    dec, hexa = match.groups()
    code = int(dec) if dec is not None else int(hexa, 16)
    for lo, hi in _ALLOWED_ENTITY_RANGES:
        if lo <= code <= hi:
            return chr(code)
    return ""


def _normalize_once(text: str) -> str:
    text = _TAG_RE.sub("", text)
    text = _NAMED_ENTITY_RE.sub(lambda m: _NAMED_ENTITIES[m.group(0)], text)
    text = _NUMERIC_ENTITY_RE.sub(_decode_numeric_entity, text)
    text = _INVISIBLE_RE.sub("", text)
    text = _CONTROL_RE.sub("", text)
    return _WS_RE.sub(" ", text).strip()


def normalize_text(value: str | None) -> str:
    """Return plain text for a markup fragment or raw cell value.

    Tags are removed, the common named entities and range-gated numeric
    entities are decoded, bidi/zero-width marks and control characters are
    stripped, and whitespace is collapsed. Each pass can only shorten the
    string, so repeating until nothing changes terminates and makes the
    function idempotent even for doubly-escaped input.

    Escaped angle brackets are therefore read as markup: ``"a &lt;b&gt; c"``
    becomes ``"a c"``. A literal ``<b>`` left in the output would be stripped
    by a second pass.
    """

    if not value:
        return ""
    current = value
    while True:
        nxt = _normalize_once(current)
        if nxt == current:
            return nxt
        current = nxt


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

# (pattern, group order) where order maps match groups to (day, month, year).
_DATE_PATTERNS: tuple[tuple[re.Pattern[str], tuple[int, int, int]], ...] = (
    (re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"), (1, 2, 3)),
    (re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})"), (1, 2, 3)),
    (re.compile(r"(\d{1,2})[/.](\d{1,2})[/.](\d{4})"), (1, 2, 3)),
    (re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"), (3, 2, 1)),
    (re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})"), (1, 2, 3)),
)

_MIN_YEAR = 2000
_MAX_YEAR = 2100


def _valid_date(day: int, month: int, year: int) -> date | None:
    if not (1 <= day <= 31 and 1 <= month <= 12 and _MIN_YEAR <= year <= _MAX_YEAR):
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def normalize_date(value: str | None) -> str | None:
    """Parse a bank-export date into ``YYYY-MM-DD``.

    Patterns are tried in order: ``DD/MM/YYYY``, ``DD.MM.YYYY``, a mixed
    ``D[./]M[./]YYYY`` scan, ``YYYY-MM-DD`` and finally ``DD-MM-YYYY``. A
    candidate only wins when it names a real calendar day between 2000 and
    2100, so ``31/04/2025`` is rejected rather than rolled into May.

    Returns ``None`` when nothing parses; callers skip the row.
    """

    if not value:
        return None
    cleaned = normalize_text(value)
    if not cleaned:
        return None
    for pattern, (d_i, m_i, y_i) in _DATE_PATTERNS:
        m = pattern.search(cleaned)
        if m is None:
            continue
        parsed = _valid_date(int(m.group(d_i)), int(m.group(m_i)), int(m.group(y_i)))
        if parsed is not None:
            return parsed.isoformat()
    return None


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

# Local-currency unit spellings, longest first so ש"ח is removed before שח.
_CURRENCY_TOKENS: tuple[str, ...] = ('ש"ח', "ש״ח", "שח", "ILS", "NIS")
_CURRENCY_TOKEN_RE = re.compile(
    "|".join(re.escape(t) for t in _CURRENCY_TOKENS), flags=re.IGNORECASE
)
_CURRENCY_GLYPH_RE = re.compile(r"[₪$€£\s,'\"]")
# Hyphen-minus, unicode minus, en dash.
_MINUS_CHARS = "-−–"


def try_parse_amount(value: str | None, *, signed: bool = True) -> Decimal | None:
    """Parse a formatted amount, returning ``None`` when it is not numeric.

    Currency glyphs, unit abbreviations and thousands separators are removed.
    With ``signed=True`` a leading minus or surrounding parentheses make the
    value negative; any other minus sign is formatting noise and is dropped.
    With ``signed=False`` every minus sign is dropped and the magnitude is
    returned.
    """

    if value is None:
        return None
    s = normalize_text(str(value))
    s = _CURRENCY_TOKEN_RE.sub("", s)
    s = _CURRENCY_GLYPH_RE.sub("", s)
    if not s:
        return None

    negative = False
    if s.startswith("(") and s.endswith(")") and len(s) >= 2:
        negative = True
        s = s[1:-1]
    if s and s[0] in _MINUS_CHARS:
        negative = True
    for ch in _MINUS_CHARS:
        s = s.replace(ch, "")
    s = s.lstrip("+")
    if not s:
        return None

    try:
        d = Decimal(s)
    except InvalidOperation:
        return None
    if not d.is_finite():
        return None
    d = abs(d)
    return -d if (signed and negative) else d


def parse_amount(value: str | None, *, signed: bool = True) -> Decimal:
    """Like :func:`try_parse_amount` but returns ``Decimal(0)`` on failure."""

    parsed = try_parse_amount(value, signed=signed)
    return parsed if parsed is not None else Decimal(0)


__all__ = [
    "normalize_text",
    "normalize_date",
    "parse_amount",
    "try_parse_amount",
]
