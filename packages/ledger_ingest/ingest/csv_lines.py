"""Quote-aware CSV tokenizing for the flat-file adapters.

Parsing follows RFC 4180 rules via the stdlib :mod:`csv` module, so quoted
fields may contain commas, doubled quotes and embedded newlines. Empty fields
are preserved because every flat adapter addresses columns by fixed position.
"""

from __future__ import annotations

import csv
from collections.abc import Iterator
from io import StringIO


def iter_csv_rows(text: str, *, delimiter: str = ",") -> Iterator[list[str]]:
    """Yield stripped field lists for every non-blank record in ``text``.

    A leading byte-order mark is dropped. Rows whose fields are all empty
    (e.g. ``",,,"`` separator lines some exports emit) are skipped.
    """

    with StringIO(text.lstrip("\ufeff"), newline="") as f:
        reader = csv.reader(f, delimiter=delimiter, skipinitialspace=True)
        for row in reader:
            fields = [v.strip() for v in row]
            if not any(fields):
                continue
            yield fields


def cell(fields: list[str], index: int) -> str:
    """Return ``fields[index]`` or ``""`` when the column is absent.

    Negative indices mean "column not found" and never wrap around.
    """

    if 0 <= index < len(fields):
        return fields[index]
    return ""


__all__ = ["iter_csv_rows", "cell"]
