"""Import-identity keys used to skip already-imported transactions.

The persistence collaborator upserts on ``(account_id, dedup_key)`` with
duplicate-skip semantics, so the key must be a pure function of what is in the
file: re-importing identical bytes yields identical keys and the second import
becomes a no-op that never clobbers manually edited rows.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from decimal import ROUND_HALF_UP, Decimal

from .models import SourceTag


def _fmt_magnitude(amount: Decimal) -> str:
    q = abs(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{q:.2f}"


def _norm_part(value: str | None) -> str:
    return " ".join((value or "").split())


def compute_dedup_key(
    *,
    source_tag: SourceTag | str,
    transaction_date: str,
    amount: Decimal,
    reference: str | None = None,
    description: str | None = None,
) -> str:
    """Return ``<source>_<date>_<reference or description>_<|amount| to 2dp>``.

    The reference number is preferred because it is stable across export
    revisions; the normalized description stands in when the row has none.
    """

    identity = _norm_part(reference) or _norm_part(description) or "no_ref"
    return f"{SourceTag(source_tag).value}_{transaction_date}_{identity}_{_fmt_magnitude(amount)}"


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def vesting_grant_key(
    *,
    grant_name: str,
    grant_date: str,
    granted: Decimal,
    clock: Callable[[], int] = _epoch_millis,
) -> str:
    """Key for a vesting-portfolio grant snapshot.

    Unlike :func:`compute_dedup_key` this is salted with the import time, so
    every import stores a fresh snapshot of each grant. ``clock`` exists so
    callers (and tests) can pin the salt.
    """

    # TODO: confirm whether grant snapshots should dedupe like ledger rows;
    # dropping the clock salt makes re-imports idempotent but stops history.
    parts = (
        f"{SourceTag.VESTING_CSV.value}_grant",
        _norm_part(grant_name),
        grant_date,
        f"{granted.normalize():f}",
        str(clock()),
    )
    return "_".join(parts)


__all__ = ["compute_dedup_key", "vesting_grant_key"]
