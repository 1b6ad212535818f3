"""Data models and type aliases for ``ledger_ingest``.

Domain records are frozen dataclasses: adapters create them, the
categorization step produces an updated copy with ``dataclasses.replace``, and
nothing mutates them afterwards. Decisions coming back from a remote
classifier are untrusted input and are validated with Pydantic instead.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import TypeAlias

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import UnknownSourceError

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SourceTag(StrEnum):
    """Import source formats understood by the adapters."""

    LEDGER_FLAT = "ledger_flat"
    LEDGER_HTML = "ledger_html"
    CARD_CSV = "card_csv"
    SAVINGS_CSV = "savings_csv"
    VESTING_CSV = "vesting_csv"
    GENERIC_CSV = "generic_csv"

    @classmethod
    def resolve(cls, value: str | SourceTag | None) -> SourceTag:
        """Map a caller-supplied tag (or legacy alias) onto a ``SourceTag``.

        A missing or blank tag selects the catch-all ``generic_csv`` format.
        Any other unrecognized value raises :class:`UnknownSourceError`.
        """

        if isinstance(value, SourceTag):
            return value
        if value is None or not value.strip():
            return cls.GENERIC_CSV
        key = value.strip().lower().replace("-", "_")
        try:
            return cls(key)
        except ValueError:
            pass
        alias = _SOURCE_ALIASES.get(key)
        if alias is None:
            raise UnknownSourceError(value)
        return alias


# Tags used by the older bank-specific import screens.
_SOURCE_ALIASES: dict[str, SourceTag] = {
    "leumi_csv": SourceTag.LEDGER_FLAT,
    "leumi_html": SourceTag.LEDGER_HTML,
    "max_csv": SourceTag.CARD_CSV,
    "phoenix_csv": SourceTag.SAVINGS_CSV,
    "ibi_csv": SourceTag.VESTING_CSV,
    "generic": SourceTag.GENERIC_CSV,
}


class FileTypeHint(StrEnum):
    CSV = "csv"
    XLS = "xls"
    XLS_HTML = "xls_html"


class TransactionType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"
    INVESTMENT = "investment"


# ---------------------------------------------------------------------------
# Batch input / output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawImportBatch:
    """Raw text of one export file plus the caller's idea of its format."""

    source_tag: SourceTag | str | None
    raw_text: str
    file_type_hint: FileTypeHint | str | None = None


@dataclass(frozen=True, slots=True)
class ParsedTransaction:
    """A single normalized ledger row.

    ``amount`` is always a non-negative magnitude; direction lives in
    ``type``. Categorization fields start at the default bucket and are filled
    in exactly once by the categorization step.
    """

    transaction_date: str
    description: str
    amount: Decimal
    type: TransactionType
    dedup_key: str
    merchant: str | None = None
    reference: str | None = None
    category_suggestion: str = "Other"
    confidence: float = 0.5
    notes: str | None = None
    tags: tuple[str, ...] = ()

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the parsing-time sign convention (expenses negative)."""

        return -self.amount if self.type is TransactionType.EXPENSE else self.amount


@dataclass(frozen=True, slots=True)
class ImportMetadata:
    """Account-level facts that can only be read off the whole file."""

    latest_balance: Decimal | None = None
    total_estimated_value: Decimal | None = None
    total_sellable_shares: Decimal | None = None
    grant_count: int | None = None


@dataclass(frozen=True, slots=True)
class AdapterOutput:
    transactions: list[ParsedTransaction] = field(default_factory=list)
    metadata: ImportMetadata | None = None


@dataclass(frozen=True, slots=True)
class ImportResult:
    """Finished batch handed to the persistence collaborator."""

    source_tag: SourceTag
    transactions: list[ParsedTransaction]
    metadata: ImportMetadata | None = None


# ---------------------------------------------------------------------------
# Categorization I/O
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ClassificationRequest:
    description: str
    amount: Decimal | None = None
    merchant: str | None = None
    account_type: str | None = None


class CategoryDecision(BaseModel):
    """Validated category decision, local or remote.

    Taxonomy membership is enforced by the engine, which owns the allowed set.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    category: str
    confidence: float
    reasoning: str

    @field_validator("category")
    @classmethod
    def _category_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("category must be non-empty")
        return v

    @field_validator("confidence")
    @classmethod
    def _confidence_in_unit_interval(cls, v: float) -> float:
        fv = float(v)
        if 0.0 <= fv <= 1.0:
            return fv
        raise ValueError("confidence must be within [0,1]")


Transactions: TypeAlias = Sequence[ParsedTransaction]


__all__ = [
    "SourceTag",
    "FileTypeHint",
    "TransactionType",
    "RawImportBatch",
    "ParsedTransaction",
    "ImportMetadata",
    "AdapterOutput",
    "ImportResult",
    "ClassificationRequest",
    "CategoryDecision",
    "Transactions",
]
