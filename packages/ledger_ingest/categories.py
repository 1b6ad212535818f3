"""Category taxonomy and rule tables for the local categorization tiers.

Rules are data. The shipped recipient table is empty; users provide their own
ordered list as JSON (see :func:`load_recipient_rules`). Order is significant
in every table: the first matching rule wins, so narrower multi-token rules
must precede broader single-token ones.

JSON shape of a recipient rule file::

    [
      {"category": "Rent", "any_of": ["landlord name"], "confidence": 0.95,
       "reasoning": "Transfer to landlord (Rent)"},
      {"category": "Child Care", "all_of": ["first", "last"], "none_of": ["other"]}
    ]
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

TAXONOMY: tuple[str, ...] = (
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Bills & Utilities",
    "Rent",
    "Child Care",
    "Credit Card Payment",
    "Bank Fees",
    "Savings Withdrawal",
    "Healthcare",
    "Entertainment",
    "Education",
    "Travel",
    "Salary",
    "Investment Returns",
    "Other",
)
DEFAULT_CATEGORY = "Other"
RECIPIENT_RULES_ENV = "LEDGER_INGEST_RECIPIENT_RULES"


class CategoryRule(BaseModel):
    """One ordered rule: case-insensitive substring tests against a text.

    Matches when every ``all_of`` term is present, at least one ``any_of``
    term is present (when any are given) and no ``none_of`` term is present.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    category: str
    kind: Literal["recipient", "keyword"] = "recipient"
    any_of: tuple[str, ...] = ()
    all_of: tuple[str, ...] = ()
    none_of: tuple[str, ...] = ()
    confidence: float = Field(default=0.95, ge=0.0, le=1.0)
    reasoning: str = ""

    @field_validator("category")
    @classmethod
    def _category_in_taxonomy(cls, v: str) -> str:
        v = v.strip()
        if v not in TAXONOMY:
            raise ValueError(f"category {v!r} is not in the taxonomy")
        return v

    @field_validator("any_of", "all_of", "none_of")
    @classmethod
    def _lower_terms(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(t.strip().lower() for t in v if t.strip())

    @model_validator(mode="after")
    def _needs_a_positive_term(self) -> CategoryRule:
        if not self.any_of and not self.all_of:
            raise ValueError("rule needs at least one any_of or all_of term")
        return self

    def matches(self, text: str) -> bool:
        lowered = text.lower()
        if any(t in lowered for t in self.none_of):
            return False
        if not all(t in lowered for t in self.all_of):
            return False
        return not self.any_of or any(t in lowered for t in self.any_of)

    @property
    def explanation(self) -> str:
        if self.reasoning:
            return self.reasoning
        return f"Transfer recipient rule ({self.category})"


_RULE_LIST = TypeAdapter(list[CategoryRule])


def _keyword(category: str, *terms: str) -> CategoryRule:
    return CategoryRule(
        category=category,
        kind="keyword",
        any_of=terms,
        confidence=0.7,
        reasoning="Keyword-based categorization",
    )


# ---------------------------------------------------------------------------
# Tier 0: brand override
# ---------------------------------------------------------------------------

BRAND_OVERRIDE_TERMS: tuple[str, ...] = ("מקס", "max")
BRAND_OVERRIDE_CATEGORY = "Credit Card Payment"
BRAND_OVERRIDE_CONFIDENCE = 0.9
BRAND_OVERRIDE_REASONING = "Max credit card transaction (hardcoded pattern)"

# ---------------------------------------------------------------------------
# Tier 1: transfer recipients
# ---------------------------------------------------------------------------

# Hebrew "transfer to / to / from" followed by a name, up to a digit or the end.
TRANSFER_RECIPIENT_PATTERN = r"העברה\s+(?:אל|ל|מאת)[:\s]+([א-ת\s]+?)(?:\d|$)"

DEFAULT_RECIPIENT_RULES: tuple[CategoryRule, ...] = ()

# ---------------------------------------------------------------------------
# Tier 2: keyword map (insertion order is evaluation order)
# ---------------------------------------------------------------------------

KEYWORD_RULES: tuple[CategoryRule, ...] = (
    _keyword(
        "Food & Dining",
        "restaurant", "cafe", "food", "grocery", "supermarket", "מסעדה", "מזון", "קפה",
    ),
    _keyword("Transportation", "gas", "fuel", "taxi", "uber", "parking", "דלק", "חניה", "תחבורה"),
    _keyword("Shopping", "store", "shop", "purchase", "buy", "קנייה", "חנות"),
    _keyword(
        "Bills & Utilities",
        "electric", "water", "internet", "phone", "utility", "חשבון", "חשמל", "מים", "דירה",
    ),
    _keyword("Rent", "rent", "lease", "שכירות"),
    _keyword(
        "Child Care",
        "childcare", "babysitter", "nanny", "daycare", "גן", "מטפלת", "הוראת קבע",
    ),
    _keyword(
        "Credit Card Payment",
        "max", "credit card", "מקס איט", "card payment", "מקס איט פיננ",
    ),
    _keyword("Bank Fees", "fee", "commission", "עמל", "bank fee", "עמלה"),
    _keyword(
        "Savings Withdrawal",
        "phoenix", "savings withdrawal", "הפניקס", "withdrawal", "הפניקס חברה",
    ),
    _keyword(
        "Healthcare",
        "doctor", "pharmacy", "medicine", "medical", "רופא", "תרופה", "בית מרקחת",
    ),
    _keyword("Entertainment", "movie", "cinema", "netflix", "streaming", "entertainment"),
    _keyword("Education", "course", "education", "school", "learning", "חינוך"),
    _keyword("Travel", "flight", "hotel", "travel", "vacation", "נסיעה"),
    _keyword("Salary", "salary", "wage", "paycheck", "משכורת", "העברת משכורת"),
    _keyword("Investment Returns", "dividend", "interest", "return", "yield"),
)

# ---------------------------------------------------------------------------
# Tier 3: default
# ---------------------------------------------------------------------------

DEFAULT_CONFIDENCE = 0.5
DEFAULT_REASONING = "No matching keywords found"


def parse_recipient_rules(text: str) -> tuple[CategoryRule, ...]:
    """Validate a JSON list of recipient rules, preserving order.

    Raises ``pydantic.ValidationError`` on malformed input.
    """

    rules = _RULE_LIST.validate_json(text)
    return tuple(r.model_copy(update={"kind": "recipient"}) for r in rules)


def load_recipient_rules(path: str | Path | None = None) -> tuple[CategoryRule, ...]:
    """Load recipient rules from ``path`` or ``$LEDGER_INGEST_RECIPIENT_RULES``.

    Returns the (empty) shipped table when neither is set.
    """

    source = path if path is not None else os.getenv(RECIPIENT_RULES_ENV)
    if not source:
        return DEFAULT_RECIPIENT_RULES
    return parse_recipient_rules(Path(source).read_text(encoding="utf-8"))


__all__ = [
    "TAXONOMY",
    "DEFAULT_CATEGORY",
    "CategoryRule",
    "KEYWORD_RULES",
    "DEFAULT_RECIPIENT_RULES",
    "TRANSFER_RECIPIENT_PATTERN",
    "load_recipient_rules",
    "parse_recipient_rules",
]
