"""Tiered categorization engine.

Evaluation order, first result wins:

0. brand override (card issuer named in the description)
1. remote classifier, when a handle is supplied
2. transfer-recipient rules (user supplied, ordered)
3. keyword map
4. default ``Other``

Remote output is untrusted. It is parsed as JSON and validated with
:class:`~ledger_ingest.models.CategoryDecision`; non-JSON output is scavenged
for a category name; anything else degrades to the local tiers. Without a
remote handle, or when it fails, the result equals :meth:`categorize_locally`.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from .categories import (
    BRAND_OVERRIDE_CATEGORY,
    BRAND_OVERRIDE_CONFIDENCE,
    BRAND_OVERRIDE_REASONING,
    BRAND_OVERRIDE_TERMS,
    DEFAULT_CATEGORY,
    DEFAULT_CONFIDENCE,
    DEFAULT_REASONING,
    DEFAULT_RECIPIENT_RULES,
    KEYWORD_RULES,
    TAXONOMY,
    TRANSFER_RECIPIENT_PATTERN,
    CategoryRule,
)
from .logging_setup import get_logger
from .models import CategoryDecision, ClassificationRequest
from .openai_client import CategoryClassifier

_logger = get_logger("ledger_ingest.categorization")

_RECIPIENT_RE = re.compile(TRANSFER_RECIPIENT_PATTERN)
_SCAVENGE_RE = re.compile(r"category[\"\s:]+[\"']?([^\"'\n]+)[\"']?", re.IGNORECASE)

REMOTE_DEFAULT_CONFIDENCE = 0.8
REMOTE_DEFAULT_REASONING = "AI-powered categorization"
SCAVENGED_CONFIDENCE = 0.7
SCAVENGED_REASONING = "AI categorization"


def _coerce_category(value: Any) -> str:
    name = str(value or "").strip()
    return name if name in TAXONOMY else DEFAULT_CATEGORY


def parse_remote_decision(text: str) -> CategoryDecision | None:
    """Turn raw classifier output into a decision, or ``None`` when unusable.

    A JSON object without a category is unusable. Out-of-taxonomy categories
    are coerced to ``Other``. A missing or zero confidence becomes 0.8;
    missing reasoning gets a generic label.
    """

    try:
        body = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        body = None

    if isinstance(body, Mapping):
        if not str(body.get("category") or "").strip():
            return None
        try:
            return CategoryDecision(
                category=_coerce_category(body.get("category")),
                confidence=body.get("confidence") or REMOTE_DEFAULT_CONFIDENCE,
                reasoning=str(body.get("reasoning") or REMOTE_DEFAULT_REASONING),
            )
        except ValidationError as e:
            _logger.warning("categorization: invalid remote decision %r: %s", text[:200], e)
            return None

    match = _SCAVENGE_RE.search(text or "")
    if match is None:
        return None
    return CategoryDecision(
        category=_coerce_category(match.group(1)),
        confidence=SCAVENGED_CONFIDENCE,
        reasoning=SCAVENGED_REASONING,
    )


def extract_recipient(text: str) -> str | None:
    match = _RECIPIENT_RE.search(text)
    if match is None:
        return None
    return match.group(1).strip() or None


class CategorizationEngine:
    """Single entry point for every categorization call site."""

    def __init__(
        self,
        recipient_rules: Sequence[CategoryRule] = DEFAULT_RECIPIENT_RULES,
        classifier: CategoryClassifier | None = None,
        *,
        keyword_rules: Sequence[CategoryRule] = KEYWORD_RULES,
    ) -> None:
        self.recipient_rules = tuple(recipient_rules)
        self.keyword_rules = tuple(keyword_rules)
        self.classifier = classifier

    @property
    def has_remote(self) -> bool:
        return self.classifier is not None

    def without_remote(self) -> CategorizationEngine:
        return CategorizationEngine(self.recipient_rules, None, keyword_rules=self.keyword_rules)

    # ---- tiers ---------------------------------------------------------------

    @staticmethod
    def _brand_override(description: str) -> CategoryDecision | None:
        lowered = description.lower()
        if any(term in lowered for term in BRAND_OVERRIDE_TERMS):
            return CategoryDecision(
                category=BRAND_OVERRIDE_CATEGORY,
                confidence=BRAND_OVERRIDE_CONFIDENCE,
                reasoning=BRAND_OVERRIDE_REASONING,
            )
        return None

    def _recipient(self, text: str) -> CategoryDecision | None:
        if not self.recipient_rules:
            return None
        recipient = extract_recipient(text)
        if recipient is None:
            return None
        for rule in self.recipient_rules:
            if rule.matches(recipient):
                return CategoryDecision(
                    category=rule.category, confidence=rule.confidence, reasoning=rule.explanation
                )
        return None

    def _keywords(self, text: str) -> CategoryDecision | None:
        for rule in self.keyword_rules:
            if rule.matches(text):
                return CategoryDecision(
                    category=rule.category, confidence=rule.confidence, reasoning=rule.reasoning
                )
        return None

    def _remote(
        self, classifier: CategoryClassifier, request: ClassificationRequest
    ) -> CategoryDecision | None:
        try:
            raw = classifier.classify(request)
        except Exception as e:  # noqa: BLE001 - any remote failure degrades to local tiers
            _logger.warning("categorization: remote classifier failed: %s", e)
            return None
        decision = parse_remote_decision(raw)
        if decision is None:
            _logger.warning("categorization: unusable remote output %r", (raw or "")[:200])
        return decision

    # ---- public API ----------------------------------------------------------

    def categorize_locally(self, request: ClassificationRequest) -> CategoryDecision:
        description = request.description or ""
        override = self._brand_override(description)
        if override is not None:
            return override

        text = f"{description} {request.merchant or ''}".lower()
        decision = self._recipient(text) or self._keywords(text)
        if decision is not None:
            return decision
        return CategoryDecision(
            category=DEFAULT_CATEGORY, confidence=DEFAULT_CONFIDENCE, reasoning=DEFAULT_REASONING
        )

    def categorize(self, request: ClassificationRequest) -> CategoryDecision:
        """Categorize one transaction; never raises for remote failures."""

        override = self._brand_override(request.description or "")
        if override is not None:
            return override
        classifier = self.classifier
        if classifier is not None and (request.description or "").strip():
            decision = self._remote(classifier, request)
            if decision is not None:
                return decision
        return self.categorize_locally(request)


__all__ = ["CategorizationEngine", "extract_recipient", "parse_remote_decision"]
