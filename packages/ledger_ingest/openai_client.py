"""Remote classifier and translator ports backed by the OpenAI Responses API.

The core never creates a client on its own. Callers build one (for example
with :func:`build_openai_client`) and pass the resulting port objects into
:class:`~ledger_ingest.categorization.CategorizationEngine` and
:func:`~ledger_ingest.api.ingest_batch`. No side effects occur at import time.
"""

from __future__ import annotations

import os
import random
import time
from decimal import Decimal
from typing import Any, Protocol

from openai import OpenAI

from .categories import TAXONOMY
from .logging_setup import get_logger
from .models import ClassificationRequest

_logger = get_logger("ledger_ingest.openai_client")

MODEL_ENV = "LEDGER_INGEST_MODEL"
DEFAULT_MODEL = "gpt-4o-mini"

_MAX_ATTEMPTS: int = 2
_BACKOFF_SEC: float = 0.5
_JITTER_PCT: float = 0.20

_CATEGORY_HINTS: dict[str, str] = {
    "Food & Dining": "restaurants, groceries, cafes",
    "Transportation": "gas, parking, taxis, public transport",
    "Shopping": "retail stores, online shopping",
    "Bills & Utilities": "electricity, water, internet, phone",
    "Rent": "rental payments",
    "Child Care": "daycare, babysitter, nanny, standing orders for childcare",
    "Credit Card Payment": "payments to credit card companies like Max",
    "Bank Fees": "bank commissions and fees",
    "Savings Withdrawal": "withdrawals from savings accounts like Phoenix",
    "Healthcare": "doctor, pharmacy, medical",
    "Entertainment": "movies, streaming, events",
    "Education": "courses, books, training",
    "Travel": "flights, hotels, vacation",
    "Salary": "income from employment",
    "Investment Returns": "dividends, interest",
}


def _category_lines() -> str:
    lines = []
    for name in TAXONOMY:
        hint = _CATEGORY_HINTS.get(name)
        lines.append(f"- {name} ({hint})" if hint else f"- {name}")
    return "\n".join(lines)


CLASSIFIER_INSTRUCTIONS = (
    "You are a financial categorization assistant. "
    "Categorize transactions into one of these categories:\n"
    f"{_category_lines()}\n\n"
    'Respond with JSON: {"category": "Category Name", "confidence": 0.0-1.0, '
    '"reasoning": "brief explanation"}'
)

TRANSLATOR_INSTRUCTIONS = (
    "You are a translator. Translate Hebrew bank transaction descriptions to clear English. "
    "Keep it concise and preserve important details like account numbers, names, and "
    "transaction types. Return only the translation, no explanations."
)


class CategoryClassifier(Protocol):
    def classify(self, request: ClassificationRequest) -> str:
        """Return the raw model text for ``request``; may raise."""
        ...


class DescriptionTranslator(Protocol):
    def translate(self, text: str) -> str:
        """Return an English rendering of ``text``; may raise."""
        ...


def build_classifier_input(request: ClassificationRequest) -> str:
    lines = ["Categorize this transaction:", f"Description: {request.description}"]
    if request.merchant:
        lines.append(f"Merchant: {request.merchant}")
    if request.amount is not None and request.amount != Decimal(0):
        lines.append(f"Amount: {request.amount} ILS")
    if request.account_type:
        lines.append(f"Account: {request.account_type}")
    return "\n".join(lines)


def extract_output_text(resp: Any) -> str:
    """Locate the text output of a Responses API result.

    Prefers ``resp.output_text``; falls back to ``resp.output[0].content[0].text``.
    Raises ``ValueError`` when neither is present.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        try:
            first = resp.output[0] if getattr(resp, "output", None) else None
            content = getattr(first, "content", None)
            if content:
                txt_obj = getattr(content[0], "text", None)
                if isinstance(txt_obj, str):
                    text = txt_obj
                else:
                    maybe_val = getattr(txt_obj, "value", None)
                    if isinstance(maybe_val, str):
                        text = maybe_val
        except Exception:  # noqa: BLE001 - tolerate SDK shape differences
            text = None
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")
    return text


def _is_retryable(exc: BaseException) -> bool:
    """True only for HTTP 429 and 5xx errors."""

    sc = getattr(exc, "status_code", None)
    return isinstance(sc, int) and (sc == 429 or 500 <= sc < 600)


def _sleep_backoff() -> None:
    jitter = _BACKOFF_SEC * _JITTER_PCT
    time.sleep(max(0.0, _BACKOFF_SEC + random.uniform(-jitter, jitter)))


def _create_text(client: OpenAI, *, model: str, instructions: str, user_input: str) -> str:
    attempt = 1
    while True:
        try:
            resp = client.responses.create(
                model=model,
                instructions=instructions,
                input=user_input,
                temperature=0.3,
                max_output_tokens=150,
            )
            return extract_output_text(resp).strip()
        except Exception as e:  # noqa: BLE001
            if attempt >= _MAX_ATTEMPTS or not _is_retryable(e):
                raise
            _logger.warning(
                "openai_client:retry attempt=%d error=%s", attempt, e.__class__.__name__
            )
            attempt += 1
            _sleep_backoff()


def resolve_model(model: str | None = None) -> str:
    return model or os.getenv(MODEL_ENV) or DEFAULT_MODEL


class OpenAIClassifier:
    """``CategoryClassifier`` backed by an explicit ``openai.OpenAI`` client."""

    def __init__(self, client: OpenAI, *, model: str | None = None) -> None:
        self._client = client
        self.model = resolve_model(model)

    def classify(self, request: ClassificationRequest) -> str:
        return _create_text(
            self._client,
            model=self.model,
            instructions=CLASSIFIER_INSTRUCTIONS,
            user_input=build_classifier_input(request),
        )


class OpenAITranslator:
    """``DescriptionTranslator`` backed by an explicit ``openai.OpenAI`` client."""

    def __init__(self, client: OpenAI, *, model: str | None = None) -> None:
        self._client = client
        self.model = resolve_model(model)

    def translate(self, text: str) -> str:
        return _create_text(
            self._client,
            model=self.model,
            instructions=TRANSLATOR_INSTRUCTIONS,
            user_input=f"Translate this Hebrew bank transaction description to English: {text}",
        )


def build_openai_client() -> OpenAI | None:
    """Return a client when ``OPENAI_API_KEY`` is configured, else ``None``."""

    if not os.getenv("OPENAI_API_KEY", "").strip():
        _logger.info("openai_client: OPENAI_API_KEY not set; remote ports disabled")
        return None
    return OpenAI()


__all__ = [
    "CategoryClassifier",
    "DescriptionTranslator",
    "OpenAIClassifier",
    "OpenAITranslator",
    "build_classifier_input",
    "build_openai_client",
    "extract_output_text",
]
