import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from ledger_ingest.categories import CategoryRule, load_recipient_rules, parse_recipient_rules
from ledger_ingest.categorization import (
    CategorizationEngine,
    extract_recipient,
    parse_remote_decision,
)
from ledger_ingest.models import ClassificationRequest

RENT_RULES = (
    CategoryRule(category="Rent", any_of=("כהן",), reasoning="Transfer to landlord (Rent)"),
    CategoryRule(category="Child Care", any_of=("דני",), confidence=0.9),
)


class _Classifier:
    def __init__(self, reply):
        self._reply = reply
        self.calls: list[ClassificationRequest] = []

    def classify(self, request):
        self.calls.append(request)
        if isinstance(self._reply, Exception):
            raise self._reply
        return self._reply


def _req(description, merchant=None, amount=None):
    return ClassificationRequest(description=description, merchant=merchant, amount=amount)


def test_extract_recipient_stops_at_digits():
    assert extract_recipient("העברה אל: דני כהן 12-345") == "דני כהן"
    assert extract_recipient("העברה מאת משה") == "משה"
    assert extract_recipient("coffee") is None


def test_brand_override_beats_recipient_rules():
    engine = CategorizationEngine(RENT_RULES)
    decision = engine.categorize(_req("העברה אל: כהן מקס איט 123"))
    assert decision.category == "Credit Card Payment"
    assert decision.confidence == 0.9
    assert decision.reasoning == "Max credit card transaction (hardcoded pattern)"


def test_recipient_rules_apply_in_order():
    engine = CategorizationEngine(RENT_RULES)
    decision = engine.categorize(_req("העברה אל: דני כהן 12-345"))
    assert decision.category == "Rent"
    assert decision.confidence == 0.95
    assert decision.reasoning == "Transfer to landlord (Rent)"

    decision = engine.categorize(_req("העברה אל: דני לוי 99"))
    assert decision.category == "Child Care"
    assert decision.confidence == 0.9


def test_rule_all_of_and_none_of():
    rule = CategoryRule(category="Bills & Utilities", all_of=("ינאי", "טייכמן"))
    assert rule.matches("ינאי טייכמן")
    assert not rule.matches("ינאי")

    rule = CategoryRule(category="Child Care", any_of=("ינאי",), none_of=("טייכמן",))
    assert rule.matches("ינאי שבת")
    assert not rule.matches("ינאי טייכמן")


def test_keyword_tier_uses_insertion_order():
    engine = CategorizationEngine()
    decision = engine.categorize(_req("Restaurant parking validation"))
    assert decision.category == "Food & Dining"
    assert decision.confidence == 0.7
    assert decision.reasoning == "Keyword-based categorization"

    assert engine.categorize(_req("NETFLIX.COM")).category == "Entertainment"
    assert engine.categorize(_req("Payment", merchant="Super Pharm pharmacy")).category == (
        "Healthcare"
    )


def test_default_tier():
    decision = CategorizationEngine().categorize(_req("xyz 123"))
    assert decision.category == "Other"
    assert decision.confidence == 0.5
    assert decision.reasoning == "No matching keywords found"


def test_remote_decision_is_used_when_valid():
    classifier = _Classifier(
        json.dumps({"category": "Travel", "confidence": 0.92, "reasoning": "Airline"})
    )
    engine = CategorizationEngine(classifier=classifier)
    decision = engine.categorize(_req("EL AL 114", amount=Decimal("-900")))
    assert (decision.category, decision.confidence, decision.reasoning) == (
        "Travel",
        0.92,
        "Airline",
    )
    assert classifier.calls[0].amount == Decimal("-900")


def test_remote_is_not_consulted_for_brand_override():
    classifier = _Classifier('{"category": "Travel"}')
    engine = CategorizationEngine(classifier=classifier)
    assert engine.categorize(_req("MAX IT FINANCE")).category == "Credit Card Payment"
    assert classifier.calls == []


@pytest.mark.parametrize(
    "reply",
    [
        RuntimeError("network down"),
        "no idea",
        '{"category": "Travel", "confidence": 1.5}',
        "[]",
        '{"error": "rate limited"}',
        '{"category": "", "confidence": 0.9}',
    ],
)
def test_remote_failure_falls_back_to_local_result(reply):
    request = _req("העברה אל: דני כהן 12-345", merchant="bank transfer")
    remote = CategorizationEngine(RENT_RULES, _Classifier(reply))
    local = CategorizationEngine(RENT_RULES)
    assert remote.categorize(request) == local.categorize(request)
    assert remote.categorize(request) == local.categorize_locally(request)


def test_parse_remote_decision_defaults_and_coercion():
    decision = parse_remote_decision('{"category": "Groceries"}')
    assert decision is not None
    assert decision.category == "Other"
    assert decision.confidence == 0.8
    assert decision.reasoning == "AI-powered categorization"


def test_parse_remote_decision_scavenges_non_json():
    decision = parse_remote_decision('Sure! {"category": "Travel", confidence: high')
    assert decision is not None
    assert (decision.category, decision.confidence, decision.reasoning) == (
        "Travel",
        0.7,
        "AI categorization",
    )
    assert parse_remote_decision("I cannot help with that") is None


def test_load_recipient_rules_from_env(tmp_path, monkeypatch):
    path = tmp_path / "rules.json"
    path.write_text(
        json.dumps([{"category": "Rent", "any_of": ["Landlord"], "confidence": 0.95}]),
        encoding="utf-8",
    )
    assert load_recipient_rules() == ()

    monkeypatch.setenv("LEDGER_INGEST_RECIPIENT_RULES", str(path))
    (rule,) = load_recipient_rules()
    assert rule.category == "Rent"
    assert rule.any_of == ("landlord",)
    assert rule.kind == "recipient"


@pytest.mark.parametrize(
    "payload",
    [
        [{"category": "Not A Category", "any_of": ["x"]}],
        [{"category": "Rent"}],
        [{"category": "Rent", "any_of": ["x"], "confidence": 2}],
    ],
)
def test_parse_recipient_rules_rejects_invalid_rules(payload):
    with pytest.raises(ValidationError):
        parse_recipient_rules(json.dumps(payload))


def test_parse_remote_decision_requires_a_category():
    assert parse_remote_decision('{"error": "rate limited"}') is None
    assert parse_remote_decision('{"category": null, "confidence": 0.9}') is None
    unknown = parse_remote_decision('{"category": "Pets", "confidence": 0.9}')
    assert unknown is not None
    assert (unknown.category, unknown.confidence) == ("Other", 0.9)
