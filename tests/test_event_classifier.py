"""
tests/test_event_classifier.py

Pytest unit tests for EventClassifier and rule-file loading.

Coverage
--------
- Locale-tolerant substring matching (English and Portuguese labels)
- Case and whitespace insensitivity
- Rule precedence (first match wins)
- Unknown, empty and None labels
- Injected rule tables and JSON rule files
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from lifecycle.classifier import (
    DEFAULT_RULES,
    ClassificationRule,
    EventClassifier,
    build_classifier,
    load_rules_file,
)
from lifecycle.types import SemanticEventCategory

START = SemanticEventCategory.LIFECYCLE_START
PAYMENT = SemanticEventCategory.RECURRING_PAYMENT
END = SemanticEventCategory.LIFECYCLE_END


@pytest.fixture()
def classifier() -> EventClassifier:
    return EventClassifier()


# ---------------------------------------------------------------------------
# Default rule table
# ---------------------------------------------------------------------------


class TestDefaultRules:
    def test_portuguese_cancellation_is_lifecycle_end(self, classifier: EventClassifier) -> None:
        """'Assinatura Cancelada' contains 'assinatura' too; end markers win."""
        assert classifier.classify("Assinatura Cancelada") is END

    @pytest.mark.parametrize(
        "label, expected",
        [
            ("subscription", START),
            ("subscription_created", START),
            ("Nova Assinatura", START),
            ("trial_started", START),
            ("renewal", PAYMENT),
            ("Pagamento aprovado", PAYMENT),
            ("invoice.paid", PAYMENT),
            ("canceled", END),
            ("cancelled", END),
            ("subscription_expired", END),
            ("Reembolso", END),
            ("chargeback", END),
        ],
    )
    def test_known_labels(self, classifier: EventClassifier, label: str, expected: SemanticEventCategory) -> None:
        assert classifier.classify(label) is expected

    def test_matching_ignores_case_and_surrounding_whitespace(self, classifier: EventClassifier) -> None:
        assert classifier.classify("  RENEWAL  ") is PAYMENT

    def test_end_marker_takes_precedence_over_payment(self, classifier: EventClassifier) -> None:
        assert classifier.classify("payment_cancelled") is END

    def test_renewal_label_is_not_read_as_a_new_subscription(self, classifier: EventClassifier) -> None:
        assert classifier.classify("renewal") is PAYMENT
        assert classifier.classify("renovação") is PAYMENT

    @pytest.mark.parametrize(
        "label",
        ["subscription_renewed", "subscription_payment", "Assinatura renovada", "Pagamento de assinatura"],
    )
    def test_labels_naming_the_subscription_are_starts(self, classifier: EventClassifier, label: str) -> None:
        assert classifier.classify(label) is START

    def test_narrower_rule_file_markers_recover_renewals(self) -> None:
        custom = EventClassifier(
            [
                ClassificationRule(category=END, markers=("cancel",)),
                ClassificationRule(category=START, markers=("creat",)),
                ClassificationRule(category=PAYMENT, markers=("renew", "renova")),
            ]
        )
        assert custom.classify("subscription_renewed") is PAYMENT
        assert custom.classify("Assinatura renovada") is PAYMENT
        assert custom.classify("subscription_created") is START

    @pytest.mark.parametrize("label", [None, "", "   ", "profile_updated", "login"])
    def test_unmatched_labels_return_none(self, classifier: EventClassifier, label: str | None) -> None:
        assert classifier.classify(label) is None

    def test_default_table_lists_end_markers_first(self) -> None:
        assert DEFAULT_RULES[0].category is END


# ---------------------------------------------------------------------------
# Injected rule tables
# ---------------------------------------------------------------------------


class TestInjectedRules:
    def test_custom_table_replaces_defaults(self) -> None:
        classifier = EventClassifier(
            [ClassificationRule(category=PAYMENT, markers=("mensalidade",))]
        )
        assert classifier.classify("Mensalidade paga") is PAYMENT
        assert classifier.classify("canceled") is None

    def test_table_order_decides_precedence(self) -> None:
        payment_first = EventClassifier(
            [
                ClassificationRule(category=PAYMENT, markers=("payment",)),
                ClassificationRule(category=END, markers=("cancel",)),
            ]
        )
        assert payment_first.classify("payment_cancelled") is PAYMENT

    def test_markers_are_normalized_and_blank_markers_dropped(self) -> None:
        classifier = EventClassifier(
            [ClassificationRule(category=END, markers=("  CHURN ", "", "   "))]
        )
        assert classifier.rules[0].markers == ("churn",)
        assert classifier.classify("profile_updated") is None
        assert classifier.classify("churned") is END


# ---------------------------------------------------------------------------
# Rule files
# ---------------------------------------------------------------------------


class TestRuleFiles:
    def _write(self, tmp_path: Path, payload: object) -> Path:
        path = tmp_path / "rules.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_loads_ordered_rules(self, tmp_path: Path) -> None:
        path = self._write(
            tmp_path,
            {
                "rules": [
                    {"category": "lifecycle_end", "markers": ["baixa"]},
                    {"category": "recurring_payment", "markers": ["mensalidade"]},
                ]
            },
        )
        rules = load_rules_file(path)
        assert [rule.category for rule in rules] == [END, PAYMENT]
        assert rules[0].markers == ("baixa",)

    def test_build_classifier_uses_file_when_given(self, tmp_path: Path) -> None:
        path = self._write(tmp_path, {"rules": [{"category": "lifecycle_start", "markers": ["adesao"]}]})
        classifier = build_classifier(path)
        assert classifier.classify("adesao_confirmada") is START
        assert classifier.classify("subscription") is None

    def test_build_classifier_without_path_uses_defaults(self) -> None:
        assert build_classifier().classify("canceled") is END

    @pytest.mark.parametrize(
        "payload",
        [
            {"rules": []},
            {"rules": [{"category": "refund", "markers": ["x"]}]},
            {"rules": [{"category": "lifecycle_end", "markers": "cancel"}]},
            ["not", "an", "object"],
        ],
    )
    def test_invalid_shapes_raise_value_error(self, tmp_path: Path, payload: object) -> None:
        with pytest.raises(ValueError):
            load_rules_file(self._write(tmp_path, payload))

    def test_invalid_json_raises_value_error(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            load_rules_file(path)

    def test_missing_file_raises_os_error(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            load_rules_file(tmp_path / "missing.json")
