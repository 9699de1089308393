"""
lifecycle/classifier.py

Maps free-text event-type labels to a :class:`SemanticEventCategory`.
No replay logic, no I/O outside of optional rule-file loading.

Labels arrive in mixed case and in more than one language
(``"subscription_created"``, ``"Assinatura Cancelada"``, ``"renewal"``,
``"Pagamento aprovado"``).  Matching is substring containment against an
ordered rule table, so ``"cancelada"`` matches the marker ``"cancel"``.

Precedence
----------
Rules are evaluated in table order and the first match wins.  The default
table lists end markers first, so a label that looks like both a
cancellation and a payment (``"payment_cancelled"``) always ends the
subscription.

Start markers are checked before payment markers, and the bare
``"subscription"``/``"assinatura"`` markers are start markers.  Compound
labels such as ``"subscription_renewed"`` or ``"Pagamento de assinatura"``
therefore classify as LIFECYCLE_START and are not counted as renewals.
Stores that emit such labels for recurring charges should ship a rule file
with narrower start markers.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from lifecycle.types import SemanticEventCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationRule:
    """One row of the rule table: a category and its lower-case markers."""

    category: SemanticEventCategory
    markers: tuple[str, ...]

    def matches(self, normalized_label: str) -> bool:
        return any(marker in normalized_label for marker in self.markers)


DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        category=SemanticEventCategory.LIFECYCLE_END,
        markers=(
            "cancel",
            "churn",
            "expir",
            "terminat",
            "encerr",
            "inativ",
            "inactiv",
            "deactivat",
            "desativ",
            "suspen",
            "chargeback",
            "refund",
            "reembols",
            "estorn",
        ),
    ),
    ClassificationRule(
        category=SemanticEventCategory.LIFECYCLE_START,
        markers=(
            "creat",
            "criad",
            "subscription",
            "subscribe",
            "assinatura",
            "start",
            "inici",
            "signup",
            "sign_up",
            "sign-up",
            "activat",
            "ativad",
            "trial",
        ),
    ),
    ClassificationRule(
        category=SemanticEventCategory.RECURRING_PAYMENT,
        markers=(
            "renew",
            "renova",
            "payment",
            "pagamento",
            "paid",
            "pago",
            "charge",
            "cobran",
            "invoice",
            "fatura",
            "recurr",
            "recorr",
            "approved",
            "aprovad",
            "billing",
        ),
    ),
)


class EventClassifier:
    """
    Prioritized substring classifier.

    Parameters
    ----------
    rules:
        Ordered rule table.  Defaults to :data:`DEFAULT_RULES`.  Markers are
        lower-cased and stripped on construction; empty markers are dropped
        because they would match every label.
    """

    def __init__(self, rules: Sequence[ClassificationRule] | None = None) -> None:
        source = DEFAULT_RULES if rules is None else rules
        self._rules: tuple[ClassificationRule, ...] = tuple(
            ClassificationRule(category=rule.category, markers=_clean_markers(rule.markers))
            for rule in source
        )

    @property
    def rules(self) -> tuple[ClassificationRule, ...]:
        return self._rules

    def classify(self, event_type: str | None) -> SemanticEventCategory | None:
        """
        Return the category of *event_type*, or ``None`` when no marker matches.

        An unmatched label is not an error; the caller still records it as
        the last event of the subscription.
        """
        if not event_type:
            return None
        normalized = event_type.strip().lower()
        if not normalized:
            return None
        for rule in self._rules:
            if rule.matches(normalized):
                return rule.category
        return None


def _clean_markers(markers: Iterable[str]) -> tuple[str, ...]:
    cleaned = (marker.strip().lower() for marker in markers)
    return tuple(marker for marker in cleaned if marker)


# ---------------------------------------------------------------------------
# Rule files
# ---------------------------------------------------------------------------


def load_rules_file(path: str | Path) -> tuple[ClassificationRule, ...]:
    """
    Read an ordered rule table from a JSON file.

    Expected shape::

        {
            "rules": [
                {"category": "lifecycle_end",     "markers": ["cancel", "expir"]},
                {"category": "lifecycle_start",   "markers": ["creat"]},
                {"category": "recurring_payment", "markers": ["renew"]}
            ]
        }

    Raises
    ------
    OSError
        When the file cannot be read.
    ValueError
        When the content is not valid JSON or does not match the shape
        above (unknown category, markers not a list of strings).
    """
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    entries = data.get("rules") if isinstance(data, dict) else None
    if not isinstance(entries, list) or not entries:
        raise ValueError(f"Rule file {str(path)!r} must contain a non-empty 'rules' list.")

    rules: list[ClassificationRule] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValueError(f"Rule #{index} in {str(path)!r} is not an object.")
        try:
            category = SemanticEventCategory(str(entry.get("category", "")).strip().lower())
        except ValueError as exc:
            raise ValueError(
                f"Rule #{index} in {str(path)!r} has unknown category {entry.get('category')!r}."
            ) from exc
        markers = entry.get("markers")
        if not isinstance(markers, list) or not all(isinstance(m, str) for m in markers):
            raise ValueError(f"Rule #{index} in {str(path)!r} must list string markers.")
        rules.append(ClassificationRule(category=category, markers=tuple(markers)))

    logger.info("Loaded %d classification rules from %s", len(rules), path)
    return tuple(rules)


def build_classifier(rules_path: str | Path | None = None) -> EventClassifier:
    """Classifier from *rules_path* when given, otherwise the default table."""
    if rules_path is None:
        return EventClassifier()
    return EventClassifier(load_rules_file(rules_path))
