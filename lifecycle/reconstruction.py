"""
lifecycle/reconstruction.py

Rebuilds the current state of every subscription by replaying its events.

Algorithm
---------
1. Group events by ``subscription_id`` (input order preserved per group).
2. Stable-sort each group by ``event_date``; ties keep input order because
   the source does not guarantee sub-second ordering.
3. Replay each group through the classifier-derived transitions:

    category           | is_active | created_at      | plan / amount
    -------------------|-----------|-----------------|----------------------
    LIFECYCLE_START    | True      | set if unset    | taken from the event
    RECURRING_PAYMENT  | True      | unchanged       | amount from the event,
                       |           |                 | plan only if present
    LIFECYCLE_END      | False     | unchanged       | unchanged
    unclassified       | unchanged | unchanged       | unchanged

   Every event, classified or not, updates ``last_event_at`` and
   ``last_event_type``.
4. Groups without a start event fall back to their earliest event date
   for ``created_at``.

The result is a pure function of the event set: permuting the input (with
distinct timestamps per subscription) or calling twice yields the same
states.  Duplicate deliveries replay harmlessly because every transition
is idempotent.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from lifecycle.classifier import EventClassifier
from lifecycle.types import (
    ZERO,
    RawEvent,
    ReconstructedSubscriptionState,
    SemanticEventCategory,
)

logger = logging.getLogger(__name__)


@dataclass
class _ReplayState:
    """Mutable accumulator for one subscription during replay."""

    subscription_id: str
    customer_id: str | None = None
    plan: str = ""
    amount: Decimal = ZERO
    is_active: bool = False
    created_at: datetime | None = None
    first_event_at: datetime | None = None
    last_event_at: datetime | None = None
    last_event_type: str = ""

    def freeze(self) -> ReconstructedSubscriptionState:
        if self.first_event_at is None or self.last_event_at is None:
            raise ValueError(f"No events replayed for subscription {self.subscription_id!r}")
        return ReconstructedSubscriptionState(
            subscription_id=self.subscription_id,
            customer_id=self.customer_id,
            plan=self.plan,
            amount=self.amount,
            is_active=self.is_active,
            created_at=self.created_at if self.created_at is not None else self.first_event_at,
            last_event_at=self.last_event_at,
            last_event_type=self.last_event_type,
        )


class LifecycleReconstructor:
    """
    Stateless replay engine.

    Parameters
    ----------
    classifier:
        Label classifier used during replay.  Defaults to an
        :class:`EventClassifier` with the built-in rule table.
    """

    def __init__(self, classifier: EventClassifier | None = None) -> None:
        self._classifier = classifier or EventClassifier()

    @property
    def classifier(self) -> EventClassifier:
        return self._classifier

    def reconstruct(self, events: Iterable[RawEvent]) -> dict[str, ReconstructedSubscriptionState]:
        """
        Return one reconstructed state per distinct ``subscription_id``.

        Events missing ``subscription_id`` or ``event_date`` are skipped with
        a warning; they never abort the replay of other events.
        """
        groups = group_by_subscription(events)
        states = {
            subscription_id: self.replay(group)
            for subscription_id, group in groups.items()
        }
        logger.debug(
            "reconstruct: %d subscriptions, %d active",
            len(states),
            sum(1 for state in states.values() if state.is_active),
        )
        return states

    def replay(self, events: list[RawEvent]) -> ReconstructedSubscriptionState:
        """
        Replay the events of a single subscription.

        *events* must be non-empty and share one ``subscription_id``; they
        are sorted here so callers may pass them in any order.
        """
        if not events:
            raise ValueError("replay requires at least one event")

        ordered = sorted(events, key=lambda event: event.event_date)
        state = _ReplayState(subscription_id=ordered[0].subscription_id)

        for event in ordered:
            self._apply(state, event)

        return state.freeze()

    def _apply(self, state: _ReplayState, event: RawEvent) -> None:
        category = self._classifier.classify(event.event_type)

        if state.first_event_at is None:
            state.first_event_at = event.event_date
        if event.customer_id:
            state.customer_id = event.customer_id

        if category is SemanticEventCategory.LIFECYCLE_START:
            state.is_active = True
            if state.created_at is None:
                state.created_at = event.event_date
            if event.plan:
                state.plan = event.plan
            if event.amount is not None:
                state.amount = event.amount
        elif category is SemanticEventCategory.RECURRING_PAYMENT:
            state.is_active = True
            if event.plan:
                state.plan = event.plan
            if event.amount is not None:
                state.amount = event.amount
        elif category is SemanticEventCategory.LIFECYCLE_END:
            state.is_active = False

        state.last_event_at = event.event_date
        state.last_event_type = event.event_type or ""


def group_by_subscription(events: Iterable[RawEvent]) -> dict[str, list[RawEvent]]:
    """
    Bucket *events* by subscription, preserving input order within a bucket.

    Malformed events (no ``subscription_id`` or no ``event_date``) are
    dropped with a warning.
    """
    groups: dict[str, list[RawEvent]] = {}
    skipped = 0
    for index, event in enumerate(events):
        if not is_replayable(event):
            skipped += 1
            logger.warning(
                "Skipping malformed event #%d: subscription_id=%r event_date=%r",
                index,
                getattr(event, "subscription_id", None),
                getattr(event, "event_date", None),
            )
            continue
        groups.setdefault(event.subscription_id, []).append(event)
    if skipped:
        logger.warning("group_by_subscription skipped %d malformed event(s)", skipped)
    return groups


def is_replayable(event: RawEvent) -> bool:
    return bool(getattr(event, "subscription_id", None)) and isinstance(
        getattr(event, "event_date", None), datetime
    )
