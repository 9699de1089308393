"""
lifecycle/metrics.py

Portfolio metrics derived from reconstructed subscription states.

Formulas
--------
Active subscriptions = count(states where is_active)
MRR                  = sum(amount of active states)
New subscriptions    = count(active states with created_at in range)
Cancellations        = count(end events with event_date in range)
Churn Rate           = cancellations / (active + cancellations),  0 when the
                       denominator is zero

Lifecycle state depends on history outside the requested window, so the
reconstruction always runs over the *entire* event set handed in; only the
period counters look at the window.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal

from lifecycle.reconstruction import LifecycleReconstructor, is_replayable
from lifecycle.timezones import previous_window
from lifecycle.types import (
    ZERO,
    DateRange,
    MetricsComparison,
    PlanBreakdown,
    RawEvent,
    ReconstructedSubscriptionState,
    RenewalSummary,
    SemanticEventCategory,
    SubscriptionMetrics,
)

logger = logging.getLogger(__name__)

UNKNOWN_PLAN = "Unknown"


class MetricsAggregator:
    """
    Computes :class:`SubscriptionMetrics` from a raw event set.

    Parameters
    ----------
    reconstructor:
        Replay engine.  Defaults to a :class:`LifecycleReconstructor` with
        the built-in classification rules.
    count_unique_cancellations:
        When ``True`` the cancellation counter counts distinct subscriptions
        cancelled in the window instead of raw cancellation events.  Off by
        default: a subscription cancelled twice in one window counts twice.
    """

    def __init__(
        self,
        reconstructor: LifecycleReconstructor | None = None,
        *,
        count_unique_cancellations: bool = False,
    ) -> None:
        self._reconstructor = reconstructor or LifecycleReconstructor()
        self._count_unique_cancellations = count_unique_cancellations

    @property
    def reconstructor(self) -> LifecycleReconstructor:
        return self._reconstructor

    # ------------------------------------------------------------------
    # Core metrics
    # ------------------------------------------------------------------

    def aggregate(self, events: Iterable[RawEvent], date_range: DateRange) -> SubscriptionMetrics:
        """
        Compute portfolio metrics for *date_range*.

        An empty event set yields all-zero metrics.
        """
        event_list = list(events)
        states = self._reconstructor.reconstruct(event_list)
        return self.aggregate_states(states, event_list, date_range)

    def aggregate_states(
        self,
        states: Mapping[str, ReconstructedSubscriptionState],
        events: Sequence[RawEvent],
        date_range: DateRange,
    ) -> SubscriptionMetrics:
        """Same as :meth:`aggregate` for states that were already reconstructed."""
        active = [state for state in states.values() if state.is_active]
        active_count = len(active)
        mrr = sum((state.amount for state in active), ZERO)
        new_count = sum(1 for state in active if date_range.contains(state.created_at))
        cancellations = self.count_cancellations(events, date_range)
        churn_rate = _churn_rate(cancellations, active_count)

        logger.debug(
            "aggregate [%s, %s]: active=%d mrr=%s new=%d cancellations=%d churn=%.6f",
            date_range.start.isoformat(),
            date_range.end.isoformat(),
            active_count,
            mrr,
            new_count,
            cancellations,
            churn_rate,
        )
        return SubscriptionMetrics(
            active_subscriptions=active_count,
            mrr=mrr,
            new_subscriptions=new_count,
            cancellations=cancellations,
            churn_rate=churn_rate,
        )

    def count_cancellations(self, events: Iterable[RawEvent], date_range: DateRange) -> int:
        """Cancellation events (or cancelled subscriptions) inside *date_range*."""
        in_window = self.events_in_range(
            events, date_range, SemanticEventCategory.LIFECYCLE_END
        )
        if self._count_unique_cancellations:
            return len({event.subscription_id for event in in_window})
        return len(in_window)

    def events_in_range(
        self,
        events: Iterable[RawEvent],
        date_range: DateRange,
        category: SemanticEventCategory,
    ) -> list[RawEvent]:
        """Well-formed events of *category* whose ``event_date`` lies in the window."""
        classifier = self._reconstructor.classifier
        return [
            event
            for event in events
            if is_replayable(event)
            and date_range.contains(event.event_date)
            and classifier.classify(event.event_type) is category
        ]

    # ------------------------------------------------------------------
    # Period comparison
    # ------------------------------------------------------------------

    def compare(self, events: Iterable[RawEvent], date_range: DateRange) -> MetricsComparison:
        """
        Metrics for *date_range* and for the equally long window before it.

        The previous window is evaluated as of its own end: only events
        dated at or before that instant take part in its reconstruction.
        """
        event_list = [event for event in events if is_replayable(event)]
        current = self.aggregate(event_list, date_range)

        prior_range = previous_window(date_range)
        history = [event for event in event_list if event.event_date <= prior_range.end]
        previous = self.aggregate(history, prior_range)

        return MetricsComparison(
            current=current,
            previous=previous,
            active_subscriptions_growth=_growth(
                current.active_subscriptions, previous.active_subscriptions
            ),
            mrr_growth=_growth(current.mrr, previous.mrr),
            new_subscriptions_growth=_growth(current.new_subscriptions, previous.new_subscriptions),
            cancellations_growth=_growth(current.cancellations, previous.cancellations),
            churn_rate_change=current.churn_rate - previous.churn_rate,
        )

    # ------------------------------------------------------------------
    # Breakdowns
    # ------------------------------------------------------------------

    def renewal_summary(self, events: Iterable[RawEvent], date_range: DateRange) -> RenewalSummary:
        """Recurring payments inside *date_range*: count, revenue, average, per plan."""
        renewals = self.events_in_range(
            events, date_range, SemanticEventCategory.RECURRING_PAYMENT
        )
        total_revenue = sum((event.amount or ZERO for event in renewals), ZERO)
        by_plan = Counter(event.plan or UNKNOWN_PLAN for event in renewals)
        average = total_revenue / len(renewals) if renewals else ZERO
        return RenewalSummary(
            total_renewals=len(renewals),
            total_revenue=total_revenue,
            average_value=average,
            renewals_by_plan=dict(sorted(by_plan.items())),
        )


def plan_breakdown(states: Iterable[ReconstructedSubscriptionState]) -> list[PlanBreakdown]:
    """Active subscriptions and MRR per plan, highest MRR first."""
    counts: dict[str, int] = defaultdict(int)
    revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for state in states:
        if not state.is_active:
            continue
        plan = state.plan or UNKNOWN_PLAN
        counts[plan] += 1
        revenue[plan] += state.amount
    rows = [
        PlanBreakdown(plan=plan, active_subscriptions=counts[plan], mrr=revenue[plan])
        for plan in counts
    ]
    return sorted(rows, key=lambda row: (-row.mrr, row.plan))


# ---------------------------------------------------------------------------
# Pure formula functions
# ---------------------------------------------------------------------------


def _churn_rate(cancellations: int, active: int) -> float:
    """
    Churn Rate = cancellations / (active + cancellations).

    Returns 0.0 when both are zero.
    """
    denominator = active + cancellations
    if denominator == 0:
        return 0.0
    return cancellations / denominator


def _growth(current: int | Decimal, previous: int | Decimal) -> float | None:
    """
    Growth = (current - previous) / previous.

    Returns None when previous is zero.
    """
    if previous == 0:
        return None
    return float((current - previous) / previous)
