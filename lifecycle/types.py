"""
lifecycle/types.py

Typed records shared by every component of the lifecycle engine.

Nothing in this module performs I/O.  Instances are produced at the
ingestion boundary (see :mod:`app.validators.record_validator`) or by the
engine itself, and are never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

ZERO = Decimal("0")


class SemanticEventCategory(str, Enum):
    """Closed set of lifecycle meanings a free-text event label can carry."""

    LIFECYCLE_START = "lifecycle_start"
    RECURRING_PAYMENT = "recurring_payment"
    LIFECYCLE_END = "lifecycle_end"


class Granularity(str, Enum):
    """Bucket unit of a time series."""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RawEvent:
    """
    One lifecycle event exactly as the record store delivered it.

    ``event_type`` is unconstrained free text.  ``event_date`` must be a
    timezone-aware instant; naive values are interpreted as UTC by the
    ingestion boundary before an instance is built.
    """

    subscription_id: str
    customer_id: str | None
    event_type: str
    plan: str
    amount: Decimal
    event_date: datetime


@dataclass(frozen=True)
class SeriesRecord:
    """A timestamped monetary record to be counted into a bucket series."""

    timestamp: datetime
    value: Decimal


@dataclass(frozen=True)
class DateRange:
    """Inclusive ``[start, end]`` window of timezone-aware instants."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(
                f"start must not be after end; "
                f"got {self.start.isoformat()} > {self.end.isoformat()}"
            )

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReconstructedSubscriptionState:
    """
    Replay-derived current status of one subscription.

    ``plan`` and ``amount`` come from the last start or payment event;
    a cancellation never overwrites them.
    """

    subscription_id: str
    customer_id: str | None
    plan: str
    amount: Decimal
    is_active: bool
    created_at: datetime
    last_event_at: datetime
    last_event_type: str


@dataclass(frozen=True)
class SubscriptionMetrics:
    """Portfolio metrics for one requested window."""

    active_subscriptions: int = 0
    mrr: Decimal = ZERO
    new_subscriptions: int = 0
    cancellations: int = 0
    churn_rate: float = 0.0

    @property
    def arpu(self) -> Decimal | None:
        """Average recurring amount per active subscription."""
        if self.active_subscriptions == 0:
            return None
        return self.mrr / self.active_subscriptions


@dataclass(frozen=True)
class MetricsComparison:
    """
    Metrics for a window next to the equally long window that precedes it.

    Growth figures are relative changes (``0.1`` = +10 %) and are ``None``
    when the previous value is zero.  ``churn_rate_change`` is the absolute
    difference between the two churn rates.
    """

    current: SubscriptionMetrics
    previous: SubscriptionMetrics
    active_subscriptions_growth: float | None
    mrr_growth: float | None
    new_subscriptions_growth: float | None
    cancellations_growth: float | None
    churn_rate_change: float


@dataclass(frozen=True)
class RenewalSummary:
    total_renewals: int
    total_revenue: Decimal
    average_value: Decimal
    renewals_by_plan: dict[str, int]


@dataclass(frozen=True)
class PlanBreakdown:
    plan: str
    active_subscriptions: int
    mrr: Decimal


@dataclass(frozen=True)
class BucketKey:
    """
    One time bucket of a series.

    ``key`` is unique and sorts in chronological order; ``label`` is the
    short display form (``HH:00`` for hours).  ``start``/``end`` are the
    inclusive local bounds of the bucket.
    """

    key: str
    label: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class AggregateSeriesPoint:
    bucket: BucketKey
    count: int = 0
    revenue: Decimal = ZERO
