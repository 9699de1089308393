"""
app/services/subscription_analytics_service.py

Request-level orchestration of the lifecycle engine.

Wires the record-store repositories → RecordValidator → lifecycle engine
into one synchronous call per request.  Every layer retains its own
responsibility:

    SubscriptionEventRepository / BillingRecordRepository  → SQL reads
    RecordValidator                                        → strict typing,
                                                             malformed rows skipped
    MetricsAggregator / SeriesBucketizer                   → pure computation

Failure contract
----------------
- Invalid request (start after end, unknown series kind or status filter)
  → raises AnalyticsRequestError before any query runs
- Record-store failure → raises UpstreamFetchError; no partial result is
  computed because replay needs the full per-subscription history
- Malformed rows → skipped with a warning, the request still succeeds

Nothing is cached between calls: each request fetches its own bounded
event set and computes a fresh result.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from enum import Enum
from functools import lru_cache
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_analytics_settings
from app.validators.record_validator import RecordValidator
from db.models.billing_record import BillingRecordType
from db.repositories.billing_record_repository import BillingRecordRepository
from db.repositories.errors import UpstreamFetchError
from db.repositories.subscription_event_repository import SubscriptionEventRepository
from lifecycle.classifier import build_classifier
from lifecycle.metrics import MetricsAggregator, plan_breakdown
from lifecycle.reconstruction import LifecycleReconstructor
from lifecycle.series import SeriesBucketizer, events_as_records
from lifecycle.timezones import TimeZoneNormalizer
from lifecycle.types import (
    AggregateSeriesPoint,
    DateRange,
    Granularity,
    MetricsComparison,
    PlanBreakdown,
    RawEvent,
    ReconstructedSubscriptionState,
    RenewalSummary,
    SemanticEventCategory,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class AnalyticsRequestError(ValueError):
    """
    Raised for requests that cannot be answered as asked.

    No query has been issued when this is raised.
    """


# ---------------------------------------------------------------------------
# Request vocabulary
# ---------------------------------------------------------------------------


class SeriesKind(str, Enum):
    SALES = "sales"
    RENEWALS = "renewals"
    NEW_SUBSCRIPTIONS = "new_subscriptions"
    CANCELLATIONS = "cancellations"


# Kinds read from billing_records; the rest are derived from classified events.
_BILLING_RECORD_TYPES: dict[SeriesKind, str] = {
    SeriesKind.SALES: BillingRecordType.SALE,
    SeriesKind.RENEWALS: BillingRecordType.RENEWAL,
    SeriesKind.NEW_SUBSCRIPTIONS: BillingRecordType.NEW_SUBSCRIPTION,
}
_EVENT_CATEGORIES: dict[SeriesKind, SemanticEventCategory] = {
    SeriesKind.CANCELLATIONS: SemanticEventCategory.LIFECYCLE_END,
}

# Status filter value → required is_active (None = no filter).
_STATUS_FILTERS: dict[str, bool | None] = {
    "all": None,
    "active": True,
    "ativo": True,
    "ativa": True,
    "canceled": False,
    "cancelled": False,
    "cancelado": False,
    "cancelada": False,
    "inactive": False,
}


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatePage:
    items: list[ReconstructedSubscriptionState]
    total: int
    page: int
    page_size: int


@dataclass(frozen=True)
class SeriesResult:
    kind: SeriesKind
    granularity: Granularity
    points: list[AggregateSeriesPoint]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class SubscriptionAnalyticsService:
    """
    Entry point used by the HTTP layer.

    Repositories are instantiated per call because they are bound to a
    request-scoped database session; the factories can be replaced to read
    from another store.
    """

    def __init__(
        self,
        *,
        normalizer: TimeZoneNormalizer,
        aggregator: MetricsAggregator | None = None,
        bucketizer: SeriesBucketizer | None = None,
        validator: RecordValidator | None = None,
        event_repository_factory: Callable[[Session], SubscriptionEventRepository] = SubscriptionEventRepository,
        billing_repository_factory: Callable[[Session], BillingRecordRepository] = BillingRecordRepository,
        default_page_size: int = 50,
        max_page_size: int = 500,
    ) -> None:
        self._normalizer = normalizer
        self._aggregator = aggregator or MetricsAggregator()
        self._bucketizer = bucketizer or SeriesBucketizer(normalizer)
        self._validator = validator or RecordValidator()
        self._event_repository_factory = event_repository_factory
        self._billing_repository_factory = billing_repository_factory
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    @property
    def normalizer(self) -> TimeZoneNormalizer:
        return self._normalizer

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def get_metrics(
        self,
        *,
        db: Session,
        start_date: date,
        end_date: date,
        plan: str | None = None,
    ) -> MetricsComparison:
        """
        Metrics for the civil dates ``[start_date, end_date]`` compared with
        the equally long window before them.

        *plan* restricts the portfolio to subscriptions whose reconstructed
        plan equals it; history is always fetched in full.
        """
        window = self._window(start_date, end_date)
        run_start = time.monotonic()

        events = self._fetch_events(db)
        if plan is not None:
            events = self._restrict_to_plan(events, plan)
        comparison = self._aggregator.compare(events, window)

        logger.info(
            "get_metrics [%s, %s] plan=%r events=%d active=%d elapsed=%.3fs",
            start_date.isoformat(),
            end_date.isoformat(),
            plan,
            len(events),
            comparison.current.active_subscriptions,
            time.monotonic() - run_start,
        )
        return comparison

    def get_renewal_summary(
        self,
        *,
        db: Session,
        start_date: date,
        end_date: date,
        plan: str | None = None,
    ) -> RenewalSummary:
        """Recurring payments recorded in the window, optionally for one plan."""
        window = self._window(start_date, end_date)
        events = self._fetch_events(db, plan=plan, start=window.start, end=window.end)
        return self._aggregator.renewal_summary(events, window)

    def get_plan_breakdown(self, *, db: Session) -> list[PlanBreakdown]:
        """Active subscriptions and MRR per plan over the full history."""
        events = self._fetch_events(db)
        states = self._aggregator.reconstructor.reconstruct(events)
        return plan_breakdown(states.values())

    # ------------------------------------------------------------------
    # Per-subscription states
    # ------------------------------------------------------------------

    def list_states(
        self,
        *,
        db: Session,
        status: str = "all",
        plan: str | None = None,
        search: str | None = None,
        created_from: date | None = None,
        created_to: date | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> StatePage:
        """
        Reconstructed states filtered, sorted newest ``created_at`` first and
        paginated.

        *status* accepts ``all``, ``active`` or ``canceled`` and their
        synonyms, case-insensitively.  *search* is a case-insensitive
        substring of the subscription id, customer id or plan.
        """
        wanted_active = _parse_status(status)
        size = self._page_size(page_size)
        if page < 1:
            raise AnalyticsRequestError(f"page must be >= 1; got {page}")
        if created_from is not None and created_to is not None:
            self._window(created_from, created_to)
        created_after = (
            self._normalizer.date_range(created_from, created_from).start
            if created_from is not None
            else None
        )
        created_before = (
            self._normalizer.date_range(created_to, created_to).end
            if created_to is not None
            else None
        )

        events = self._fetch_events(db)
        states = self._aggregator.reconstructor.reconstruct(events).values()

        needle = (search or "").strip().lower()
        selected = [
            state
            for state in states
            if (wanted_active is None or state.is_active is wanted_active)
            and (plan is None or state.plan == plan)
            and (created_after is None or state.created_at >= created_after)
            and (created_before is None or state.created_at <= created_before)
            and (not needle or _matches_search(state, needle))
        ]
        selected.sort(key=lambda state: state.subscription_id)
        selected.sort(key=lambda state: state.created_at, reverse=True)

        offset = (page - 1) * size
        return StatePage(
            items=selected[offset : offset + size],
            total=len(selected),
            page=page,
            page_size=size,
        )

    # ------------------------------------------------------------------
    # Series
    # ------------------------------------------------------------------

    def get_series(
        self,
        *,
        db: Session,
        kind: SeriesKind | str,
        start_date: date,
        end_date: date,
        dimension: str | None = None,
        granularity: Granularity | None = None,
    ) -> SeriesResult:
        """
        Dense bucket series of *kind* over ``[start_date, end_date]``.

        The granularity is chosen from the span unless given explicitly.
        *dimension* filters billing records by their category dimension and
        event-derived series by the reconstructed plan of each subscription,
        the same restriction :meth:`get_metrics` applies.
        """
        series_kind = _parse_series_kind(kind)
        window = self._window(start_date, end_date)
        unit = granularity or self._bucketizer.selector.select_granularity(start_date, end_date)
        run_start = time.monotonic()

        if series_kind in _BILLING_RECORD_TYPES:
            rows = self._fetch_billing_records(
                db,
                record_type=_BILLING_RECORD_TYPES[series_kind],
                window=window,
                dimension=dimension,
            )
            records = self._validator.parse_series_records(rows).records
        else:
            events = self._fetch_events(db)
            if dimension is not None:
                events = self._restrict_to_plan(events, dimension)
            qualifying = self._aggregator.events_in_range(
                events, window, _EVENT_CATEGORIES[series_kind]
            )
            records = events_as_records(qualifying)

        points = self._bucketizer.bucketize(records, start_date, end_date, unit)
        logger.info(
            "get_series kind=%s [%s, %s] granularity=%s records=%d buckets=%d elapsed=%.3fs",
            series_kind.value,
            start_date.isoformat(),
            end_date.isoformat(),
            unit.value,
            len(records),
            len(points),
            time.monotonic() - run_start,
        )
        return SeriesResult(kind=series_kind, granularity=unit, points=points)

    # ------------------------------------------------------------------
    # Internal: fetching
    # ------------------------------------------------------------------

    def _fetch_events(self, db: Session, **filters: Any) -> list[RawEvent]:
        """
        Read and parse event rows.

        Raises
        ------
        UpstreamFetchError
            Wraps any ``SQLAlchemyError`` raised by the repository.
        """
        repository = self._event_repository_factory(db)
        try:
            rows = repository.list_events(**filters)
        except SQLAlchemyError as exc:
            logger.error("Event fetch failed filters=%r: %s", filters, exc, exc_info=True)
            raise UpstreamFetchError(f"Failed to fetch subscription events: {exc}") from exc
        return self._validator.parse_events(rows).records

    def _fetch_billing_records(
        self,
        db: Session,
        *,
        record_type: str,
        window: DateRange,
        dimension: str | None,
    ) -> Sequence[Mapping[str, Any]]:
        repository = self._billing_repository_factory(db)
        try:
            return repository.list_records(
                record_type=record_type,
                start=window.start,
                end=window.end,
                dimension=dimension,
            )
        except SQLAlchemyError as exc:
            logger.error(
                "Billing record fetch failed type=%r dimension=%r: %s",
                record_type,
                dimension,
                exc,
                exc_info=True,
            )
            raise UpstreamFetchError(f"Failed to fetch billing records: {exc}") from exc

    # ------------------------------------------------------------------
    # Internal: helpers
    # ------------------------------------------------------------------

    def _window(self, start_date: date, end_date: date) -> DateRange:
        if start_date > end_date:
            raise AnalyticsRequestError(
                f"start_date must not be after end_date; "
                f"got {start_date.isoformat()} > {end_date.isoformat()}"
            )
        return self._normalizer.date_range(start_date, end_date)

    def _page_size(self, requested: int | None) -> int:
        if requested is None:
            return self._default_page_size
        if requested < 1:
            raise AnalyticsRequestError(f"page_size must be >= 1; got {requested}")
        return min(requested, self._max_page_size)

    def _restrict_to_plan(self, events: list[RawEvent], plan: str) -> list[RawEvent]:
        states = self._aggregator.reconstructor.reconstruct(events)
        keep = {subscription_id for subscription_id, state in states.items() if state.plan == plan}
        return [event for event in events if event.subscription_id in keep]


def _parse_status(status: str) -> bool | None:
    normalized = (status or "all").strip().lower()
    if normalized not in _STATUS_FILTERS:
        raise AnalyticsRequestError(
            f"Unknown status filter {status!r}. Valid values: {sorted(_STATUS_FILTERS)}"
        )
    return _STATUS_FILTERS[normalized]


def _parse_series_kind(kind: SeriesKind | str) -> SeriesKind:
    try:
        return SeriesKind(kind)
    except ValueError as exc:
        raise AnalyticsRequestError(
            f"Unknown series kind {kind!r}. Valid kinds: {[k.value for k in SeriesKind]}"
        ) from exc


def _matches_search(state: ReconstructedSubscriptionState, needle: str) -> bool:
    haystacks = (state.subscription_id, state.customer_id or "", state.plan)
    return any(needle in value.lower() for value in haystacks)


@lru_cache(maxsize=1)
def get_subscription_analytics_service() -> SubscriptionAnalyticsService:
    """
    Build and cache the analytics service with env-driven settings.
    """
    settings = get_analytics_settings()
    classifier = build_classifier(settings.classification_rules_path)
    return SubscriptionAnalyticsService(
        normalizer=TimeZoneNormalizer(settings.timezone),
        aggregator=MetricsAggregator(
            LifecycleReconstructor(classifier),
            count_unique_cancellations=settings.count_unique_cancellations,
        ),
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )
