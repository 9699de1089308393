"""
tests/test_subscription_analytics_service.py

Pytest unit tests for SubscriptionAnalyticsService.

Repositories are replaced by in-memory fakes; no database is touched.

Coverage
--------
- Metrics comparison over civil-date windows, optional plan restriction
- State listing: status synonyms, search, created window, pagination
- Series from billing records and from classified events
- Request validation and upstream failure wrapping
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from app.services.subscription_analytics_service import (
    AnalyticsRequestError,
    SeriesKind,
    SubscriptionAnalyticsService,
)
from db.repositories.errors import UpstreamFetchError
from lifecycle.timezones import TimeZoneNormalizer
from lifecycle.types import Granularity, RawEvent
from tests.fakes import FailingRepository, FakeBillingRepository, FakeEventRepository, event_rows
from tests.helpers import utc

DB = object()


@pytest.fixture()
def event_repository(portfolio: list[RawEvent]) -> FakeEventRepository:
    return FakeEventRepository(event_rows(portfolio))


@pytest.fixture()
def billing_repository() -> FakeBillingRepository:
    return FakeBillingRepository(
        [
            {"record_type": "sale", "timestamp": utc(2024, 3, 4, 12), "value": Decimal("50.00"), "dimension": "Ebook"},
            {"record_type": "sale", "timestamp": utc(2024, 3, 4, 15), "value": Decimal("25.00"), "dimension": "Course"},
            {"record_type": "renewal", "timestamp": utc(2024, 3, 5, 12), "value": Decimal("100.00"), "dimension": "Pro"},
            {"record_type": "sale", "timestamp": utc(2024, 4, 1, 12), "value": Decimal("10.00"), "dimension": "Ebook"},
        ]
    )


@pytest.fixture()
def service(
    event_repository: FakeEventRepository,
    billing_repository: FakeBillingRepository,
) -> SubscriptionAnalyticsService:
    return SubscriptionAnalyticsService(
        normalizer=TimeZoneNormalizer("America/Sao_Paulo"),
        event_repository_factory=lambda db: event_repository,
        billing_repository_factory=lambda db: billing_repository,
        default_page_size=50,
        max_page_size=100,
    )


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class TestGetMetrics:
    def test_april_against_march(self, service: SubscriptionAnalyticsService) -> None:
        comparison = service.get_metrics(db=DB, start_date=date(2024, 4, 1), end_date=date(2024, 4, 30))
        assert comparison.current.active_subscriptions == 2
        assert comparison.current.mrr == Decimal("220")
        assert comparison.current.new_subscriptions == 0
        assert comparison.previous.new_subscriptions == 1
        assert comparison.previous.cancellations == 1
        assert comparison.mrr_growth == pytest.approx(0.0)

    def test_history_is_fetched_unfiltered(
        self, service: SubscriptionAnalyticsService, event_repository: FakeEventRepository
    ) -> None:
        service.get_metrics(db=DB, start_date=date(2024, 4, 1), end_date=date(2024, 4, 30))
        assert event_repository.calls == [
            {"subscription_ids": None, "plan": None, "start": None, "end": None}
        ]

    def test_plan_restriction_uses_reconstructed_plan(self, service: SubscriptionAnalyticsService) -> None:
        basic = service.get_metrics(
            db=DB, start_date=date(2024, 3, 1), end_date=date(2024, 3, 31), plan="Basic"
        )
        assert basic.current.active_subscriptions == 0
        # The cancellation row carries no plan but still counts for Basic.
        assert basic.current.cancellations == 1

        pro = service.get_metrics(db=DB, start_date=date(2024, 3, 1), end_date=date(2024, 3, 31), plan="Pro")
        assert pro.current.active_subscriptions == 2
        assert pro.current.cancellations == 0

    def test_inverted_window_is_rejected(self, service: SubscriptionAnalyticsService) -> None:
        with pytest.raises(AnalyticsRequestError):
            service.get_metrics(db=DB, start_date=date(2024, 4, 30), end_date=date(2024, 4, 1))

    def test_upstream_failure_is_wrapped(self) -> None:
        service = SubscriptionAnalyticsService(
            normalizer=TimeZoneNormalizer(),
            event_repository_factory=lambda db: FailingRepository(),
        )
        with pytest.raises(UpstreamFetchError):
            service.get_metrics(db=DB, start_date=date(2024, 4, 1), end_date=date(2024, 4, 30))


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------


class TestListStates:
    def test_all_states_newest_first(self, service: SubscriptionAnalyticsService) -> None:
        page = service.list_states(db=DB)
        assert [state.subscription_id for state in page.items] == ["sub-3", "sub-2", "sub-1"]
        assert page.total == 3
        assert page.page_size == 50

    @pytest.mark.parametrize("status", ["active", "ATIVO", "ativa"])
    def test_active_synonyms(self, service: SubscriptionAnalyticsService, status: str) -> None:
        page = service.list_states(db=DB, status=status)
        assert [state.subscription_id for state in page.items] == ["sub-3", "sub-1"]

    @pytest.mark.parametrize("status", ["canceled", "cancelled", "cancelado", "Cancelada"])
    def test_canceled_synonyms(self, service: SubscriptionAnalyticsService, status: str) -> None:
        page = service.list_states(db=DB, status=status)
        assert [state.subscription_id for state in page.items] == ["sub-2"]

    def test_unknown_status_is_rejected(self, service: SubscriptionAnalyticsService) -> None:
        with pytest.raises(AnalyticsRequestError):
            service.list_states(db=DB, status="paused")

    def test_search_matches_customer_and_plan(self, service: SubscriptionAnalyticsService) -> None:
        assert [s.subscription_id for s in service.list_states(db=DB, search="C-2").items] == ["sub-2"]
        assert service.list_states(db=DB, search="pro").total == 2

    def test_plan_filter(self, service: SubscriptionAnalyticsService) -> None:
        assert [s.subscription_id for s in service.list_states(db=DB, plan="Basic").items] == ["sub-2"]

    def test_created_window(self, service: SubscriptionAnalyticsService) -> None:
        page = service.list_states(db=DB, created_from=date(2024, 3, 5))
        assert [state.subscription_id for state in page.items] == ["sub-3", "sub-2"]
        page = service.list_states(db=DB, created_to=date(2024, 3, 5))
        assert [state.subscription_id for state in page.items] == ["sub-2", "sub-1"]

    def test_inverted_created_window_is_rejected(self, service: SubscriptionAnalyticsService) -> None:
        with pytest.raises(AnalyticsRequestError):
            service.list_states(db=DB, created_from=date(2024, 3, 6), created_to=date(2024, 3, 5))

    def test_pagination(self, service: SubscriptionAnalyticsService) -> None:
        page = service.list_states(db=DB, page=2, page_size=2)
        assert [state.subscription_id for state in page.items] == ["sub-1"]
        assert page.total == 3

    def test_page_size_is_capped(self, service: SubscriptionAnalyticsService) -> None:
        assert service.list_states(db=DB, page_size=10_000).page_size == 100

    @pytest.mark.parametrize("page, page_size", [(0, 10), (1, 0)])
    def test_invalid_pagination_is_rejected(
        self, service: SubscriptionAnalyticsService, page: int, page_size: int
    ) -> None:
        with pytest.raises(AnalyticsRequestError):
            service.list_states(db=DB, page=page, page_size=page_size)


# ---------------------------------------------------------------------------
# Series
# ---------------------------------------------------------------------------


class TestGetSeries:
    def test_sales_series_from_billing_records(
        self, service: SubscriptionAnalyticsService, billing_repository: FakeBillingRepository
    ) -> None:
        result = service.get_series(db=DB, kind="sales", start_date=date(2024, 3, 4), end_date=date(2024, 3, 5))
        assert result.kind is SeriesKind.SALES
        assert result.granularity is Granularity.DAY
        assert [point.count for point in result.points] == [2, 0]
        assert result.points[0].revenue == Decimal("75.00")
        assert billing_repository.calls[0]["record_type"] == "sale"

    def test_dimension_filters_billing_records(self, service: SubscriptionAnalyticsService) -> None:
        result = service.get_series(
            db=DB, kind="sales", start_date=date(2024, 3, 4), end_date=date(2024, 3, 5), dimension="Course"
        )
        assert sum(point.count for point in result.points) == 1
        assert sum((point.revenue for point in result.points), Decimal("0")) == Decimal("25.00")

    def test_cancellation_series_from_events(self, service: SubscriptionAnalyticsService) -> None:
        result = service.get_series(
            db=DB, kind=SeriesKind.CANCELLATIONS, start_date=date(2024, 3, 1), end_date=date(2024, 3, 31)
        )
        assert result.granularity is Granularity.DAY
        assert len(result.points) == 31
        hits = {point.bucket.key: point.count for point in result.points if point.count}
        assert hits == {"2024-03-20": 1}

    def test_cancellation_dimension_uses_reconstructed_plan(self, service: SubscriptionAnalyticsService) -> None:
        # sub-2's cancellation row has no plan; it still belongs to Basic.
        window = {"start_date": date(2024, 3, 1), "end_date": date(2024, 3, 31)}
        basic = service.get_series(db=DB, kind="cancellations", dimension="Basic", **window)
        metrics = service.get_metrics(db=DB, plan="Basic", **window)
        assert sum(point.count for point in basic.points) == metrics.current.cancellations == 1

        pro = service.get_series(db=DB, kind="cancellations", dimension="Pro", **window)
        assert sum(point.count for point in pro.points) == 0

    def test_explicit_granularity_wins(self, service: SubscriptionAnalyticsService) -> None:
        result = service.get_series(
            db=DB,
            kind="renewals",
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
            granularity=Granularity.MONTH,
        )
        assert [point.bucket.key for point in result.points] == ["2024-03"]
        assert result.points[0].revenue == Decimal("100.00")

    def test_unknown_kind_is_rejected(self, service: SubscriptionAnalyticsService) -> None:
        with pytest.raises(AnalyticsRequestError):
            service.get_series(db=DB, kind="refunds", start_date=date(2024, 3, 1), end_date=date(2024, 3, 2))

    def test_billing_failure_is_wrapped(self) -> None:
        service = SubscriptionAnalyticsService(
            normalizer=TimeZoneNormalizer(),
            billing_repository_factory=lambda db: FailingRepository(),
        )
        with pytest.raises(UpstreamFetchError):
            service.get_series(db=DB, kind="sales", start_date=date(2024, 3, 1), end_date=date(2024, 3, 2))


# ---------------------------------------------------------------------------
# Breakdowns
# ---------------------------------------------------------------------------


class TestBreakdowns:
    def test_renewal_summary(self, service: SubscriptionAnalyticsService) -> None:
        summary = service.get_renewal_summary(db=DB, start_date=date(2024, 4, 1), end_date=date(2024, 4, 30))
        assert summary.total_renewals == 1
        assert summary.total_revenue == Decimal("100")
        assert summary.renewals_by_plan == {"Pro": 1}

    def test_plan_breakdown(self, service: SubscriptionAnalyticsService) -> None:
        rows = service.get_plan_breakdown(db=DB)
        assert [(row.plan, row.active_subscriptions, row.mrr) for row in rows] == [("Pro", 2, Decimal("220"))]
