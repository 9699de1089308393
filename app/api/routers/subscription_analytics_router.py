"""
app/api/routers/subscription_analytics_router.py

Subscription analytics endpoints.

GET /subscriptions/metrics
GET /subscriptions/states
GET /subscriptions/series/{kind}
GET /subscriptions/renewals/summary
GET /subscriptions/plans

Dates are civil calendar dates in the configured analytics timezone
(``ANALYTICS_TIMEZONE``).  All computation lives in
SubscriptionAnalyticsService; the router only handles HTTP plumbing
(parameter parsing, serialisation, error mapping).

Error mapping
-------------
AnalyticsRequestError → 400
UpstreamFetchError    → 503
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import DateWindowQuery, get_date_window
from app.schemas.subscription_analytics import (
    MetricsComparisonResponse,
    PlanBreakdownResponse,
    RenewalSummaryResponse,
    SeriesResponse,
    SubscriptionStatePageResponse,
)
from app.services.subscription_analytics_service import (
    AnalyticsRequestError,
    SubscriptionAnalyticsService,
    get_subscription_analytics_service,
)
from db.repositories.errors import UpstreamFetchError
from db.session import get_db
from lifecycle.types import Granularity

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _bad_request(exc: AnalyticsRequestError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _unavailable(exc: UpstreamFetchError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Subscription records are temporarily unavailable.",
    )


@router.get("/metrics", response_model=MetricsComparisonResponse)
def get_metrics(
    window: DateWindowQuery = Depends(get_date_window),
    plan: str | None = Query(default=None, description="Restrict to one plan"),
    db: Session = Depends(get_db),
    service: SubscriptionAnalyticsService = Depends(get_subscription_analytics_service),
) -> MetricsComparisonResponse:
    """
    Active subscriptions, MRR, new subscriptions, cancellations and churn for
    the window, next to the previous window of equal length.
    """

    try:
        comparison = service.get_metrics(
            db=db,
            start_date=window.start_date,
            end_date=window.end_date,
            plan=plan,
        )
    except AnalyticsRequestError as exc:
        raise _bad_request(exc) from exc
    except UpstreamFetchError as exc:
        raise _unavailable(exc) from exc

    return MetricsComparisonResponse.from_comparison(
        comparison,
        start_date=window.start_date.isoformat(),
        end_date=window.end_date.isoformat(),
        timezone=service.normalizer.tz_name,
    )


@router.get("/states", response_model=SubscriptionStatePageResponse)
def list_states(
    status_filter: str = Query(
        default="all",
        alias="status",
        description="all | active | canceled (ativo, cancelado, cancelled accepted)",
    ),
    plan: str | None = Query(default=None),
    search: str | None = Query(default=None, description="Substring of subscription, customer or plan"),
    created_from: date | None = Query(default=None),
    created_to: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    service: SubscriptionAnalyticsService = Depends(get_subscription_analytics_service),
) -> SubscriptionStatePageResponse:
    """
    Reconstructed per-subscription states, newest first.
    """

    try:
        result = service.list_states(
            db=db,
            status=status_filter,
            plan=plan,
            search=search,
            created_from=created_from,
            created_to=created_to,
            page=page,
            page_size=page_size,
        )
    except AnalyticsRequestError as exc:
        raise _bad_request(exc) from exc
    except UpstreamFetchError as exc:
        raise _unavailable(exc) from exc

    return SubscriptionStatePageResponse.from_page(result)


@router.get("/series/{kind}", response_model=SeriesResponse)
def get_series(
    kind: str,
    window: DateWindowQuery = Depends(get_date_window),
    dimension: str | None = Query(default=None, description="Category dimension or plan"),
    granularity: Granularity | None = Query(default=None, description="Override the automatic bucket unit"),
    db: Session = Depends(get_db),
    service: SubscriptionAnalyticsService = Depends(get_subscription_analytics_service),
) -> SeriesResponse:
    """
    Dense time series of *kind* (sales, renewals, new_subscriptions or
    cancellations) bucketed by hour, day, week or month.
    """

    try:
        result = service.get_series(
            db=db,
            kind=kind,
            start_date=window.start_date,
            end_date=window.end_date,
            dimension=dimension,
            granularity=granularity,
        )
    except AnalyticsRequestError as exc:
        raise _bad_request(exc) from exc
    except UpstreamFetchError as exc:
        raise _unavailable(exc) from exc

    return SeriesResponse.from_result(
        result,
        start_date=window.start_date.isoformat(),
        end_date=window.end_date.isoformat(),
    )


@router.get("/renewals/summary", response_model=RenewalSummaryResponse)
def get_renewal_summary(
    window: DateWindowQuery = Depends(get_date_window),
    plan: str | None = Query(default=None),
    db: Session = Depends(get_db),
    service: SubscriptionAnalyticsService = Depends(get_subscription_analytics_service),
) -> RenewalSummaryResponse:
    try:
        summary = service.get_renewal_summary(
            db=db,
            start_date=window.start_date,
            end_date=window.end_date,
            plan=plan,
        )
    except AnalyticsRequestError as exc:
        raise _bad_request(exc) from exc
    except UpstreamFetchError as exc:
        raise _unavailable(exc) from exc

    return RenewalSummaryResponse.from_summary(summary)


@router.get("/plans", response_model=list[PlanBreakdownResponse])
def get_plan_breakdown(
    db: Session = Depends(get_db),
    service: SubscriptionAnalyticsService = Depends(get_subscription_analytics_service),
) -> list[PlanBreakdownResponse]:
    """
    Active subscriptions and MRR per plan, highest MRR first.
    """

    try:
        rows = service.get_plan_breakdown(db=db)
    except UpstreamFetchError as exc:
        raise _unavailable(exc) from exc

    return [PlanBreakdownResponse.from_breakdown(row) for row in rows]
