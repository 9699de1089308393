"""
app/schemas/subscription_analytics.py

Response schemas for subscription analytics endpoints.

Monetary fields are serialised as decimals (strings in JSON) so that MRR
and revenue totals keep their cents exactly.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.services.subscription_analytics_service import SeriesResult, StatePage
from lifecycle.types import (
    MetricsComparison,
    PlanBreakdown,
    ReconstructedSubscriptionState,
    RenewalSummary,
    SubscriptionMetrics,
)


class SubscriptionMetricsResponse(BaseModel):
    """
    Portfolio metrics for one window.
    """

    active_subscriptions: int = Field(..., ge=0)
    mrr: Decimal
    new_subscriptions: int = Field(..., ge=0)
    cancellations: int = Field(..., ge=0)
    churn_rate: float = Field(..., ge=0.0, le=1.0)
    arpu: Decimal | None = None

    @classmethod
    def from_metrics(cls, metrics: SubscriptionMetrics) -> "SubscriptionMetricsResponse":
        return cls(
            active_subscriptions=metrics.active_subscriptions,
            mrr=metrics.mrr,
            new_subscriptions=metrics.new_subscriptions,
            cancellations=metrics.cancellations,
            churn_rate=metrics.churn_rate,
            arpu=metrics.arpu,
        )


class MetricsComparisonResponse(BaseModel):
    """
    Current window, previous window of equal length and their relative change.

    Growth fields are ``null`` when the previous value is zero.
    """

    start_date: str
    end_date: str
    timezone: str
    current: SubscriptionMetricsResponse
    previous: SubscriptionMetricsResponse
    active_subscriptions_growth: float | None = None
    mrr_growth: float | None = None
    new_subscriptions_growth: float | None = None
    cancellations_growth: float | None = None
    churn_rate_change: float

    @classmethod
    def from_comparison(
        cls,
        comparison: MetricsComparison,
        *,
        start_date: str,
        end_date: str,
        timezone: str,
    ) -> "MetricsComparisonResponse":
        return cls(
            start_date=start_date,
            end_date=end_date,
            timezone=timezone,
            current=SubscriptionMetricsResponse.from_metrics(comparison.current),
            previous=SubscriptionMetricsResponse.from_metrics(comparison.previous),
            active_subscriptions_growth=comparison.active_subscriptions_growth,
            mrr_growth=comparison.mrr_growth,
            new_subscriptions_growth=comparison.new_subscriptions_growth,
            cancellations_growth=comparison.cancellations_growth,
            churn_rate_change=comparison.churn_rate_change,
        )


class SubscriptionStateResponse(BaseModel):
    subscription_id: str
    customer_id: str | None = None
    plan: str
    amount: Decimal
    is_active: bool
    status: str
    created_at: datetime
    last_event_at: datetime
    last_event_type: str

    @classmethod
    def from_state(cls, state: ReconstructedSubscriptionState) -> "SubscriptionStateResponse":
        return cls(
            subscription_id=state.subscription_id,
            customer_id=state.customer_id,
            plan=state.plan,
            amount=state.amount,
            is_active=state.is_active,
            status="active" if state.is_active else "canceled",
            created_at=state.created_at,
            last_event_at=state.last_event_at,
            last_event_type=state.last_event_type,
        )


class SubscriptionStatePageResponse(BaseModel):
    items: list[SubscriptionStateResponse] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)

    @classmethod
    def from_page(cls, page: StatePage) -> "SubscriptionStatePageResponse":
        return cls(
            items=[SubscriptionStateResponse.from_state(state) for state in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
        )


class SeriesPointResponse(BaseModel):
    key: str
    label: str
    start: datetime
    end: datetime
    count: int = Field(..., ge=0)
    revenue: Decimal


class SeriesResponse(BaseModel):
    """
    Dense bucket series: one point per bucket in the span, zero-filled.
    """

    kind: str
    granularity: str
    start_date: str
    end_date: str
    total_count: int = Field(..., ge=0)
    total_revenue: Decimal
    points: list[SeriesPointResponse] = Field(default_factory=list)

    @classmethod
    def from_result(
        cls,
        result: SeriesResult,
        *,
        start_date: str,
        end_date: str,
    ) -> "SeriesResponse":
        points = [
            SeriesPointResponse(
                key=point.bucket.key,
                label=point.bucket.label,
                start=point.bucket.start,
                end=point.bucket.end,
                count=point.count,
                revenue=point.revenue,
            )
            for point in result.points
        ]
        return cls(
            kind=result.kind.value,
            granularity=result.granularity.value,
            start_date=start_date,
            end_date=end_date,
            total_count=sum(point.count for point in points),
            total_revenue=sum((point.revenue for point in points), Decimal("0")),
            points=points,
        )


class RenewalSummaryResponse(BaseModel):
    total_renewals: int = Field(..., ge=0)
    total_revenue: Decimal
    average_value: Decimal
    renewals_by_plan: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_summary(cls, summary: RenewalSummary) -> "RenewalSummaryResponse":
        return cls(
            total_renewals=summary.total_renewals,
            total_revenue=summary.total_revenue,
            average_value=summary.average_value,
            renewals_by_plan=dict(summary.renewals_by_plan),
        )


class PlanBreakdownResponse(BaseModel):
    plan: str
    active_subscriptions: int = Field(..., ge=0)
    mrr: Decimal

    @classmethod
    def from_breakdown(cls, row: PlanBreakdown) -> "PlanBreakdownResponse":
        return cls(plan=row.plan, active_subscriptions=row.active_subscriptions, mrr=row.mrr)


class HealthResponse(BaseModel):
    status: str = "ok"
    timezone: str
