"""
app/schemas package marker.
"""

from app.schemas.subscription_analytics import (
    HealthResponse,
    MetricsComparisonResponse,
    PlanBreakdownResponse,
    RenewalSummaryResponse,
    SeriesPointResponse,
    SeriesResponse,
    SubscriptionMetricsResponse,
    SubscriptionStatePageResponse,
    SubscriptionStateResponse,
)

__all__ = [
    "HealthResponse",
    "MetricsComparisonResponse",
    "PlanBreakdownResponse",
    "RenewalSummaryResponse",
    "SeriesPointResponse",
    "SeriesResponse",
    "SubscriptionMetricsResponse",
    "SubscriptionStatePageResponse",
    "SubscriptionStateResponse",
]
