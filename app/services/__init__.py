"""
app/services package marker.
"""

from app.services.subscription_analytics_service import (
    AnalyticsRequestError,
    SeriesKind,
    SeriesResult,
    StatePage,
    SubscriptionAnalyticsService,
    get_subscription_analytics_service,
)

__all__ = [
    "AnalyticsRequestError",
    "SeriesKind",
    "SeriesResult",
    "StatePage",
    "SubscriptionAnalyticsService",
    "get_subscription_analytics_service",
]
