"""
app/api/routers package marker.
"""

from app.api.routers.subscription_analytics_router import router as subscription_analytics_router

__all__ = [
    "subscription_analytics_router",
]
