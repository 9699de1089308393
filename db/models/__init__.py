"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.billing_record import BillingRecord
from db.models.subscription_event import SubscriptionEvent

__all__ = [
    "BillingRecord",
    "SubscriptionEvent",
]
