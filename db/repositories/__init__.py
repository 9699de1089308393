"""
Repository layer exports.
"""

from db.repositories.billing_record_repository import BillingRecordRepository
from db.repositories.errors import RecordStoreError, UpstreamFetchError
from db.repositories.subscription_event_repository import SubscriptionEventRepository

__all__ = [
    "BillingRecordRepository",
    "SubscriptionEventRepository",
    "RecordStoreError",
    "UpstreamFetchError",
]
