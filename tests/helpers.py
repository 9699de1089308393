"""
tests/helpers.py

Builders for lifecycle events shared across test modules.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from lifecycle.types import RawEvent


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def make_event(
    subscription_id: str,
    event_type: str,
    event_date: datetime,
    *,
    plan: str = "",
    amount: str | Decimal = "0",
    customer_id: str | None = None,
) -> RawEvent:
    return RawEvent(
        subscription_id=subscription_id,
        customer_id=customer_id,
        event_type=event_type,
        plan=plan,
        amount=Decimal(amount),
        event_date=event_date,
    )
