"""
db/models/subscription_event.py

Append-only lifecycle event log, one row per delivered event.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Numeric, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class SubscriptionEvent(Base):
    """
    Raw lifecycle event as written by the billing provider integration.

    ``event_type`` is free text (``"subscription"``, ``"canceled"``,
    ``"Assinatura Renovada"``, ...).  Rows may be duplicated or arrive out
    of order; the analytics engine tolerates both.
    """

    __tablename__ = "subscription_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    subscription_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Provider subscription identifier",
    )
    customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    event_type: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Free-text lifecycle label, mixed case and language",
    )
    plan: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    event_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the event happened (UTC)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_subscription_events_subscription_id", "subscription_id"),
        Index("ix_subscription_events_event_date", "event_date"),
        Index("ix_subscription_events_plan", "plan"),
        Index(
            "ix_subscription_events_subscription_event_date",
            "subscription_id",
            "event_date",
        ),
    )
