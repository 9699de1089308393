"""
db/models/billing_record.py

Monetary records (sales, renewals, new subscriptions) used for charts.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Numeric, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class BillingRecordType:
    SALE = "sale"
    RENEWAL = "renewal"
    NEW_SUBSCRIPTION = "new_subscription"


class BillingRecordStatus:
    COMPLETED = "completed"
    PENDING = "pending"
    REFUNDED = "refunded"


class BillingRecord(Base):
    __tablename__ = "billing_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    record_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="sale, renewal, new_subscription",
    )
    dimension: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Category dimension: product, plan or creative name",
    )
    value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=BillingRecordStatus.COMPLETED,
        comment="completed, pending, refunded",
    )
    occurred_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_billing_records_record_type", "record_type"),
        Index("ix_billing_records_dimension", "dimension"),
        Index("ix_billing_records_occurred_at", "occurred_at"),
        Index(
            "ix_billing_records_type_occurred_at",
            "record_type",
            "occurred_at",
        ),
    )
