"""create subscription_events table

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "subscription_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "subscription_id",
            sa.String(length=255),
            nullable=True,
            comment="Provider subscription identifier",
        ),
        sa.Column("customer_id", sa.String(length=255), nullable=True),
        sa.Column(
            "event_type",
            sa.String(length=255),
            nullable=True,
            comment="Free-text lifecycle label, mixed case and language",
        ),
        sa.Column("plan", sa.String(length=255), nullable=True),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("payment_method", sa.String(length=64), nullable=True),
        sa.Column(
            "event_date",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="When the event happened (UTC)",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_subscription_events_subscription_id",
        "subscription_events",
        ["subscription_id"],
        unique=False,
    )
    op.create_index("ix_subscription_events_event_date", "subscription_events", ["event_date"], unique=False)
    op.create_index("ix_subscription_events_plan", "subscription_events", ["plan"], unique=False)
    op.create_index(
        "ix_subscription_events_subscription_event_date",
        "subscription_events",
        ["subscription_id", "event_date"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_subscription_events_subscription_event_date", table_name="subscription_events")
    op.drop_index("ix_subscription_events_plan", table_name="subscription_events")
    op.drop_index("ix_subscription_events_event_date", table_name="subscription_events")
    op.drop_index("ix_subscription_events_subscription_id", table_name="subscription_events")
    op.drop_table("subscription_events")
