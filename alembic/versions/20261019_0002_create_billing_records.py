"""create billing_records table

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 09:10:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "billing_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "record_type",
            sa.String(length=32),
            nullable=False,
            comment="sale, renewal, new_subscription",
        ),
        sa.Column(
            "dimension",
            sa.String(length=255),
            nullable=True,
            comment="Category dimension: product, plan or creative name",
        ),
        sa.Column("value", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column(
            "status",
            sa.String(length=32),
            nullable=False,
            comment="completed, pending, refunded",
        ),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_billing_records_record_type", "billing_records", ["record_type"], unique=False)
    op.create_index("ix_billing_records_dimension", "billing_records", ["dimension"], unique=False)
    op.create_index("ix_billing_records_occurred_at", "billing_records", ["occurred_at"], unique=False)
    op.create_index(
        "ix_billing_records_type_occurred_at",
        "billing_records",
        ["record_type", "occurred_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_billing_records_type_occurred_at", table_name="billing_records")
    op.drop_index("ix_billing_records_occurred_at", table_name="billing_records")
    op.drop_index("ix_billing_records_dimension", table_name="billing_records")
    op.drop_index("ix_billing_records_record_type", table_name="billing_records")
    op.drop_table("billing_records")
