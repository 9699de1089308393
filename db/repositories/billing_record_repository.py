"""
db/repositories/billing_record_repository.py

Read-only access to ``billing_records`` for series bucketing.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.billing_record import BillingRecord, BillingRecordStatus

logger = logging.getLogger(__name__)


class BillingRecordRepository:
    """
    Queries over ``billing_records``.

    All methods are read-only and never mutate session state.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_records(
        self,
        *,
        record_type: str,
        start: datetime,
        end: datetime,
        dimension: str | None = None,
        status: str | None = BillingRecordStatus.COMPLETED,
    ) -> Sequence[Mapping[str, Any]]:
        """
        Return ``{"timestamp", "value", "dimension"}`` rows of *record_type*
        with ``occurred_at`` inside ``[start, end]``, oldest first.

        Only completed records are returned unless *status* is overridden;
        pass ``None`` to disable the status filter.
        """
        stmt = select(
            BillingRecord.occurred_at.label("timestamp"),
            BillingRecord.value.label("value"),
            BillingRecord.dimension.label("dimension"),
        ).where(
            BillingRecord.record_type == record_type,
            BillingRecord.occurred_at >= start,
            BillingRecord.occurred_at <= end,
        )
        if dimension is not None:
            stmt = stmt.where(BillingRecord.dimension == dimension)
        if status is not None:
            stmt = stmt.where(BillingRecord.status == status)
        stmt = stmt.order_by(BillingRecord.occurred_at.asc())

        rows = self._session.execute(stmt).mappings().all()
        logger.debug(
            "list_records type=%r dimension=%r [%s, %s] -> %d rows",
            record_type,
            dimension,
            start.isoformat(),
            end.isoformat(),
            len(rows),
        )
        return rows
