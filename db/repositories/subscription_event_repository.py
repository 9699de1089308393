"""
db/repositories/subscription_event_repository.py

Read-only access to the ``subscription_events`` log.

Rows are returned as plain mappings; turning them into typed ``RawEvent``
instances (and discarding malformed rows) happens at the ingestion
boundary in :mod:`app.validators.record_validator`.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.subscription_event import SubscriptionEvent

logger = logging.getLogger(__name__)

_EVENT_COLUMNS = (
    SubscriptionEvent.subscription_id,
    SubscriptionEvent.customer_id,
    SubscriptionEvent.event_type,
    SubscriptionEvent.plan,
    SubscriptionEvent.amount,
    SubscriptionEvent.event_date,
)


class SubscriptionEventRepository:
    """
    Queries over ``subscription_events``.

    All methods are read-only and never mutate session state.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_events(
        self,
        *,
        subscription_ids: Collection[str] | None = None,
        plan: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Sequence[Mapping[str, Any]]:
        """
        Return event rows matching every given filter, oldest first.

        Filters
        -------
        subscription_ids:
            Restrict to these subscriptions.  An empty collection returns
            no rows without querying.
        plan:
            Exact plan name.
        start, end:
            Inclusive ``event_date`` bounds (timezone-aware UTC).

        Ordering is only a convenience; the engine re-sorts per subscription.
        """
        if subscription_ids is not None and not subscription_ids:
            return []

        stmt = select(*_EVENT_COLUMNS)
        if subscription_ids is not None:
            stmt = stmt.where(SubscriptionEvent.subscription_id.in_(list(subscription_ids)))
        if plan is not None:
            stmt = stmt.where(SubscriptionEvent.plan == plan)
        if start is not None:
            stmt = stmt.where(SubscriptionEvent.event_date >= start)
        if end is not None:
            stmt = stmt.where(SubscriptionEvent.event_date <= end)
        stmt = stmt.order_by(SubscriptionEvent.event_date.asc(), SubscriptionEvent.created_at.asc())

        rows = self._session.execute(stmt).mappings().all()
        logger.debug(
            "list_events plan=%r ids=%s [%s, %s] -> %d rows",
            plan,
            "all" if subscription_ids is None else len(subscription_ids),
            start.isoformat() if start else None,
            end.isoformat() if end else None,
            len(rows),
        )
        return rows
