"""
lifecycle/series.py

Dense time-bucketed series for charts.

Each qualifying record is normalized to the civil timezone, matched to the
bucket of the selected granularity and accumulated (``count += 1``,
``revenue += value``).  Every bucket in the requested span is present in
the output, zero-filled when nothing fell into it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, timezone
from decimal import Decimal

from lifecycle.granularity import GranularitySelector
from lifecycle.timezones import TimeZoneNormalizer
from lifecycle.types import ZERO, AggregateSeriesPoint, Granularity, RawEvent, SeriesRecord

logger = logging.getLogger(__name__)


class SeriesBucketizer:
    """
    Parameters
    ----------
    normalizer:
        Civil-timezone context used both for bucket enumeration and for
        record timestamps.
    selector:
        Granularity selector; built from *normalizer* when omitted.
    """

    def __init__(
        self,
        normalizer: TimeZoneNormalizer,
        selector: GranularitySelector | None = None,
    ) -> None:
        self._normalizer = normalizer
        self._selector = selector or GranularitySelector(normalizer)

    @property
    def selector(self) -> GranularitySelector:
        return self._selector

    def bucketize(
        self,
        records: Iterable[SeriesRecord],
        start: date | datetime,
        end: date | datetime,
        granularity: Granularity | None = None,
    ) -> list[AggregateSeriesPoint]:
        """
        Sum *records* into the dense bucket list covering ``[start, end]``.

        *start*/*end* may be civil dates (whole local days) or instants.
        When *granularity* is omitted it is chosen from the span.  Records
        outside the range are dropped silently; records without a timestamp
        or with a missing or negative value are skipped with a warning.
        """
        window = self._normalizer.resolve_range(start, end)
        unit = granularity or self._selector.select_granularity(start, end)
        buckets = self._selector.enumerate_buckets(start, end, unit)

        counts: dict[str, int] = {bucket.key: 0 for bucket in buckets}
        revenue: dict[str, Decimal] = {bucket.key: ZERO for bucket in buckets}

        accepted = 0
        dropped = 0
        for index, record in enumerate(records):
            timestamp = getattr(record, "timestamp", None)
            value = getattr(record, "value", None)
            if not isinstance(timestamp, datetime) or value is None or value < 0:
                logger.warning(
                    "Skipping malformed series record #%d: timestamp=%r value=%r",
                    index,
                    timestamp,
                    value,
                )
                continue
            if not window.contains(_aware(timestamp)):
                dropped += 1
                continue
            key = self._selector.bucket_key_for(timestamp, unit)
            if key not in counts:
                dropped += 1
                continue
            counts[key] += 1
            revenue[key] += value if isinstance(value, Decimal) else Decimal(str(value))
            accepted += 1

        logger.debug(
            "bucketize [%s, %s] granularity=%s buckets=%d accepted=%d dropped=%d",
            window.start.isoformat(),
            window.end.isoformat(),
            unit.value,
            len(buckets),
            accepted,
            dropped,
        )
        return [
            AggregateSeriesPoint(bucket=bucket, count=counts[bucket.key], revenue=revenue[bucket.key])
            for bucket in buckets
        ]


def events_as_records(events: Iterable[RawEvent]) -> list[SeriesRecord]:
    """Project lifecycle events onto series records (``event_date``, ``amount``)."""
    return [
        SeriesRecord(timestamp=event.event_date, value=event.amount if event.amount is not None else ZERO)
        for event in events
    ]


def _aware(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant
