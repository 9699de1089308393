"""
tests/test_series_bucketizer.py

Pytest unit tests for SeriesBucketizer.

Coverage
--------
- Dense output: every bucket present, zero-filled
- Count and revenue conservation for in-range records
- Out-of-range records dropped, malformed records skipped
- Timezone normalization before bucketing
- Automatic granularity selection
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from lifecycle.series import SeriesBucketizer, events_as_records
from lifecycle.timezones import TimeZoneNormalizer
from lifecycle.types import Granularity, SeriesRecord
from tests.helpers import make_event, utc


@pytest.fixture()
def bucketizer() -> SeriesBucketizer:
    return SeriesBucketizer(TimeZoneNormalizer("America/Sao_Paulo"))


def record(instant, value: str = "10") -> SeriesRecord:
    return SeriesRecord(timestamp=instant, value=Decimal(value))


class TestDenseOutput:
    def test_no_records_gives_zero_filled_buckets(self, bucketizer: SeriesBucketizer) -> None:
        points = bucketizer.bucketize([], date(2024, 3, 4), date(2024, 3, 6), Granularity.DAY)
        assert [point.bucket.key for point in points] == ["2024-03-04", "2024-03-05", "2024-03-06"]
        assert all(point.count == 0 for point in points)
        assert all(point.revenue == Decimal("0") for point in points)

    def test_counts_and_revenue_are_conserved(self, bucketizer: SeriesBucketizer) -> None:
        records = [
            record(utc(2024, 3, 4, 12), "10.50"),
            record(utc(2024, 3, 4, 18), "4.50"),
            record(utc(2024, 3, 6, 12), "20"),
        ]
        points = bucketizer.bucketize(records, date(2024, 3, 4), date(2024, 3, 6), Granularity.DAY)
        assert sum(point.count for point in points) == 3
        assert sum((point.revenue for point in points), Decimal("0")) == Decimal("35.00")
        by_key = {point.bucket.key: point for point in points}
        assert by_key["2024-03-04"].count == 2
        assert by_key["2024-03-04"].revenue == Decimal("15.00")
        assert by_key["2024-03-05"].count == 0

    def test_records_outside_range_are_dropped(self, bucketizer: SeriesBucketizer) -> None:
        records = [
            record(utc(2024, 3, 4, 2)),  # 23:00 on 03/03 local
            record(utc(2024, 3, 7, 3)),  # 00:00 on 07/03 local
            record(utc(2024, 3, 5, 12)),
        ]
        points = bucketizer.bucketize(records, date(2024, 3, 4), date(2024, 3, 6), Granularity.DAY)
        assert sum(point.count for point in points) == 1

    def test_malformed_records_are_skipped(
        self, bucketizer: SeriesBucketizer, caplog: pytest.LogCaptureFixture
    ) -> None:
        records = [
            SeriesRecord(timestamp=None, value=Decimal("1")),  # type: ignore[arg-type]
            SeriesRecord(timestamp=utc(2024, 3, 4, 12), value=None),  # type: ignore[arg-type]
            record(utc(2024, 3, 4, 12)),
        ]
        with caplog.at_level("WARNING"):
            points = bucketizer.bucketize(records, date(2024, 3, 4), date(2024, 3, 4), Granularity.DAY)
        assert points[0].count == 1
        assert "malformed" in caplog.text

    def test_negative_values_are_skipped(
        self, bucketizer: SeriesBucketizer, caplog: pytest.LogCaptureFixture
    ) -> None:
        records = [record(utc(2024, 3, 4, 12), "-30"), record(utc(2024, 3, 5, 12), "20")]
        with caplog.at_level("WARNING"):
            points = bucketizer.bucketize(records, date(2024, 3, 4), date(2024, 3, 5), Granularity.DAY)
        assert all(point.revenue >= 0 for point in points)
        assert [point.count for point in points] == [0, 1]
        assert "malformed" in caplog.text

    def test_float_values_are_summed_as_decimals(self, bucketizer: SeriesBucketizer) -> None:
        records = [
            SeriesRecord(timestamp=utc(2024, 3, 4, 12), value=0.1),  # type: ignore[arg-type]
            SeriesRecord(timestamp=utc(2024, 3, 4, 13), value=0.2),  # type: ignore[arg-type]
        ]
        points = bucketizer.bucketize(records, date(2024, 3, 4), date(2024, 3, 4), Granularity.DAY)
        assert points[0].revenue == Decimal("0.3")


class TestTimezoneNormalization:
    def test_late_utc_record_lands_on_previous_local_day(self, bucketizer: SeriesBucketizer) -> None:
        points = bucketizer.bucketize(
            [record(utc(2024, 3, 5, 2, 30))], date(2024, 3, 4), date(2024, 3, 5), Granularity.DAY
        )
        by_key = {point.bucket.key: point.count for point in points}
        assert by_key == {"2024-03-04": 1, "2024-03-05": 0}

    def test_hour_buckets_use_local_hour(self, bucketizer: SeriesBucketizer) -> None:
        points = bucketizer.bucketize([record(utc(2024, 3, 4, 15, 10))], date(2024, 3, 4), date(2024, 3, 4))
        assert len(points) == 24
        hit = [point for point in points if point.count]
        assert len(hit) == 1
        assert hit[0].bucket.label == "12:00"


class TestAutomaticGranularity:
    def test_six_day_span_uses_monday_anchored_week(self, bucketizer: SeriesBucketizer) -> None:
        # Monday 04/03 .. Saturday 09/03; Sunday 10/03 is padding outside the range.
        records = [record(utc(2024, 3, 4, 12)), record(utc(2024, 3, 10, 12))]
        points = bucketizer.bucketize(records, date(2024, 3, 4), date(2024, 3, 9))
        assert len(points) == 7
        assert points[0].bucket.label.startswith("seg")
        assert points[-1].bucket.key == "2024-03-10"
        assert points[-1].count == 0
        assert sum(point.count for point in points) == 1

    def test_long_span_uses_months(self, bucketizer: SeriesBucketizer) -> None:
        points = bucketizer.bucketize(
            [record(utc(2024, 6, 15, 12), "99")], date(2024, 1, 1), date(2024, 12, 31)
        )
        assert len(points) == 12
        june = next(point for point in points if point.bucket.key == "2024-06")
        assert june.count == 1
        assert june.revenue == Decimal("99")


def test_events_as_records_projects_date_and_amount() -> None:
    events = [make_event("s1", "canceled", utc(2024, 3, 20), amount="12.5")]
    assert events_as_records(events) == [SeriesRecord(timestamp=utc(2024, 3, 20), value=Decimal("12.5"))]
