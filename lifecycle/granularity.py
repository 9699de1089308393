"""
lifecycle/granularity.py

Chooses the bucket unit for a requested span and enumerates the dense,
ascending list of bucket keys covering it.

Selection heuristic
-------------------
Evaluated on the inclusive civil-day span (``end_date - start_date + 1``)
in the configured timezone:

    span            |  granularity
    ----------------|-------------
    <= 1 day        |  hour
    6 .. 7 days     |  week   (Monday-anchored days)
    > 300 days      |  month
    otherwise       |  day

The thresholds reproduce how the dashboard has always bucketed its charts
("last 7 days" and "this week" both land on ``week``); they are not a
calendar rule.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from dateutil.relativedelta import relativedelta

from lifecycle.timezones import TimeZoneNormalizer
from lifecycle.types import BucketKey, Granularity

HOURLY_MAX_DAYS = 1
WEEKLY_MIN_DAYS = 6
WEEKLY_MAX_DAYS = 7
MONTHLY_MIN_DAYS = 301

_WEEKDAY_LABELS = ("seg", "ter", "qua", "qui", "sex", "sáb", "dom")
_LAST_MICROSECOND = timedelta(microseconds=1)


class GranularitySelector:
    """
    Span-driven granularity choice and bucket enumeration.

    Parameters
    ----------
    normalizer:
        Civil-timezone context.  Datetime inputs are converted to local
        dates through it; plain dates are taken as civil dates already.
    """

    def __init__(self, normalizer: TimeZoneNormalizer) -> None:
        self._normalizer = normalizer

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def span_days(self, start: date | datetime, end: date | datetime) -> int:
        """Inclusive number of civil days between *start* and *end*."""
        start_day = self._normalizer.civil_date(start)
        end_day = self._normalizer.civil_date(end)
        if start_day > end_day:
            raise ValueError(
                f"start must not be after end; got {start_day.isoformat()} > {end_day.isoformat()}"
            )
        return (end_day - start_day).days + 1

    def select_granularity(self, start: date | datetime, end: date | datetime) -> Granularity:
        days = self.span_days(start, end)
        if days <= HOURLY_MAX_DAYS:
            return Granularity.HOUR
        if WEEKLY_MIN_DAYS <= days <= WEEKLY_MAX_DAYS:
            return Granularity.WEEK
        if days >= MONTHLY_MIN_DAYS:
            return Granularity.MONTH
        return Granularity.DAY

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def enumerate_buckets(
        self,
        start: date | datetime,
        end: date | datetime,
        granularity: Granularity,
    ) -> list[BucketKey]:
        """
        Every bucket of *granularity* covering ``[start, end]``, oldest first.

        * ``HOUR`` : 24 buckets per civil day in the span.
        * ``DAY``  : one bucket per civil day.
        * ``WEEK`` : one bucket per day from the Monday on or before
          *start* to the Sunday on or after *end*.
        * ``MONTH``: one bucket per civil month touched by the span.
        """
        start_day = self._normalizer.civil_date(start)
        end_day = self._normalizer.civil_date(end)
        if start_day > end_day:
            raise ValueError(
                f"start must not be after end; got {start_day.isoformat()} > {end_day.isoformat()}"
            )

        if granularity is Granularity.HOUR:
            return [
                self._hour_bucket(day, hour)
                for day in _days(start_day, end_day)
                for hour in range(24)
            ]
        if granularity is Granularity.DAY:
            return [self._day_bucket(day, label=day.strftime("%d/%m")) for day in _days(start_day, end_day)]
        if granularity is Granularity.WEEK:
            week_start = start_day - timedelta(days=start_day.weekday())
            week_end = end_day + timedelta(days=6 - end_day.weekday())
            return [
                self._day_bucket(day, label=f"{_WEEKDAY_LABELS[day.weekday()]} {day.strftime('%d/%m')}")
                for day in _days(week_start, week_end)
            ]
        if granularity is Granularity.MONTH:
            return [self._month_bucket(month) for month in _months(start_day, end_day)]
        raise ValueError(f"Unsupported granularity {granularity!r}")

    def bucket_key_for(self, instant: datetime, granularity: Granularity) -> str:
        """Key of the bucket that *instant* (any timezone) falls into."""
        local = self._normalizer.to_local(instant)
        if granularity is Granularity.HOUR:
            return local.strftime("%Y-%m-%dT%H:00")
        if granularity in (Granularity.DAY, Granularity.WEEK):
            return local.strftime("%Y-%m-%d")
        if granularity is Granularity.MONTH:
            return local.strftime("%Y-%m")
        raise ValueError(f"Unsupported granularity {granularity!r}")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _hour_bucket(self, day: date, hour: int) -> BucketKey:
        wall_clock = datetime.combine(day, time(hour))
        return BucketKey(
            key=wall_clock.strftime("%Y-%m-%dT%H:00"),
            label=f"{hour:02d}:00",
            start=self._normalizer.localize(wall_clock),
            end=self._normalizer.localize(wall_clock + timedelta(hours=1) - _LAST_MICROSECOND),
        )

    def _day_bucket(self, day: date, *, label: str) -> BucketKey:
        day_start, day_end = self._normalizer.day_bounds(day)
        return BucketKey(key=day.isoformat(), label=label, start=day_start, end=day_end)

    def _month_bucket(self, month: date) -> BucketKey:
        last_day = month + relativedelta(months=1) - timedelta(days=1)
        month_start, _ = self._normalizer.day_bounds(month)
        _, month_end = self._normalizer.day_bounds(last_day)
        return BucketKey(
            key=month.strftime("%Y-%m"),
            label=month.strftime("%m/%Y"),
            start=month_start,
            end=month_end,
        )


def _days(first: date, last: date) -> list[date]:
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def _months(first: date, last: date) -> list[date]:
    months: list[date] = []
    cursor = first.replace(day=1)
    while cursor <= last:
        months.append(cursor)
        cursor = cursor + relativedelta(months=1)
    return months
