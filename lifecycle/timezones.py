"""
lifecycle/timezones.py

Conversion between storage time (UTC) and the civil timezone used for
bucketing and for turning calendar dates into query bounds.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

import pytz

from lifecycle.types import DateRange

DEFAULT_TIMEZONE = "America/Sao_Paulo"

_END_OF_DAY = time(23, 59, 59, 999999)


class TimeZoneNormalizer:
    """
    Explicit civil-timezone context.

    Every component that needs local time receives an instance of this
    class instead of reading process locale.  Naive datetimes passed in
    are treated as UTC.

    Raises ``pytz.UnknownTimeZoneError`` for an unknown zone name.
    """

    def __init__(self, tz_name: str = DEFAULT_TIMEZONE) -> None:
        self._tz = pytz.timezone(tz_name)
        self.tz_name = tz_name

    @property
    def tzinfo(self) -> pytz.BaseTzInfo:
        return self._tz

    def to_local(self, instant: datetime) -> datetime:
        """Express *instant* in the civil timezone."""
        return _as_utc(instant).astimezone(self._tz)

    def to_utc(self, local: datetime) -> datetime:
        """
        Convert a civil wall-clock time to a UTC instant.

        A naive *local* is localized in the civil timezone; an aware one is
        simply converted.
        """
        if local.tzinfo is None:
            local = self._tz.localize(local)
        return local.astimezone(timezone.utc)

    def localize(self, wall_clock: datetime) -> datetime:
        """Attach the civil timezone to a naive wall-clock datetime."""
        return self._tz.localize(wall_clock)

    def local_date(self, instant: datetime) -> date:
        return self.to_local(instant).date()

    def day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """Local start and end (inclusive) of *day*, both tz-aware."""
        return (
            self._tz.localize(datetime.combine(day, time.min)),
            self._tz.localize(datetime.combine(day, _END_OF_DAY)),
        )

    def date_range(self, start: date, end: date) -> DateRange:
        """
        UTC query bounds covering the civil dates ``[start, end]``.

        The result runs from local midnight of *start* to the last
        microsecond of *end*.
        """
        local_start, _ = self.day_bounds(start)
        _, local_end = self.day_bounds(end)
        return DateRange(
            start=local_start.astimezone(timezone.utc),
            end=local_end.astimezone(timezone.utc),
        )

    def resolve_range(self, start: date | datetime, end: date | datetime) -> DateRange:
        """Accept either civil dates or instants and return UTC bounds."""
        start_utc = (
            _as_utc(start) if isinstance(start, datetime) else self.date_range(start, start).start
        )
        end_utc = _as_utc(end) if isinstance(end, datetime) else self.date_range(end, end).end
        return DateRange(start=start_utc, end=end_utc)

    def civil_date(self, value: date | datetime) -> date:
        if isinstance(value, datetime):
            return self.local_date(value)
        return value


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def previous_window(window: DateRange) -> DateRange:
    """
    The equally long window that ends right before *window* starts.

    previous_end   = start - 1µs
    previous_start = previous_end - (end - start)
    """
    previous_end = window.start - timedelta(microseconds=1)
    return DateRange(start=previous_end - (window.end - window.start), end=previous_end)
