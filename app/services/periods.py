# app/services/periods.py
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date as date_type
from datetime import datetime, time, timedelta, timezone
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.exceptions import InvalidParameterError


class Period(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    TOTAL = "total"


class TimestampField(str, Enum):
    """
    Which meeting timestamp a date range is applied to.

    Booking counts use the booking date, everything else uses the scheduled
    start. A meeting booked today for next month therefore counts towards
    today's bookings but not towards today's status breakdown.
    """

    START_TIME = "start_time"
    BOOKING_DATE = "booking_date"


@dataclass(frozen=True)
class DateRange:
    """
    Range over naive UTC datetimes: `[start, end)`, or `[start, end]` when
    `end_inclusive` is set.

    Either bound may be None, meaning unbounded on that side.
    """

    start: datetime | None = None
    end: datetime | None = None
    field: TimestampField = TimestampField.START_TIME
    end_inclusive: bool = False

    def contains(self, value: datetime) -> bool:
        if self.start is not None and value < self.start:
            return False
        if self.end is not None:
            if self.end_inclusive:
                return value <= self.end
            return value < self.end
        return True

    def on(self, field: TimestampField) -> DateRange:
        return replace(self, field=field)


def parse_period(value: str | Period) -> Period:
    if isinstance(value, Period):
        return value
    try:
        return Period((value or "").lower())
    except ValueError:
        valid = ", ".join(p.value for p in Period)
        raise InvalidParameterError(
            f"Invalid period '{value}'. Valid values: {valid}."
        ) from None


def get_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidParameterError(f"Unknown timezone '{name}'.") from exc


def to_local(value: datetime, tz: ZoneInfo) -> datetime:
    """Interpret a naive UTC datetime and convert it to `tz`."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz)


def local_midnight_utc(day: date_type, tz: ZoneInfo) -> datetime:
    """Naive UTC datetime of local midnight at the start of `day`."""
    local = datetime.combine(day, time.min, tzinfo=tz)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def period_range(period: Period, now: datetime, tz: ZoneInfo) -> DateRange | None:
    """
    Map a named period to its calendar boundaries around `now`.

    Rules
    -----
    - today: local calendar day containing `now`
    - week: Monday 00:00 to next Monday 00:00 (ISO week)
    - month: first day of the month to first day of the next month
    - total: None (no date filter)
    """
    today = to_local(now, tz).date()

    if period is Period.TODAY:
        first, after = today, today + timedelta(days=1)
    elif period is Period.WEEK:
        first = today - timedelta(days=today.weekday())
        after = first + timedelta(days=7)
    elif period is Period.MONTH:
        first = today.replace(day=1)
        if first.month == 12:
            after = first.replace(year=first.year + 1, month=1)
        else:
            after = first.replace(month=first.month + 1)
    else:
        return None

    return DateRange(start=local_midnight_utc(first, tz), end=local_midnight_utc(after, tz))


def custom_range(
    start_date: date_type | None,
    end_date: date_type | None,
    tz: ZoneInfo,
) -> DateRange | None:
    """
    Build a range from caller-supplied dates. Both ends are whole days and
    inclusive; either may be omitted.

    Raises
    ------
    InvalidParameterError
        If both dates are given and start_date > end_date.
    """
    if start_date is None and end_date is None:
        return None

    if start_date is not None and end_date is not None and start_date > end_date:
        raise InvalidParameterError("startDate must be before or equal to endDate")

    return DateRange(
        start=local_midnight_utc(start_date, tz) if start_date is not None else None,
        end=(
            local_midnight_utc(end_date + timedelta(days=1), tz)
            if end_date is not None
            else None
        ),
    )
