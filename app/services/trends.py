# app/services/trends.py
from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from zoneinfo import ZoneInfo

from app.core.exceptions import InvalidParameterError
from app.schemas.meeting import MeetingStatus
from app.schemas.stats import TrendPoint
from app.services.meeting_repository import MeetingRecord
from app.services.periods import to_local

MIN_TREND_DAYS = 1
MAX_TREND_DAYS = 365


def validate_days(days: int) -> int:
    """
    Reject trend windows outside [1, 365]. Values are never clamped.
    """
    if isinstance(days, bool) or not isinstance(days, int):
        raise InvalidParameterError("Days must be an integer between 1 and 365")
    if days < MIN_TREND_DAYS or days > MAX_TREND_DAYS:
        raise InvalidParameterError(
            f"Days must be between {MIN_TREND_DAYS} and {MAX_TREND_DAYS}"
        )
    return days


def build_trend_series(meetings: Iterable[MeetingRecord], tz: ZoneInfo) -> list[TrendPoint]:
    """
    Bucket meetings by the local calendar date of their scheduled start.

    The result is sparse (days without meetings are absent) and sorted by
    ascending date.
    """
    buckets: dict[str, dict[str, int]] = defaultdict(
        lambda: {"bookings": 0, "completed": 0, "no_shows": 0}
    )

    for meeting in meetings:
        key = to_local(meeting.start_time, tz).date().isoformat()
        bucket = buckets[key]
        bucket["bookings"] += 1
        if meeting.status is MeetingStatus.COMPLETED:
            bucket["completed"] += 1
        elif meeting.status is MeetingStatus.NO_SHOW:
            bucket["no_shows"] += 1

    return [TrendPoint(date=key, **buckets[key]) for key in sorted(buckets)]
