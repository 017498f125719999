# app/services/period_stats.py
from __future__ import annotations

from collections.abc import Sequence

from app.schemas.meeting import MeetingStatus
from app.schemas.stats import PeriodStats
from app.services.meeting_repository import MeetingRecord
from app.services.periods import DateRange, Period
from app.services.person_stats import count_statuses
from app.services.rates import average_quality, compute_rates


def build_period_stats(
    period: Period,
    user_id: str | None,
    breakdown_range: DateRange | None,
    booking_counts: Sequence[int],
    meetings: Sequence[MeetingRecord],
    quality_seller_ids: frozenset[str] | None = None,
) -> PeriodStats:
    """
    Assemble a PeriodStats from already fetched data.

    Parameters
    ----------
    booking_counts:
        `(today, week, month, total)` counts by booking date.
    meetings:
        Visible meetings whose scheduled start falls inside `breakdown_range`.
    quality_seller_ids:
        When set, the quality average only covers meetings where one of these
        users is a seller. None means every scored meeting counts.
    """
    today, week, month, total = booking_counts

    counts = count_statuses(meetings)
    completed = counts[MeetingStatus.COMPLETED]
    no_shows = counts[MeetingStatus.NO_SHOW]
    show_rate, no_show_rate = compute_rates(completed, no_shows)
    avg_quality, quality_count = average_quality(meetings, seller_ids=quality_seller_ids)

    return PeriodStats(
        period=period.value,
        user_id=user_id,
        range_start=breakdown_range.start if breakdown_range else None,
        range_end=breakdown_range.end if breakdown_range else None,
        today_bookings=today,
        week_bookings=week,
        month_bookings=month,
        total_bookings=total,
        total_meetings=len(meetings),
        booked=counts[MeetingStatus.BOOKED],
        completed=completed,
        no_shows=no_shows,
        canceled=counts[MeetingStatus.CANCELED],
        rescheduled=counts[MeetingStatus.RESCHEDULED],
        show_rate=show_rate,
        no_show_rate=no_show_rate,
        avg_quality_score=avg_quality,
        quality_score_count=quality_count,
    )
