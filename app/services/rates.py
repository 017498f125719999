# app/services/rates.py
"""
Rate and quality-score math shared by every aggregator.

All values are exact fractions; rounding belongs to the presentation layer.
"""

from __future__ import annotations

from collections.abc import Iterable

from app.schemas.meeting import MeetingStatus


def compute_rates(completed: int, no_show: int) -> tuple[float, float]:
    """
    Return `(show_rate, no_show_rate)`.

    The denominator is completed + no-show: canceled and rescheduled
    meetings never took place and are left out. Both rates are 0.0 when
    the denominator is zero.
    """
    attended_or_missed = completed + no_show
    if attended_or_missed <= 0:
        return 0.0, 0.0
    return completed / attended_or_missed, no_show / attended_or_missed


def average_quality(
    meetings: Iterable,
    seller_ids: frozenset[str] | None = None,
) -> tuple[float | None, int]:
    """
    Mean quality score over completed meetings that have a score.

    When `seller_ids` is given only meetings where one of those users is a
    seller are counted. Returns `(None, 0)` for an empty sample; None means
    "no data" and is deliberately different from a zero rating.
    """
    total = 0
    count = 0
    for meeting in meetings:
        if meeting.status is not MeetingStatus.COMPLETED or meeting.quality_score is None:
            continue
        if seller_ids is not None and seller_ids.isdisjoint(meeting.seller_ids):
            continue
        total += meeting.quality_score
        count += 1

    if count == 0:
        return None, 0
    return total / count, count


def weighted_quality_average(samples: Iterable[tuple[float | None, int]]) -> float | None:
    """
    Combine per-cohort averages into one figure, weighted by sample count.

    Cohorts without data (average None or count 0) are skipped. Returns None
    when no cohort has data.
    """
    weighted_sum = 0.0
    total_count = 0
    for avg, count in samples:
        if avg is None or count <= 0:
            continue
        weighted_sum += avg * count
        total_count += count

    if total_count == 0:
        return None
    return weighted_sum / total_count
