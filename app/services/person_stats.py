# app/services/person_stats.py
from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Dict, List

from app.core.exceptions import InvalidParameterError
from app.schemas.meeting import MeetingStatus
from app.schemas.stats import (
    PersonInfo,
    PersonStats,
    RoleStats,
    SellerRoleStats,
    StatusCounts,
)
from app.services.meeting_repository import MeetingRecord, UserRecord
from app.services.rates import average_quality, compute_rates


class RoleFilter(str, Enum):
    BOOKER = "booker"
    SELLER = "seller"
    BOTH = "both"


def parse_role_filter(value: str | RoleFilter | None) -> RoleFilter:
    if isinstance(value, RoleFilter):
        return value
    if value is None or value == "":
        return RoleFilter.BOTH
    try:
        return RoleFilter(value.lower())
    except ValueError:
        valid = ", ".join(r.value for r in RoleFilter)
        raise InvalidParameterError(
            f"Invalid role '{value}'. Valid values: {valid}."
        ) from None


def count_statuses(meetings: Iterable[MeetingRecord]) -> Dict[MeetingStatus, int]:
    counts = {status: 0 for status in MeetingStatus}
    for meeting in meetings:
        counts[meeting.status] += 1
    return counts


def _role_counts(meetings: List[MeetingRecord]) -> dict:
    counts = count_statuses(meetings)
    completed = counts[MeetingStatus.COMPLETED]
    no_show = counts[MeetingStatus.NO_SHOW]
    show_rate, no_show_rate = compute_rates(completed, no_show)
    return {
        "total": len(meetings),
        "completed": completed,
        "no_show": no_show,
        "canceled": counts[MeetingStatus.CANCELED],
        "rescheduled": counts[MeetingStatus.RESCHEDULED],
        "show_rate": show_rate,
        "no_show_rate": no_show_rate,
    }


def aggregate_person_stats(
    users: Sequence[UserRecord],
    meetings: Iterable[MeetingRecord],
) -> list[PersonStats]:
    """
    Compute per-user booker/seller statistics from one batch of meetings.

    Steps
    -----
    1) Partition the meetings once into per-user booker and seller buckets
       using the normalized participant ids of each meeting.
    2) For each user (in input order) count statuses per role and apply the
       rate calculator.
    3) Quality score is averaged over the seller bucket only.
    4) `combined` is booker + seller per status, not de-duplicated.

    Meetings that involve none of `users` are ignored.
    """
    wanted = {user.id for user in users}
    as_booker: Dict[str, List[MeetingRecord]] = defaultdict(list)
    as_seller: Dict[str, List[MeetingRecord]] = defaultdict(list)

    for meeting in meetings:
        for user_id in meeting.booker_ids & wanted:
            as_booker[user_id].append(meeting)
        for user_id in meeting.seller_ids & wanted:
            as_seller[user_id].append(meeting)

    results: list[PersonStats] = []
    for user in users:
        booker = _role_counts(as_booker[user.id])
        seller = _role_counts(as_seller[user.id])
        avg_quality, quality_count = average_quality(as_seller[user.id])

        results.append(
            PersonStats(
                user=PersonInfo(
                    id=user.id,
                    name=user.name,
                    email=user.email,
                    role=user.role,
                    is_active=user.is_active,
                ),
                as_booker=RoleStats(**booker),
                as_seller=SellerRoleStats(
                    **seller,
                    avg_quality_score=avg_quality,
                    quality_score_count=quality_count,
                ),
                combined=StatusCounts(
                    total=booker["total"] + seller["total"],
                    completed=booker["completed"] + seller["completed"],
                    no_show=booker["no_show"] + seller["no_show"],
                    canceled=booker["canceled"] + seller["canceled"],
                    rescheduled=booker["rescheduled"] + seller["rescheduled"],
                ),
            )
        )

    return results


def filter_by_role(stats: list[PersonStats], role: RoleFilter) -> list[PersonStats]:
    """Drop users without any meeting in the requested role."""
    if role is RoleFilter.BOOKER:
        return [s for s in stats if s.as_booker.total > 0]
    if role is RoleFilter.SELLER:
        return [s for s in stats if s.as_seller.total > 0]
    return stats
