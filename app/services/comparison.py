# app/services/comparison.py
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from app.schemas.stats import (
    Comparison,
    PeriodStats,
    PersonalFigures,
    TeamAverageFigures,
)


def meetings_per_user(total_meetings: int, active_users: int) -> int:
    """
    Team meeting total per active user, rounded half up (5 / 2 -> 3).

    0 when there are no active users.
    """
    if active_users <= 0:
        return 0
    per_user = Decimal(total_meetings) / Decimal(active_users)
    return int(per_user.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_comparison(personal: PeriodStats, team: PeriodStats, active_users: int) -> Comparison:
    """
    Put a user's own period figures next to team-wide aggregates.

    Only aggregates of the team are exposed, never another individual's
    numbers.
    """
    return Comparison(
        personal=PersonalFigures(
            show_rate=personal.show_rate,
            quality=personal.avg_quality_score,
            total_meetings=personal.total_meetings,
            completed=personal.completed,
            no_shows=personal.no_shows,
        ),
        team_average=TeamAverageFigures(
            show_rate=team.show_rate,
            quality=team.avg_quality_score,
            total_meetings=meetings_per_user(team.total_meetings, active_users),
        ),
        total_users=active_users,
    )
