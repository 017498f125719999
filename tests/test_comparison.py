# tests/test_comparison.py
import pytest

from app.schemas.stats import PeriodStats
from app.services.comparison import build_comparison, meetings_per_user


def _stats(**kwargs) -> PeriodStats:
    return PeriodStats(period="month", **kwargs)


def test_team_total_is_normalized_per_active_user():
    personal = _stats(total_meetings=12, completed=6, no_shows=2, show_rate=0.75, avg_quality_score=4.0)
    team = _stats(total_meetings=51, show_rate=0.6, avg_quality_score=3.2)

    comparison = build_comparison(personal, team, active_users=4)

    assert comparison.personal.total_meetings == 12
    assert comparison.personal.completed == 6
    assert comparison.personal.no_shows == 2
    assert comparison.personal.show_rate == pytest.approx(0.75)
    assert comparison.personal.quality == pytest.approx(4.0)
    assert comparison.team_average.total_meetings == 13  # 51 / 4 = 12.75
    assert comparison.team_average.show_rate == pytest.approx(0.6)
    assert comparison.team_average.quality == pytest.approx(3.2)
    assert comparison.total_users == 4


def test_no_active_users_gives_zero_team_total():
    comparison = build_comparison(_stats(), _stats(total_meetings=10), active_users=0)

    assert comparison.team_average.total_meetings == 0
    assert comparison.total_users == 0


def test_missing_quality_stays_null():
    comparison = build_comparison(_stats(), _stats(), active_users=3)

    assert comparison.personal.quality is None
    assert comparison.team_average.quality is None


@pytest.mark.parametrize(
    "total, users, expected",
    [(5, 2, 3), (3, 2, 2), (7, 2, 4), (4, 3, 1), (0, 5, 0), (9, 0, 0)],
)
def test_meetings_per_user_rounds_half_up(total, users, expected):
    assert meetings_per_user(total, users) == expected


def test_team_total_half_is_rounded_up():
    comparison = build_comparison(_stats(), _stats(total_meetings=5), active_users=2)

    assert comparison.team_average.total_meetings == 3
