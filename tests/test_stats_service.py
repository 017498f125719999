# tests/test_stats_service.py
import asyncio
from datetime import date, datetime

import pytest

from app.core.exceptions import ForbiddenError, InvalidParameterError
from app.schemas.meeting import MeetingStatus, ParticipantRole, UserRole
from app.services.ownership import Requester
from app.services.periods import TimestampField
from app.services.stats_service import StatsService
from tests.factories import FakeMeetingRepository, fixed_clock, make_meeting, make_user

ADMIN = Requester("admin", UserRole.ADMIN)
ALICE = Requester("alice", UserRole.USER)


def _service(repository, **kwargs) -> StatsService:
    return StatsService(repository, clock=fixed_clock, **kwargs)


@pytest.mark.asyncio
async def test_month_booking_count_uses_booking_date_and_breakdown_uses_start():
    """
    Booked this month for next month -> counted in month_bookings only.
    Booked last month for this month -> counted in the breakdown only.
    """
    repository = FakeMeetingRepository(
        meetings=[
            make_meeting(
                status=MeetingStatus.BOOKED,
                booked=datetime(2025, 11, 5, 12),
                start=datetime(2025, 12, 3, 9),
                bookers=["alice"],
                sellers=["bob"],
            ),
            make_meeting(
                status=MeetingStatus.COMPLETED,
                booked=datetime(2025, 10, 20, 12),
                start=datetime(2025, 11, 14, 9),
                bookers=["alice"],
                sellers=["bob"],
                quality=4,
            ),
        ]
    )

    stats = await _service(repository).period_stats(ADMIN, period="month")

    assert stats.month_bookings == 1
    assert stats.week_bookings == 0
    assert stats.today_bookings == 0
    assert stats.total_bookings == 2
    assert stats.total_meetings == 1
    assert stats.completed == 1
    assert stats.booked == 0
    assert stats.show_rate == pytest.approx(1.0)
    assert stats.avg_quality_score == pytest.approx(4.0)
    assert stats.range_start == datetime(2025, 11, 1)
    assert stats.range_end == datetime(2025, 12, 1)


@pytest.mark.asyncio
async def test_period_queries_are_pushed_down_with_both_timestamps():
    repository = FakeMeetingRepository()

    await _service(repository).period_stats(ADMIN, period="week")

    fields = [rng.field for _, rng in repository.meeting_calls if rng is not None]
    assert fields.count(TimestampField.BOOKING_DATE) == 3
    assert fields.count(TimestampField.START_TIME) == 1
    assert any(rng is None for _, rng in repository.meeting_calls)


@pytest.mark.asyncio
async def test_custom_dates_override_named_period():
    repository = FakeMeetingRepository(
        meetings=[
            make_meeting(start=datetime(2025, 9, 2, 9), bookers=["a"], sellers=["b"]),
            make_meeting(start=datetime(2025, 11, 12, 9), bookers=["a"], sellers=["b"]),
        ]
    )

    stats = await _service(repository).period_stats(
        ADMIN, period="today", start_date=date(2025, 9, 1), end_date=date(2025, 9, 30)
    )

    assert stats.total_meetings == 1
    assert stats.range_start == datetime(2025, 9, 1)


@pytest.mark.asyncio
async def test_user_requester_only_sees_own_meetings():
    repository = FakeMeetingRepository(
        meetings=[
            make_meeting(status=MeetingStatus.COMPLETED, bookers=["alice"], sellers=["bob"]),
            make_meeting(status=MeetingStatus.NO_SHOW, bookers=["carol"], sellers=["bob"]),
        ]
    )

    stats = await _service(repository).period_stats(ALICE, period="total")

    assert stats.user_id == "alice"
    assert stats.total_meetings == 1
    assert stats.no_shows == 0


@pytest.mark.asyncio
async def test_user_quality_only_counts_meetings_where_user_is_seller():
    repository = FakeMeetingRepository(
        meetings=[
            make_meeting(bookers=["alice"], sellers=["bob"], quality=1),
            make_meeting(bookers=["bob"], sellers=["alice"], quality=5),
        ]
    )

    stats = await _service(repository).period_stats(ALICE, period="total")

    assert stats.completed == 2
    assert stats.avg_quality_score == pytest.approx(5.0)
    assert stats.quality_score_count == 1


@pytest.mark.asyncio
async def test_foreign_target_is_forbidden_before_any_query():
    repository = FakeMeetingRepository()
    service = _service(repository)

    with pytest.raises(ForbiddenError):
        await service.period_stats(ALICE, target_user_id="bob")
    with pytest.raises(ForbiddenError):
        await service.overview(ALICE, target_user_id="bob")
    with pytest.raises(ForbiddenError):
        await service.trends(ALICE, target_user_id="bob")
    with pytest.raises(ForbiddenError):
        await service.comparison(ALICE, target_user_id="bob")
    with pytest.raises(ForbiddenError):
        await service.person_stats(ALICE, user_ids=["alice", "bob"])

    assert repository.call_count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, 400])
async def test_trends_reject_days_before_querying(days):
    repository = FakeMeetingRepository()

    with pytest.raises(InvalidParameterError):
        await _service(repository).trends(ADMIN, days=days)

    assert repository.call_count == 0


@pytest.mark.asyncio
async def test_invalid_parameters_are_rejected_before_querying():
    repository = FakeMeetingRepository()
    service = _service(repository)

    with pytest.raises(InvalidParameterError):
        await service.period_stats(ADMIN, period="decade")
    with pytest.raises(InvalidParameterError):
        await service.period_stats(ADMIN, start_date=date(2025, 2, 1), end_date=date(2025, 1, 1))
    with pytest.raises(InvalidParameterError):
        await service.person_stats(ADMIN, role="owner")
    with pytest.raises(InvalidParameterError):
        await service.person_stats(ADMIN, limit=0)

    assert repository.call_count == 0


@pytest.mark.asyncio
async def test_trends_window_and_sparse_output():
    repository = FakeMeetingRepository(
        meetings=[
            make_meeting(start=datetime(2025, 11, 10, 9), bookers=["a"], sellers=["b"]),
            make_meeting(start=datetime(2025, 11, 12, 8), bookers=["a"], sellers=["b"]),
            make_meeting(start=datetime(2025, 11, 1, 9), bookers=["a"], sellers=["b"]),
            make_meeting(start=datetime(2025, 11, 20, 9), bookers=["a"], sellers=["b"]),
        ]
    )

    trends = await _service(repository).trends(ADMIN, days=3)

    assert [p.date for p in trends] == ["2025-11-10", "2025-11-12"]
    assert len(repository.meeting_calls) == 1


@pytest.mark.asyncio
async def test_person_stats_uses_two_queries_for_any_number_of_users():
    users = [make_user(f"u{i}") for i in range(5)]
    meetings = [
        make_meeting(bookers=[f"u{i}"], sellers=[f"u{(i + 1) % 5}"], quality=i + 1)
        for i in range(5)
    ]
    repository = FakeMeetingRepository(meetings=meetings, users=users)

    report = await _service(repository).person_stats(ADMIN)

    assert report.count == 5
    assert len(repository.meeting_calls) == 2
    roles = {scope.role for scope, _ in repository.meeting_calls}
    assert roles == {ParticipantRole.BOOKER, ParticipantRole.SELLER}
    for entry in report.stats:
        assert entry.as_booker.total == 1
        assert entry.as_seller.total == 1


@pytest.mark.asyncio
async def test_person_stats_team_quality_is_weighted():
    users = [make_user("a"), make_user("b")]
    meetings = [make_meeting(sellers=["a"], bookers=["x"], quality=5)]
    meetings += [make_meeting(sellers=["b"], bookers=["x"], quality=1) for _ in range(9)]
    repository = FakeMeetingRepository(meetings=meetings, users=users)

    report = await _service(repository).person_stats(ADMIN, role="seller")

    assert report.team_avg_quality_score == pytest.approx(1.4)
    assert report.team_quality_score_count == 10
    unweighted = sum(s.as_seller.avg_quality_score for s in report.stats) / 2
    assert unweighted == pytest.approx(3.0)


@pytest.mark.asyncio
async def test_person_stats_paging_and_user_scope():
    users = [make_user("alice"), make_user("bob"), make_user("carol")]
    repository = FakeMeetingRepository(users=users)
    service = _service(repository)

    page = await service.person_stats(ADMIN, limit=2, offset=1)
    assert [s.user.id for s in page.stats] == ["bob", "carol"]

    own = await service.person_stats(ALICE)
    assert [s.user.id for s in own.stats] == ["alice"]


@pytest.mark.asyncio
async def test_person_stats_limit_is_capped():
    users = [make_user(f"u{i:03d}") for i in range(150)]
    repository = FakeMeetingRepository(users=users)

    report = await _service(repository).person_stats(ADMIN, limit=500)

    assert report.filters.limit == 100
    assert report.count == 100


@pytest.mark.asyncio
async def test_unknown_target_gives_empty_stats():
    repository = FakeMeetingRepository(
        meetings=[make_meeting(status=MeetingStatus.COMPLETED, bookers=["a"], sellers=["b"], quality=3)]
    )

    stats = await _service(repository).period_stats(ADMIN, period="total", target_user_id="ghost")

    assert stats.total_meetings == 0
    assert stats.show_rate == 0.0
    assert stats.avg_quality_score is None


@pytest.mark.asyncio
async def test_team_stats_ignore_ownership():
    repository = FakeMeetingRepository(
        meetings=[
            make_meeting(bookers=["a"], sellers=["b"]),
            make_meeting(bookers=["c"], sellers=["d"]),
        ]
    )

    stats = await _service(repository).team_period_stats("total")

    assert stats.user_id is None
    assert stats.total_meetings == 2
    assert all(scope.is_unrestricted for scope, _ in repository.meeting_calls)


@pytest.mark.asyncio
async def test_comparison_for_user():
    users = [make_user("alice"), make_user("bob"), make_user("old", is_active=False)]
    meetings = [
        make_meeting(status=MeetingStatus.COMPLETED, bookers=["alice"], sellers=["bob"], quality=4),
        make_meeting(status=MeetingStatus.NO_SHOW, bookers=["alice"], sellers=["bob"]),
        make_meeting(status=MeetingStatus.COMPLETED, bookers=["bob"], sellers=["bob"], quality=2),
        make_meeting(status=MeetingStatus.COMPLETED, bookers=["bob"], sellers=["bob"], quality=2),
    ]
    repository = FakeMeetingRepository(meetings=meetings, users=users)

    comparison = await _service(repository).comparison(ALICE)

    assert comparison.personal.total_meetings == 2
    assert comparison.personal.completed == 1
    assert comparison.personal.no_shows == 1
    assert comparison.personal.show_rate == pytest.approx(0.5)
    assert comparison.personal.quality is None  # alice never sells
    assert comparison.total_users == 2
    assert comparison.team_average.total_meetings == 2  # 4 meetings / 2 active users
    assert comparison.team_average.show_rate == pytest.approx(0.75)
    assert comparison.team_average.quality == pytest.approx(8 / 3)


@pytest.mark.asyncio
async def test_overview_fans_out_concurrently():
    repository = FakeMeetingRepository(
        meetings=[make_meeting(bookers=["alice"], sellers=["bob"])],
        users=[make_user("alice"), make_user("bob")],
        delay=0.01,
    )

    overview = await _service(repository).overview(ALICE, include_comparison=True)

    assert repository.max_in_flight > 1
    assert overview.today.total_meetings == 1
    assert overview.total.total_bookings == 1
    assert [p.date for p in overview.trends] == ["2025-11-12"]
    assert overview.comparison is not None
    assert overview.comparison.total_users == 2


@pytest.mark.asyncio
async def test_overview_without_comparison():
    overview = await _service(FakeMeetingRepository()).overview(ADMIN)

    assert overview.comparison is None
    assert overview.trends == []
    assert overview.month.period == "month"


@pytest.mark.asyncio
async def test_repository_failure_propagates_without_partial_result():
    repository = FakeMeetingRepository(error=RuntimeError("database unavailable"))

    with pytest.raises(RuntimeError, match="database unavailable"):
        await _service(repository).overview(ADMIN)


@pytest.mark.asyncio
async def test_timeout_cancels_computation():
    repository = FakeMeetingRepository(delay=1.0)

    with pytest.raises(asyncio.TimeoutError):
        await _service(repository, timeout=0.05).period_stats(ADMIN)

    assert repository.in_flight == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "dates",
    [
        {"start_date": date(2025, 11, 1)},
        {"end_date": date(2025, 11, 30)},
    ],
)
async def test_period_stats_requires_both_custom_dates(dates):
    repository = FakeMeetingRepository(
        meetings=[
            make_meeting(start=datetime(2025, 11, 12, 9), bookers=["a"], sellers=["b"]),
            make_meeting(start=datetime(2026, 3, 1, 9), bookers=["a"], sellers=["b"]),
        ]
    )

    with pytest.raises(InvalidParameterError):
        await _service(repository).period_stats(ADMIN, period="today", **dates)

    assert repository.call_count == 0


@pytest.mark.asyncio
async def test_trends_window_includes_both_ends():
    repository = FakeMeetingRepository(
        meetings=[
            make_meeting(start=datetime(2025, 11, 11, 9, 59), bookers=["a"], sellers=["b"]),
            make_meeting(start=datetime(2025, 11, 11, 10, 0), bookers=["a"], sellers=["b"]),
            make_meeting(start=datetime(2025, 11, 12, 10, 0), bookers=["a"], sellers=["b"]),
            make_meeting(start=datetime(2025, 11, 12, 10, 1), bookers=["a"], sellers=["b"]),
        ]
    )

    trends = await _service(repository).trends(ADMIN, days=1)

    assert [(p.date, p.bookings) for p in trends] == [("2025-11-11", 1), ("2025-11-12", 1)]


@pytest.mark.asyncio
async def test_overview_fetches_booking_counts_once():
    repository = FakeMeetingRepository(
        meetings=[
            make_meeting(
                booked=datetime(2025, 11, 3, 9),
                start=datetime(2025, 11, 12, 9),
                bookers=["a"],
                sellers=["b"],
            )
        ]
    )

    overview = await _service(repository).overview(ADMIN)

    # 3 booking windows + 1 unbounded + today/week/month breakdowns + trends
    assert len(repository.meeting_calls) == 8
    fields = [rng.field for _, rng in repository.meeting_calls if rng is not None]
    assert fields.count(TimestampField.BOOKING_DATE) == 3
    assert sum(1 for _, rng in repository.meeting_calls if rng is None) == 1
    for stats in (overview.today, overview.week, overview.month, overview.total):
        assert stats.today_bookings == 0
        assert stats.week_bookings == 0
        assert stats.month_bookings == 1
        assert stats.total_bookings == 1
        assert stats.total_meetings == 1


@pytest.mark.asyncio
async def test_person_stats_filters_echo_effective_user_ids():
    users = [make_user("alice"), make_user("bob")]
    service = _service(FakeMeetingRepository(users=users))

    own = await service.person_stats(ALICE)
    everyone = await service.person_stats(ADMIN)

    assert own.filters.user_ids == ["alice"]
    assert everyone.filters.user_ids is None
