# app/services/stats_service.py
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from datetime import date as date_type
from datetime import datetime, timedelta, timezone
from typing import Any, List, TypeVar

import structlog

from app.core.exceptions import ForbiddenError, InvalidParameterError
from app.schemas.meeting import ParticipantRole
from app.schemas.stats import (
    Comparison,
    PeriodStats,
    PersonStatsFilters,
    PersonStatsReport,
    StatsOverview,
    TrendPoint,
)
from app.services.comparison import build_comparison
from app.services.meeting_repository import MeetingRecord, MeetingRepository
from app.services.ownership import MeetingScope, Requester, resolve_target_user, scope_for
from app.services.period_stats import build_period_stats
from app.services.periods import (
    DateRange,
    Period,
    TimestampField,
    custom_range,
    get_timezone,
    parse_period,
    period_range,
)
from app.services.person_stats import aggregate_person_stats, filter_by_role, parse_role_filter
from app.services.rates import weighted_quality_average
from app.services.trends import build_trend_series, validate_days

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


async def gather_all_or_nothing(*aws: Awaitable[Any]) -> List[Any]:
    """
    Run awaitables concurrently and return their results in order.

    If any of them fails (or the caller is cancelled), the remaining ones
    are cancelled and the first error propagates. No partial result is
    ever returned.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class StatsService:
    """
    Statistics engine: turns meeting records into KPIs under the
    requester's visibility rules.

    The service is stateless between calls. Every public method validates
    its parameters and access rights first, so an invalid or forbidden
    request never reaches the repository. Independent queries of one
    request are issued concurrently.
    """

    def __init__(
        self,
        repository: MeetingRepository,
        *,
        tz_name: str = "UTC",
        clock: Callable[[], datetime] = _utcnow,
        timeout: float | None = None,
        max_person_limit: int = 100,
        default_trend_days: int = 30,
    ) -> None:
        self.repository = repository
        self.tz = get_timezone(tz_name)
        self.clock = clock
        self.timeout = timeout
        self.max_person_limit = max_person_limit
        self.default_trend_days = default_trend_days

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def period_stats(
        self,
        requester: Requester,
        period: str | Period = Period.MONTH,
        target_user_id: str | None = None,
        start_date: date_type | None = None,
        end_date: date_type | None = None,
    ) -> PeriodStats:
        """
        Statistics for one period, restricted to what `requester` may see.

        A USER requester is always scoped to itself; naming another user
        raises ForbiddenError. `start_date` and `end_date` together replace
        the named period's window for the status breakdown; passing only one
        of them raises InvalidParameterError.
        """
        period = parse_period(period)
        if (start_date is None) != (end_date is None):
            raise InvalidParameterError("start_date and end_date must be given together")
        custom = custom_range(start_date, end_date, self.tz)
        target = resolve_target_user(requester, target_user_id)
        scope = scope_for(requester.id, requester.role, target)

        return await self._bounded(
            self._compute_period(scope, period, target, custom, self._now())
        )

    async def team_period_stats(self, period: str | Period = Period.MONTH) -> PeriodStats:
        """
        Statistics over every meeting, with no ownership restriction.

        Kept separate from `period_stats` so a requester-scoped call path can
        never fall through to the unrestricted one.
        """
        period = parse_period(period)
        return await self._bounded(
            self._compute_period(MeetingScope.unrestricted(), period, None, None, self._now())
        )

    async def trends(
        self,
        requester: Requester,
        target_user_id: str | None = None,
        days: int | None = None,
    ) -> list[TrendPoint]:
        """
        Daily series over the last `days` days (by scheduled start).
        """
        days = validate_days(self.default_trend_days if days is None else days)
        target = resolve_target_user(requester, target_user_id)
        scope = scope_for(requester.id, requester.role, target)

        return await self._bounded(self._compute_trends(scope, days, self._now()))

    async def person_stats(
        self,
        requester: Requester,
        user_ids: Sequence[str] | None = None,
        start_date: date_type | None = None,
        end_date: date_type | None = None,
        role: str | None = "both",
        limit: int = 50,
        offset: int = 0,
    ) -> PersonStatsReport:
        """
        Booker/seller statistics per user.

        Steps
        -----
        1) Validate role, dates and paging; restrict a USER to itself.
        2) Load the requested users (sorted by name) and take one page.
        3) Fetch meetings where any of them is a booker and meetings where
           any of them is a seller: two queries in total, run concurrently.
        4) Aggregate in memory and apply the role filter.
        """
        role_filter = parse_role_filter(role)
        date_range = custom_range(start_date, end_date, self.tz)
        if limit < 1:
            raise InvalidParameterError("limit must be at least 1")
        if offset < 0:
            raise InvalidParameterError("offset must not be negative")
        limit = min(limit, self.max_person_limit)

        requested = [uid.strip() for uid in user_ids if uid.strip()] if user_ids else None
        if not requester.is_privileged:
            if requested and any(uid != requester.id for uid in requested):
                logger.warning(
                    "stats.forbidden_target",
                    requester_id=requester.id,
                    target_user_ids=requested,
                )
                raise ForbiddenError("You can only view your own statistics")
            requested = [requester.id]

        filters = PersonStatsFilters(
            user_ids=requested,
            start_date=start_date,
            end_date=end_date,
            role=role_filter.value,
            limit=limit,
            offset=offset,
        )

        return await self._bounded(
            self._compute_person_stats(requested, date_range, role_filter, filters)
        )

    async def comparison(
        self,
        requester: Requester,
        target_user_id: str | None = None,
    ) -> Comparison:
        """
        This month's figures for one user next to team-wide averages.

        The subject is the requester unless a privileged requester names
        another user.
        """
        subject = resolve_target_user(requester, target_user_id) or requester.id
        scope = scope_for(requester.id, requester.role, subject)

        return await self._bounded(self._compute_comparison(scope, subject, self._now()))

    async def overview(
        self,
        requester: Requester,
        target_user_id: str | None = None,
        include_comparison: bool = False,
    ) -> StatsOverview:
        """
        today/week/month/total statistics plus the default trend series,
        all computed concurrently. Optionally adds the team comparison.
        """
        target = resolve_target_user(requester, target_user_id)
        scope = scope_for(requester.id, requester.role, target)
        days = validate_days(self.default_trend_days)
        now = self._now()

        async def _run() -> StatsOverview:
            windows = {period: period_range(period, now, self.tz) for period in Period}
            bounded = [period for period in Period if windows[period] is not None]

            jobs: list[Awaitable[Any]] = [
                self._booking_snapshot(scope, now),
                self._compute_trends(scope, days, now),
            ]
            jobs.extend(self.repository.find_meetings(scope, windows[p]) for p in bounded)
            if include_comparison:
                subject = target or requester.id
                jobs.append(
                    self._compute_comparison(
                        scope_for(requester.id, requester.role, subject), subject, now
                    )
                )

            results = await gather_all_or_nothing(*jobs)
            (booking_counts, everything), trend_points = results[0], results[1]
            rows = dict(zip(bounded, results[2:2 + len(bounded)]))
            stats = {
                period: self._assemble_period(
                    scope,
                    period,
                    target,
                    windows[period],
                    booking_counts,
                    rows.get(period, everything),
                )
                for period in Period
            }

            return StatsOverview(
                today=stats[Period.TODAY],
                week=stats[Period.WEEK],
                month=stats[Period.MONTH],
                total=stats[Period.TOTAL],
                trends=trend_points,
                comparison=results[-1] if include_comparison else None,
            )

        overview = await self._bounded(_run())
        logger.info(
            "stats.overview_computed",
            requester_id=requester.id,
            target_user_id=target,
            include_comparison=include_comparison,
        )
        return overview

    # ------------------------------------------------------------------
    # Internals (no validation, no access checks)
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now

    async def _bounded(self, aw: Awaitable[T]) -> T:
        if self.timeout is None:
            return await aw
        return await asyncio.wait_for(aw, timeout=self.timeout)

    async def _booking_snapshot(
        self,
        scope: MeetingScope,
        now: datetime,
    ) -> tuple[list[int], list[MeetingRecord]]:
        """
        Booking counts `(today, week, month, total)` by booking date, plus
        every visible meeting (the `total` rows).
        """
        windows = [
            period_range(p, now, self.tz).on(TimestampField.BOOKING_DATE)
            for p in (Period.TODAY, Period.WEEK, Period.MONTH)
        ]
        queries = [self.repository.find_meetings(scope, window) for window in windows]
        queries.append(self.repository.find_meetings(scope))

        results = await gather_all_or_nothing(*queries)
        everything = results[3]
        return [len(rows) for rows in results[:3]] + [len(everything)], everything

    async def _compute_period(
        self,
        scope: MeetingScope,
        period: Period,
        user_id: str | None,
        custom: DateRange | None,
        now: datetime,
    ) -> PeriodStats:
        breakdown = custom if custom is not None else period_range(period, now, self.tz)

        jobs: list[Awaitable[Any]] = [self._booking_snapshot(scope, now)]
        if breakdown is not None:
            jobs.append(self.repository.find_meetings(scope, breakdown))

        results = await gather_all_or_nothing(*jobs)
        booking_counts, everything = results[0]
        meetings = results[1] if breakdown is not None else everything

        return self._assemble_period(scope, period, user_id, breakdown, booking_counts, meetings)

    def _assemble_period(
        self,
        scope: MeetingScope,
        period: Period,
        user_id: str | None,
        breakdown: DateRange | None,
        booking_counts: Sequence[int],
        meetings: Sequence[MeetingRecord],
    ) -> PeriodStats:
        stats = build_period_stats(
            period,
            user_id,
            breakdown,
            booking_counts,
            meetings,
            quality_seller_ids=scope.participant_ids,
        )
        logger.debug(
            "stats.period_computed",
            period=period.value,
            user_id=user_id,
            unrestricted=scope.is_unrestricted,
            total_meetings=stats.total_meetings,
        )
        return stats

    async def _compute_trends(self, scope: MeetingScope, days: int, now: datetime) -> list[TrendPoint]:
        end = now.astimezone(timezone.utc).replace(tzinfo=None)
        window = DateRange(start=end - timedelta(days=days), end=end, end_inclusive=True)
        meetings = await self.repository.find_meetings(scope, window)
        return build_trend_series(meetings, self.tz)

    async def _compute_person_stats(
        self,
        user_ids: list[str] | None,
        date_range: DateRange | None,
        role_filter,
        filters: PersonStatsFilters,
    ) -> PersonStatsReport:
        users = await self.repository.find_users(user_ids)
        page = users[filters.offset:filters.offset + filters.limit]

        if not page:
            return PersonStatsReport(count=0, stats=[], filters=filters)

        ids = [user.id for user in page]
        as_booker, as_seller = await gather_all_or_nothing(
            self.repository.find_meetings(MeetingScope.any_of(ids, ParticipantRole.BOOKER), date_range),
            self.repository.find_meetings(MeetingScope.any_of(ids, ParticipantRole.SELLER), date_range),
        )
        merged = {meeting.id: meeting for meeting in [*as_booker, *as_seller]}

        stats = filter_by_role(aggregate_person_stats(page, merged.values()), role_filter)
        samples = [(s.as_seller.avg_quality_score, s.as_seller.quality_score_count) for s in stats]

        return PersonStatsReport(
            count=len(stats),
            stats=stats,
            team_avg_quality_score=weighted_quality_average(samples),
            team_quality_score_count=sum(count for avg, count in samples if avg is not None),
            filters=filters,
        )

    async def _compute_comparison(
        self,
        scope: MeetingScope,
        subject: str,
        now: datetime,
    ) -> Comparison:
        personal, team, users = await gather_all_or_nothing(
            self._compute_period(scope, Period.MONTH, subject, None, now),
            self._compute_period(MeetingScope.unrestricted(), Period.MONTH, None, None, now),
            self.repository.find_users(),
        )
        active_users = sum(1 for user in users if user.is_active)
        return build_comparison(personal, team, active_users)
