# app/api/routes/stats.py
import asyncio
from datetime import date as date_type
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies.requester import get_requester
from app.api.dependencies.stats import get_stats_service
from app.core.exceptions import ForbiddenError, InvalidParameterError
from app.schemas.stats import (
    Comparison,
    PeriodStats,
    PersonStatsReport,
    StatsOverview,
    TrendSeries,
)
from app.services.ownership import Requester
from app.services.stats_service import StatsService

router = APIRouter(
    prefix="/stats",
    tags=["Statistics"],
)


def _http_error(exc: Exception) -> HTTPException:
    """
    Translate engine errors into HTTP errors.

    - InvalidParameterError -> 400
    - ForbiddenError        -> 403
    - asyncio.TimeoutError  -> 504
    """
    if isinstance(exc, InvalidParameterError):
        return HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc))
    if isinstance(exc, ForbiddenError):
        return HTTPException(status_code=HTTPStatus.FORBIDDEN, detail=str(exc))
    return HTTPException(
        status_code=HTTPStatus.GATEWAY_TIMEOUT,
        detail="Statistics computation timed out.",
    )


@router.get(
    "/summary",
    response_model=PeriodStats,
    status_code=HTTPStatus.OK,
    summary="Get meeting statistics for one period",
    description=(
        "Return booking counts, status breakdown, show/no-show rates and the "
        "average quality score for a period.\n\n"
        "- Booking counts (`today_bookings` ... `total_bookings`) use the "
        "**booking date**.\n"
        "- The status breakdown, rates and quality use the **scheduled start**.\n"
        "- `start_date` and `end_date` (inclusive days) together replace the "
        "period window; passing only one of them is a 400.\n\n"
        "USER requesters only see their own meetings; MANAGER/ADMIN see all "
        "meetings or one user's meetings via `user_id`."
    ),
    responses={
        400: {"description": "Invalid period or date range."},
        401: {"description": "Missing requester identity."},
        403: {"description": "A USER asked for another user's statistics."},
    },
)
async def get_summary(
    period: str = Query(
        default="month",
        description="One of: today, week, month, total.",
    ),
    user_id: str | None = Query(
        default=None,
        description="Target user. Must be the requester's own id for USER requesters.",
    ),
    start_date: date_type | None = Query(
        default=None,
        description="Start date (inclusive) in ISO format (YYYY-MM-DD).",
    ),
    end_date: date_type | None = Query(
        default=None,
        description="End date (inclusive) in ISO format (YYYY-MM-DD).",
    ),
    requester: Requester = Depends(get_requester),
    service: StatsService = Depends(get_stats_service),
) -> PeriodStats:
    try:
        return await service.period_stats(
            requester,
            period=period,
            target_user_id=user_id,
            start_date=start_date,
            end_date=end_date,
        )
    except (InvalidParameterError, ForbiddenError, asyncio.TimeoutError) as exc:
        raise _http_error(exc)


@router.get(
    "/overview",
    response_model=StatsOverview,
    status_code=HTTPStatus.OK,
    summary="Get today/week/month/total statistics and trends in one call",
    description=(
        "Compute today, week, month and total statistics and the default "
        "trend series concurrently.\n\n"
        "With `include_comparison=true` the response also contains the "
        "subject's month figures next to team-wide averages."
    ),
    responses={
        401: {"description": "Missing requester identity."},
        403: {"description": "A USER asked for another user's statistics."},
    },
)
async def get_overview(
    user_id: str | None = Query(default=None, description="Target user."),
    include_comparison: bool = Query(
        default=False,
        description="Add a personal vs. team comparison for the month.",
    ),
    requester: Requester = Depends(get_requester),
    service: StatsService = Depends(get_stats_service),
) -> StatsOverview:
    try:
        return await service.overview(
            requester,
            target_user_id=user_id,
            include_comparison=include_comparison,
        )
    except (InvalidParameterError, ForbiddenError, asyncio.TimeoutError) as exc:
        raise _http_error(exc)


@router.get(
    "/trends",
    response_model=TrendSeries,
    status_code=HTTPStatus.OK,
    summary="Get a daily trend series",
    description=(
        "Return per-day booking, completed and no-show counts over the last "
        "`days` days (1-365), bucketed by scheduled start.\n\n"
        "The series is sparse: days without meetings are not listed."
    ),
    responses={
        400: {"description": "days outside 1-365."},
        401: {"description": "Missing requester identity."},
        403: {"description": "A USER asked for another user's trends."},
    },
)
async def get_trends(
    user_id: str | None = Query(default=None, description="Target user."),
    days: int | None = Query(default=None, description="Window length in days (1-365)."),
    requester: Requester = Depends(get_requester),
    service: StatsService = Depends(get_stats_service),
) -> TrendSeries:
    try:
        trends = await service.trends(requester, target_user_id=user_id, days=days)
    except (InvalidParameterError, ForbiddenError, asyncio.TimeoutError) as exc:
        raise _http_error(exc)

    effective_user = user_id if requester.is_privileged else requester.id
    return TrendSeries(
        days=days if days is not None else service.default_trend_days,
        user_id=effective_user,
        count=len(trends),
        trends=trends,
    )


@router.get(
    "/by-person",
    response_model=PersonStatsReport,
    status_code=HTTPStatus.OK,
    summary="Get statistics per person, split by booker and seller role",
    description=(
        "Return per-user counts and rates as booker and as seller, the "
        "seller quality average and combined totals.\n\n"
        "- `user_ids`: comma-separated ids (USER requesters may only pass their own)\n"
        "- `role`: booker, seller or both; booker/seller drop users without "
        "meetings in that role\n"
        "- `limit` (max 100) / `offset`: paging over users sorted by name"
    ),
    responses={
        400: {"description": "Invalid role, paging or date range."},
        401: {"description": "Missing requester identity."},
        403: {"description": "A USER asked for other users' statistics."},
    },
)
async def get_stats_by_person(
    user_ids: str | None = Query(default=None, description="Comma-separated user ids."),
    start_date: date_type | None = Query(default=None, description="Start date (inclusive)."),
    end_date: date_type | None = Query(default=None, description="End date (inclusive)."),
    role: str = Query(default="both", description="One of: booker, seller, both."),
    limit: int = Query(default=50, description="Page size (capped at 100)."),
    offset: int = Query(default=0, description="Number of users to skip."),
    requester: Requester = Depends(get_requester),
    service: StatsService = Depends(get_stats_service),
) -> PersonStatsReport:
    ids = user_ids.split(",") if user_ids else None
    try:
        return await service.person_stats(
            requester,
            user_ids=ids,
            start_date=start_date,
            end_date=end_date,
            role=role,
            limit=limit,
            offset=offset,
        )
    except (InvalidParameterError, ForbiddenError, asyncio.TimeoutError) as exc:
        raise _http_error(exc)


@router.get(
    "/comparison",
    response_model=Comparison,
    status_code=HTTPStatus.OK,
    summary="Compare a user's month with the team average",
    description=(
        "Return the subject's show rate, quality, totals and no-shows for the "
        "current month next to the team show rate, quality and meetings per "
        "active user. No other individual's figures are exposed."
    ),
    responses={
        401: {"description": "Missing requester identity."},
        403: {"description": "A USER asked for another user's comparison."},
    },
)
async def get_comparison(
    user_id: str | None = Query(default=None, description="Subject user (privileged only)."),
    requester: Requester = Depends(get_requester),
    service: StatsService = Depends(get_stats_service),
) -> Comparison:
    try:
        return await service.comparison(requester, target_user_id=user_id)
    except (InvalidParameterError, ForbiddenError, asyncio.TimeoutError) as exc:
        raise _http_error(exc)
