# app/api/dependencies/stats.py
from fastapi import Depends

from app.core.config import get_settings
from app.db.session import AsyncSessionLocal
from app.services.meeting_repository import MeetingRepository, SqlAlchemyMeetingRepository
from app.services.stats_service import StatsService


def get_meeting_repository() -> MeetingRepository:
    """
    Repository used by the statistics endpoints. Tests override this
    dependency with an in-memory implementation.
    """
    return SqlAlchemyMeetingRepository(AsyncSessionLocal)


def get_stats_service(
    repository: MeetingRepository = Depends(get_meeting_repository),
) -> StatsService:
    settings = get_settings()
    return StatsService(
        repository,
        tz_name=settings.STATS_TIMEZONE,
        timeout=settings.STATS_QUERY_TIMEOUT_SECONDS,
        max_person_limit=settings.PERSON_STATS_MAX_LIMIT,
        default_trend_days=settings.TREND_DEFAULT_DAYS,
    )
