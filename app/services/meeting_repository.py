# app/services/meeting_repository.py
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.models.meeting import Meeting, MeetingBooker, MeetingSeller
from app.models.user import User
from app.schemas.meeting import MeetingStatus, ParticipantRole, UserRole
from app.services.ownership import MeetingScope
from app.services.periods import DateRange, TimestampField

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MeetingRecord:
    """
    Read model of a meeting as the statistics engine sees it.

    `booker_ids` and `seller_ids` are already normalized across the legacy
    single-id columns and the assignment tables, so aggregators never need
    to know which schema populated the row.
    """

    id: str
    status: MeetingStatus
    start_time: datetime
    booking_date: datetime
    quality_score: int | None = None
    booker_ids: frozenset[str] = frozenset()
    seller_ids: frozenset[str] = frozenset()

    @property
    def participant_ids(self) -> frozenset[str]:
        return self.booker_ids | self.seller_ids


@dataclass(frozen=True)
class UserRecord:
    id: str
    name: str
    email: str
    role: UserRole
    is_active: bool = True


def normalize_participants(legacy_id: str | None, assigned_ids: Iterable[str]) -> frozenset[str]:
    """
    Union of the legacy single-owner id (if set) and the assignment ids.
    """
    ids = {user_id for user_id in assigned_ids if user_id}
    if legacy_id:
        ids.add(legacy_id)
    return frozenset(ids)


class MeetingRepository(Protocol):
    """
    Read-only access to meetings and users.

    Implementations must be safe to call concurrently from several tasks.
    """

    async def find_meetings(
        self,
        scope: MeetingScope,
        date_range: DateRange | None = None,
    ) -> list[MeetingRecord]:
        ...

    async def find_users(self, ids: Sequence[str] | None = None) -> list[UserRecord]:
        ...


class SqlAlchemyMeetingRepository:
    """
    MeetingRepository backed by the async SQLAlchemy models.

    Every call opens its own session from the given factory so several
    queries can run concurrently within one statistics request.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def find_meetings(
        self,
        scope: MeetingScope,
        date_range: DateRange | None = None,
    ) -> list[MeetingRecord]:
        stmt = select(Meeting).options(
            selectinload(Meeting.bookers),
            selectinload(Meeting.sellers),
        )

        conditions = []
        participant_clause = self._participant_clause(scope)
        if participant_clause is not None:
            conditions.append(participant_clause)
        if date_range is not None:
            conditions.extend(self._date_conditions(date_range))
        if conditions:
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(Meeting.start_time.asc())

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            meetings = list(result.scalars().all())

        logger.debug(
            "repository.find_meetings",
            unrestricted=scope.is_unrestricted,
            participants=len(scope.participant_ids or ()),
            role=scope.role.value if scope.role else None,
            rows=len(meetings),
        )
        return [self._to_record(meeting) for meeting in meetings]

    async def find_users(self, ids: Sequence[str] | None = None) -> list[UserRecord]:
        stmt = select(User)
        if ids is not None:
            stmt = stmt.where(User.id.in_(list(ids)))
        stmt = stmt.order_by(User.name.asc())

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            users = list(result.scalars().all())

        return [
            UserRecord(
                id=user.id,
                name=user.name,
                email=user.email,
                role=UserRole(user.role),
                is_active=bool(user.is_active),
            )
            for user in users
        ]

    @staticmethod
    def _participant_clause(scope: MeetingScope):
        """
        SQL form of `MeetingScope.matches`: legacy columns OR assignment rows.
        """
        if scope.participant_ids is None:
            return None

        ids = list(scope.participant_ids)
        booker_clause = or_(
            Meeting.booker_id.in_(ids),
            Meeting.bookers.any(MeetingBooker.user_id.in_(ids)),
        )
        seller_clause = or_(
            Meeting.owner_id.in_(ids),
            Meeting.sellers.any(MeetingSeller.user_id.in_(ids)),
        )

        if scope.role is ParticipantRole.BOOKER:
            return booker_clause
        if scope.role is ParticipantRole.SELLER:
            return seller_clause
        return or_(booker_clause, seller_clause)

    @staticmethod
    def _date_conditions(date_range: DateRange) -> list:
        if date_range.field is TimestampField.BOOKING_DATE:
            column = Meeting.booking_date
        else:
            column = Meeting.start_time

        conditions = []
        if date_range.start is not None:
            conditions.append(column >= date_range.start)
        if date_range.end is not None:
            if date_range.end_inclusive:
                conditions.append(column <= date_range.end)
            else:
                conditions.append(column < date_range.end)
        return conditions

    @staticmethod
    def _to_record(meeting: Meeting) -> MeetingRecord:
        return MeetingRecord(
            id=meeting.id,
            status=MeetingStatus(meeting.status),
            start_time=meeting.start_time,
            booking_date=meeting.booking_date,
            quality_score=meeting.quality_score,
            booker_ids=normalize_participants(
                meeting.booker_id, (b.user_id for b in meeting.bookers)
            ),
            seller_ids=normalize_participants(
                meeting.owner_id, (s.user_id for s in meeting.sellers)
            ),
        )
