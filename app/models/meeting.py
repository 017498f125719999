# app/models/meeting.py
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.models.user import _new_id
from app.schemas.meeting import MeetingStatus, StatusReason


def _sql_in(column: str, values) -> str:
    quoted = ", ".join(f"'{value.value}'" for value in values)
    return f"{column} IN ({quoted})"


class Meeting(Base):
    """
    A booked engagement between a booker and a seller on our side and an
    external counterpart.

    `booker_id` / `owner_id` are the legacy single-owner columns. They mirror
    the first booker/seller assignment and may be the only participant data
    on rows created before the assignment tables existed.
    """

    __tablename__ = "meetings"

    id = Column(String(36), primary_key=True, default=_new_id)

    subject = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)

    status = Column(
        String(16),
        nullable=False,
        default=MeetingStatus.BOOKED.value,
        index=True,
    )
    status_reason = Column(String(32), nullable=True)
    quality_score = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    booking_date = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    booker_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    booker_name = Column(String(255), nullable=False, default="")
    owner_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    owner_name = Column(String(255), nullable=False, default="")

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_updated = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    bookers = relationship(
        "MeetingBooker",
        back_populates="meeting",
        cascade="all, delete-orphan",
        order_by="MeetingBooker.assigned_at",
    )
    sellers = relationship(
        "MeetingSeller",
        back_populates="meeting",
        cascade="all, delete-orphan",
        order_by="MeetingSeller.assigned_at",
    )

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_meetings_time_order"),
        CheckConstraint(_sql_in("status", MeetingStatus), name="ck_meetings_status"),
        CheckConstraint(
            "status_reason IS NULL OR " + _sql_in("status_reason", StatusReason),
            name="ck_meetings_status_reason",
        ),
        CheckConstraint(
            "quality_score IS NULL OR (quality_score BETWEEN 1 AND 5)",
            name="ck_meetings_quality_range",
        ),
        CheckConstraint(
            "quality_score IS NULL OR status = 'COMPLETED'",
            name="ck_meetings_quality_completed_only",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Meeting id={self.id} start={self.start_time} status={self.status}>"
        )


class MeetingBooker(Base):
    """
    Assignment of a user as booker of a meeting.
    """

    __tablename__ = "meeting_bookers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    meeting_id = Column(
        String(36),
        ForeignKey("meetings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_name = Column(String(255), nullable=False, default="")
    assigned_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    meeting = relationship("Meeting", back_populates="bookers")

    __table_args__ = (
        UniqueConstraint("meeting_id", "user_id", name="uq_meeting_bookers_meeting_user"),
    )


class MeetingSeller(Base):
    """
    Assignment of a user as seller of a meeting.
    """

    __tablename__ = "meeting_sellers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    meeting_id = Column(
        String(36),
        ForeignKey("meetings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_name = Column(String(255), nullable=False, default="")
    assigned_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    meeting = relationship("Meeting", back_populates="sellers")

    __table_args__ = (
        UniqueConstraint("meeting_id", "user_id", name="uq_meeting_sellers_meeting_user"),
    )
