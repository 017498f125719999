# app/schemas/meeting.py
from enum import Enum


class MeetingStatus(str, Enum):
    """
    Lifecycle status of a meeting. The statistics engine only reads the
    current value; transitions are enforced by the booking API.
    """

    BOOKED = "BOOKED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"
    CANCELED = "CANCELED"
    RESCHEDULED = "RESCHEDULED"


class StatusReason(str, Enum):
    """
    Optional explanation attached to a status change. Stored, never aggregated.
    """

    NO_RESPONSE = "NO_RESPONSE"
    CUSTOMER_CANCELED = "CUSTOMER_CANCELED"
    TECHNICAL_ISSUE = "TECHNICAL_ISSUE"
    SCHEDULING_CONFLICT = "SCHEDULING_CONFLICT"
    OTHER = "OTHER"


class UserRole(str, Enum):
    USER = "USER"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


class ParticipantRole(str, Enum):
    """
    The side a participant is on for a given meeting.
    """

    BOOKER = "booker"
    SELLER = "seller"
