# app/models/__init__.py
from app.models.user import User
from app.models.meeting import Meeting, MeetingBooker, MeetingSeller

__all__ = ["User", "Meeting", "MeetingBooker", "MeetingSeller"]
