# app/models/user.py
from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String

from app.db.base import Base
from app.schemas.meeting import UserRole


def _new_id() -> str:
    return uuid4().hex


class User(Base):
    """
    A person who can book meetings, run them as seller, or both.

    Ownership of meetings is established through the booker/seller
    assignment tables, not through a column on this model.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(String(16), nullable=False, default=UserRole.USER.value)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"
