# app/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models in the Meeting Stats service.

    Models register themselves on `Base.metadata` when `app.models` is imported.
    """
    pass
