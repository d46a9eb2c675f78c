from sqlalchemy import Column, DateTime
from sqlalchemy.orm import DeclarativeBase

from moodstream.utils.datetime_helper import utc_now


class Base(DeclarativeBase):
    """Base class for all models."""


class CreatedAtMixin:
    """Mixin to add a server-assigned created_at timestamp."""

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
