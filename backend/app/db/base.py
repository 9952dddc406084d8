"""SQLAlchemy declarative base shared by the preset, vote, ban and log tables."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""
