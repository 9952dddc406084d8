"""SQLAlchemy ORM model for the votes table."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db.base import Base


class VoteRecord(Base):
    """One user's vote on one preset.

    The composite primary key is the uniqueness constraint the vote ledger
    relies on for conflict detection.
    """

    __tablename__ = "votes"
    __table_args__ = (
        Index("ix_votes_user", "user_discord_id"),
    )

    preset_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("presets.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_discord_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
