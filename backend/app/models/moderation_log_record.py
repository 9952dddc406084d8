"""SQLAlchemy ORM model for the moderation_log table."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db.base import Base


class ModerationLogRecord(Base):
    """Audit entry for a moderator decision or a ban cascade on a preset."""

    __tablename__ = "moderation_log"
    __table_args__ = (
        Index("ix_moderation_log_preset", "preset_id", "created_at"),
        CheckConstraint(
            "action IN ('approve', 'reject', 'flag', 'unflag', 'revert', "
            "'hide', 'restore')",
            name="ck_moderation_log_action",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    preset_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("presets.id", ondelete="CASCADE"),
        nullable=False,
    )
    moderator_discord_id: Mapped[str] = mapped_column(String(32), nullable=False)
    action: Mapped[str] = mapped_column(String(16), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
