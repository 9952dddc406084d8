"""SQLAlchemy ORM model for the banned_users table."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db.base import Base


class BanRecord(Base):
    """Ban audit row. Never deleted; an unban only stamps ``unbanned_at``."""

    __tablename__ = "banned_users"
    __table_args__ = (
        CheckConstraint(
            "discord_id IS NOT NULL OR xivauth_id IS NOT NULL",
            name="ck_banned_users_identifier",
        ),
        # At most one active ban per identifier
        Index(
            "ix_banned_users_discord_active",
            "discord_id",
            unique=True,
            sqlite_where=text("discord_id IS NOT NULL AND unbanned_at IS NULL"),
            postgresql_where=text("discord_id IS NOT NULL AND unbanned_at IS NULL"),
        ),
        Index(
            "ix_banned_users_xivauth_active",
            "xivauth_id",
            unique=True,
            sqlite_where=text("xivauth_id IS NOT NULL AND unbanned_at IS NULL"),
            postgresql_where=text("xivauth_id IS NOT NULL AND unbanned_at IS NULL"),
        ),
        Index("ix_banned_users_moderator", "moderator_discord_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    discord_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    xivauth_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    moderator_discord_id: Mapped[str] = mapped_column(String(32), nullable=False)
    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    banned_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    unbanned_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    unban_moderator_discord_id: Mapped[str | None] = mapped_column(
        String(32), nullable=True,
    )

    @property
    def is_active(self) -> bool:
        return self.unbanned_at is None
