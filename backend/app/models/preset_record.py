"""SQLAlchemy ORM model for the presets table."""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db.base import Base


class PresetRecord(Base):
    """A community-submitted dye palette and its moderation lifecycle."""

    __tablename__ = "presets"
    __table_args__ = (
        Index(
            "ix_presets_status_category_vote",
            "status", "category_id", "vote_count",
        ),
        Index("ix_presets_status_vote", "status", "vote_count"),
        Index("ix_presets_status_created", "status", "created_at"),
        Index("ix_presets_author_created", "author_discord_id", "created_at"),
        Index("ix_presets_name", "name"),
        Index("ix_presets_dye_signature", "dye_signature"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'flagged', 'hidden')",
            name="ck_presets_status",
        ),
        CheckConstraint("vote_count >= 0", name="ck_presets_vote_count"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    category_id: Mapped[str] = mapped_column(String(32), nullable=False)
    # JSON arrays; dye order is kept for display
    dyes: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    author_discord_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    author_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    vote_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0",
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="pending", server_default="pending",
    )
    is_curated: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="0",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    dye_signature: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # {"name", "description", "tags", "dyes"} captured when an approved
    # preset is edited and the edit is flagged
    previous_values: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Set only while a ban cascade keeps the preset hidden
    hidden_from_status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    hidden_by_ban_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
