"""create moderation_log audit table

Revision ID: a18e5c2d6f94
Revises: 9d6f3a8b4c73
Create Date: 2026-09-25 14:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a18e5c2d6f94"
down_revision: str | None = "9d6f3a8b4c73"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "moderation_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "preset_id",
            sa.String(36),
            sa.ForeignKey("presets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("moderator_discord_id", sa.String(32), nullable=False),
        sa.Column("action", sa.String(16), nullable=False),
        sa.Column("reason", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "action IN ('approve', 'reject', 'flag', 'unflag', 'revert', "
            "'hide', 'restore')",
            name="ck_moderation_log_action",
        ),
    )
    op.create_index(
        "ix_moderation_log_preset", "moderation_log", ["preset_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_moderation_log_preset", table_name="moderation_log")
    op.drop_table("moderation_log")
