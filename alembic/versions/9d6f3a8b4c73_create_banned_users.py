"""create banned_users table

Revision ID: 9d6f3a8b4c73
Revises: 7c4d1e6f2a52
Create Date: 2026-09-22 11:15:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "9d6f3a8b4c73"
down_revision: str | None = "7c4d1e6f2a52"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "banned_users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("discord_id", sa.String(32), nullable=True),
        sa.Column("xivauth_id", sa.String(64), nullable=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("moderator_discord_id", sa.String(32), nullable=False),
        sa.Column("reason", sa.String(500), nullable=False),
        sa.Column("banned_at", sa.DateTime(), nullable=False),
        sa.Column("unbanned_at", sa.DateTime(), nullable=True),
        sa.Column("unban_moderator_discord_id", sa.String(32), nullable=True),
        sa.CheckConstraint(
            "discord_id IS NOT NULL OR xivauth_id IS NOT NULL",
            name="ck_banned_users_identifier",
        ),
    )
    # One active ban per identifier
    op.create_index(
        "ix_banned_users_discord_active",
        "banned_users",
        ["discord_id"],
        unique=True,
        sqlite_where=sa.text("discord_id IS NOT NULL AND unbanned_at IS NULL"),
    )
    op.create_index(
        "ix_banned_users_xivauth_active",
        "banned_users",
        ["xivauth_id"],
        unique=True,
        sqlite_where=sa.text("xivauth_id IS NOT NULL AND unbanned_at IS NULL"),
    )
    op.create_index(
        "ix_banned_users_moderator", "banned_users", ["moderator_discord_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_banned_users_moderator", table_name="banned_users")
    op.drop_index("ix_banned_users_xivauth_active", table_name="banned_users")
    op.drop_index("ix_banned_users_discord_active", table_name="banned_users")
    op.drop_table("banned_users")
