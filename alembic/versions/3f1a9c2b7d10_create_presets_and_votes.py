"""create presets and votes tables

Revision ID: 3f1a9c2b7d10
Revises:
Create Date: 2026-09-14 10:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1a9c2b7d10"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "presets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(200), nullable=False),
        sa.Column("category_id", sa.String(32), nullable=False),
        sa.Column("dyes", sa.Text(), nullable=False),
        sa.Column("tags", sa.Text(), nullable=False),
        sa.Column("author_discord_id", sa.String(32), nullable=True),
        sa.Column("author_name", sa.String(100), nullable=True),
        sa.Column("vote_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("is_curated", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("dye_signature", sa.String(64), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'flagged', 'hidden')",
            name="ck_presets_status",
        ),
        sa.CheckConstraint("vote_count >= 0", name="ck_presets_vote_count"),
    )
    op.create_index("ix_presets_dye_signature", "presets", ["dye_signature"])

    op.create_table(
        "votes",
        sa.Column(
            "preset_id",
            sa.String(36),
            sa.ForeignKey("presets.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("user_discord_id", sa.String(32), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_votes_user", "votes", ["user_discord_id"])


def downgrade() -> None:
    op.drop_index("ix_votes_user", table_name="votes")
    op.drop_table("votes")
    op.drop_index("ix_presets_dye_signature", table_name="presets")
    op.drop_table("presets")
