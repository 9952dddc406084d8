"""add composite indexes for filtered and sorted preset queries

Revision ID: 5b2e8d4a9c31
Revises: 3f1a9c2b7d10
Create Date: 2026-09-15 09:30:00.000000

"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5b2e8d4a9c31"
down_revision: str | None = "3f1a9c2b7d10"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Equality columns first, then the sort column
_INDEXES = {
    "ix_presets_status_category_vote": ["status", "category_id", "vote_count"],
    "ix_presets_status_vote": ["status", "vote_count"],
    "ix_presets_status_created": ["status", "created_at"],
    "ix_presets_author_created": ["author_discord_id", "created_at"],
    "ix_presets_name": ["name"],
}


def upgrade() -> None:
    for name, columns in _INDEXES.items():
        op.create_index(name, "presets", columns, if_not_exists=True)


def downgrade() -> None:
    for name in reversed(list(_INDEXES)):
        op.drop_index(name, table_name="presets")
