"""add previous_values snapshot and ban-hide tracking columns to presets

Revision ID: 7c4d1e6f2a52
Revises: 5b2e8d4a9c31
Create Date: 2026-09-18 16:45:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7c4d1e6f2a52"
down_revision: str | None = "5b2e8d4a9c31"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # {"name", "description", "tags", "dyes"} before a flagged edit
    op.add_column("presets", sa.Column("previous_values", sa.Text(), nullable=True))
    op.add_column(
        "presets", sa.Column("hidden_from_status", sa.String(16), nullable=True),
    )
    op.add_column(
        "presets", sa.Column("hidden_by_ban_id", sa.String(36), nullable=True),
    )


def downgrade() -> None:
    with op.batch_alter_table("presets") as batch_op:
        batch_op.drop_column("hidden_by_ban_id")
        batch_op.drop_column("hidden_from_status")
        batch_op.drop_column("previous_values")
