"""post and target tables

Revision ID: 5c1e2a9d4b70
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e2a9d4b70"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the post and target tables."""
    op.create_table(
        "post",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("creator_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("mode", sa.String(length=16), nullable=False),
        sa.Column("created_at_ms", sa.BigInteger(), nullable=False),
        sa.Column("rating_side", sa.String(length=16), nullable=True),
        sa.Column("rating_other_label", sa.String(length=16), nullable=True),
        sa.CheckConstraint("mode IN ('vote', 'preset')", name="ck_post_mode"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_post_creator_id", "post", ["creator_id"])

    op.create_table(
        "target",
        sa.Column("post_id", sa.String(length=64), nullable=False),
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("image_index", sa.Integer(), nullable=False),
        sa.Column("preset_classification", sa.String(length=16), nullable=True),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("post_id", "id"),
    )


def downgrade() -> None:
    """Drop the post and target tables."""
    op.drop_table("target")
    op.drop_index("ix_post_creator_id", table_name="post")
    op.drop_table("post")
