"""Create episodes, comments, rate_limits and library_images.

Revision ID: 4b1e9d2c7a10
Revises:
Create Date: 2026-09-02 10:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "4b1e9d2c7a10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "episodes",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("diary_text", sa.Text(), nullable=False),
        sa.Column("panel_count", sa.Integer(), nullable=False),
        sa.Column("final_prompt", sa.JSON(), nullable=True),
        sa.Column("panels", sa.JSON(), nullable=False),
        sa.Column("thumb_path", sa.String(length=512), nullable=True),
        sa.Column("creator_uid", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_episodes_status", "episodes", ["status"])
    op.create_index("ix_episodes_creator_uid", "episodes", ["creator_uid"])
    op.create_index("ix_episodes_published_at", "episodes", ["published_at"])

    op.create_table(
        "comments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("episode_id", sa.String(length=128), sa.ForeignKey("episodes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("emoji", sa.String(length=16), nullable=False),
        sa.Column("text", sa.String(length=80), nullable=False),
        sa.Column("anon_id_hash", sa.String(length=64), nullable=False),
        sa.Column("flagged", sa.Boolean(), nullable=False),
        sa.Column("flag_reason", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_comments_episode_id", "comments", ["episode_id"])
    op.create_index("ix_comments_anon_id_hash", "comments", ["anon_id_hash"])
    op.create_index("ix_comments_created_at", "comments", ["created_at"])

    op.create_table(
        "rate_limits",
        sa.Column("key", sa.String(length=64), primary_key=True),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("window_start_ms", sa.BigInteger(), nullable=False),
        sa.Column("day_count", sa.Integer(), nullable=True),
        sa.Column("day_window_start_ms", sa.BigInteger(), nullable=True),
    )

    op.create_table(
        "library_images",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("storage_path", sa.String(length=512), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_library_images_user_id", "library_images", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_library_images_user_id", table_name="library_images")
    op.drop_table("library_images")
    op.drop_table("rate_limits")
    op.drop_index("ix_comments_created_at", table_name="comments")
    op.drop_index("ix_comments_anon_id_hash", table_name="comments")
    op.drop_index("ix_comments_episode_id", table_name="comments")
    op.drop_table("comments")
    op.drop_index("ix_episodes_published_at", table_name="episodes")
    op.drop_index("ix_episodes_creator_uid", table_name="episodes")
    op.drop_index("ix_episodes_status", table_name="episodes")
    op.drop_table("episodes")
