"""create comics, chapters, ratings and view event tables

Revision ID: 001
Revises:
Create Date: 2025-02-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "comics",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("cover_image_url", sa.String(1024), nullable=True),
        sa.Column("status", sa.String(30), server_default="ongoing", nullable=False),
        sa.Column("daily_views", sa.Integer(), server_default="0", nullable=False),
        sa.Column("weekly_views", sa.Integer(), server_default="0", nullable=False),
        sa.Column("monthly_views", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_views", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_favorites", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_chapter_uploaded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_comics_slug", "comics", ["slug"], unique=True)
    op.create_index("ix_comics_daily_views", "comics", ["daily_views"])
    op.create_index("ix_comics_weekly_views", "comics", ["weekly_views"])
    op.create_index("ix_comics_monthly_views", "comics", ["monthly_views"])
    op.create_index("ix_comics_total_views", "comics", ["total_views"])
    op.create_index("ix_comics_last_chapter_uploaded_at", "comics", ["last_chapter_uploaded_at"])

    op.create_table(
        "chapters",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("comic_id", sa.Integer(), sa.ForeignKey("comics.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("chapter_number", sa.Float(), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("view_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("daily_views", sa.Integer(), server_default="0", nullable=False),
        sa.Column("weekly_views", sa.Integer(), server_default="0", nullable=False),
        sa.Column("monthly_views", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
    )
    op.create_index("uq_chapters_comic_slug", "chapters", ["comic_id", "slug"], unique=True)

    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("comic_id", sa.Integer(), sa.ForeignKey("comics.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_ratings_range"),
        *_timestamps(),
    )
    op.create_index("uq_ratings_comic_user", "ratings", ["comic_id", "user_id"], unique=True)

    op.create_table(
        "comic_views",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("comic_id", sa.Integer(), sa.ForeignKey("comics.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(255), nullable=True),
        sa.Column("viewed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_comic_views_comic_viewed", "comic_views", ["comic_id", "viewed_at"])

    op.create_table(
        "chapter_views",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("chapter_id", sa.Integer(), sa.ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(255), nullable=True),
        sa.Column("viewed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_chapter_views_chapter_viewed", "chapter_views", ["chapter_id", "viewed_at"])


def downgrade() -> None:
    op.drop_index("ix_chapter_views_chapter_viewed", table_name="chapter_views")
    op.drop_table("chapter_views")
    op.drop_index("ix_comic_views_comic_viewed", table_name="comic_views")
    op.drop_table("comic_views")
    op.drop_index("uq_ratings_comic_user", table_name="ratings")
    op.drop_table("ratings")
    op.drop_index("uq_chapters_comic_slug", table_name="chapters")
    op.drop_table("chapters")
    op.drop_index("ix_comics_last_chapter_uploaded_at", table_name="comics")
    op.drop_index("ix_comics_total_views", table_name="comics")
    op.drop_index("ix_comics_monthly_views", table_name="comics")
    op.drop_index("ix_comics_weekly_views", table_name="comics")
    op.drop_index("ix_comics_daily_views", table_name="comics")
    op.drop_index("ix_comics_slug", table_name="comics")
    op.drop_table("comics")
