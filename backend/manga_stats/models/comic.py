from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from manga_stats.db.base import Base


class Comic(Base):
    __tablename__ = "comics"
    __table_args__ = (
        Index("ix_comics_daily_views", "daily_views"),
        Index("ix_comics_weekly_views", "weekly_views"),
        Index("ix_comics_monthly_views", "monthly_views"),
        Index("ix_comics_total_views", "total_views"),
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default="ongoing", server_default="ongoing"
    )

    # Rolling-window aggregates, recomputed by the aggregation job
    daily_views: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    weekly_views: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    monthly_views: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    # All-time counters
    total_views: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    total_favorites: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    last_chapter_uploaded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    # Relationships
    chapters = relationship(
        "Chapter", back_populates="comic", cascade="all, delete-orphan"
    )
    views = relationship(
        "ComicView", back_populates="comic", cascade="all, delete-orphan"
    )
    ratings = relationship(
        "Rating", back_populates="comic", cascade="all, delete-orphan"
    )
