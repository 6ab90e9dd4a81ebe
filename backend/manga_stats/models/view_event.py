from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from manga_stats.db.base import Base, utcnow


class ComicView(Base):
    """One row per comic page view. Append-only."""

    __tablename__ = "comic_views"
    __table_args__ = (
        Index("ix_comic_views_comic_viewed", "comic_id", "viewed_at"),
    )

    comic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("comics.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)
    viewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Relationships
    comic = relationship("Comic", back_populates="views")


class ChapterView(Base):
    """One row per chapter read. Append-only."""

    __tablename__ = "chapter_views"
    __table_args__ = (
        Index("ix_chapter_views_chapter_viewed", "chapter_id", "viewed_at"),
    )

    chapter_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)
    viewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Relationships
    chapter = relationship("Chapter", back_populates="views")
