from sqlalchemy import Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from manga_stats.db.base import Base


class Chapter(Base):
    __tablename__ = "chapters"
    __table_args__ = (
        Index("uq_chapters_comic_slug", "comic_id", "slug", unique=True),
    )

    comic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("comics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    chapter_number: Mapped[float] = mapped_column(Float, nullable=False)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)

    # All-time counter; chapters have no total_views column
    view_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    daily_views: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    weekly_views: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    monthly_views: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    # Relationships
    comic = relationship("Comic", back_populates="chapters")
    views = relationship(
        "ChapterView", back_populates="chapter", cascade="all, delete-orphan"
    )
