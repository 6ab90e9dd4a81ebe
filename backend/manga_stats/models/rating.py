from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from manga_stats.db.base import Base


class Rating(Base):
    __tablename__ = "ratings"
    __table_args__ = (
        Index("uq_ratings_comic_user", "comic_id", "user_id", unique=True),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_ratings_range"),
    )

    comic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("comics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    comic = relationship("Comic", back_populates="ratings")
