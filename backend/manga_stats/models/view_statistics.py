from datetime import date as date_type

from sqlalchemy import Date, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from manga_stats.db.base import Base


class ViewStatisticsSnapshot(Base):
    """Daily copy of an entity's rolling-window view counts.

    One row per (entity_type, entity_id, date); re-running the snapshot job on
    the same day overwrites the row.
    """

    __tablename__ = "view_statistics"
    __table_args__ = (
        UniqueConstraint(
            "entity_type", "entity_id", "date", name="uq_view_statistics_entity_date"
        ),
        Index("ix_view_statistics_date", "date"),
    )

    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    daily_views: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    weekly_views: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    monthly_views: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
