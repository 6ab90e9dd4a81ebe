"""Rolling-window view statistics for comics and chapters.

Counts come straight from the append-only view event tables; the daily,
weekly and monthly windows are independent COUNTs measured back from one
shared "now", so a single recent view lands in all three.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from manga_stats.db.base import utcnow
from manga_stats.models.chapter import Chapter
from manga_stats.models.comic import Comic
from manga_stats.models.view_event import ChapterView, ComicView
from manga_stats.models.view_statistics import ViewStatisticsSnapshot
from manga_stats.services.exceptions import (
    InvalidEntityTypeError,
    ViewStatisticsCalculationError,
)

logger = logging.getLogger(__name__)

DAILY_WINDOW = timedelta(hours=24)
WEEKLY_WINDOW = timedelta(days=7)
MONTHLY_WINDOW = timedelta(days=30)


class EntityType(str, Enum):
    COMIC = "comic"
    CHAPTER = "chapter"


@dataclass(frozen=True)
class ViewStatistics:
    daily_views: int = 0
    weekly_views: int = 0
    monthly_views: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def parse_entity_type(value: str) -> EntityType:
    try:
        return EntityType(value)
    except ValueError:
        raise InvalidEntityTypeError(value) from None


def _entity_model(entity_type: EntityType) -> type[Comic] | type[Chapter]:
    return Comic if entity_type is EntityType.COMIC else Chapter


def _event_columns(entity_type: EntityType):
    """Return (entity id column, viewed_at column) of the event table."""
    if entity_type is EntityType.COMIC:
        return ComicView.comic_id, ComicView.viewed_at
    return ChapterView.chapter_id, ChapterView.viewed_at


def truncate_to_day(value: date | datetime | None) -> date:
    """Day-granularity key for snapshots (UTC for aware datetimes)."""
    if value is None:
        return datetime.now(timezone.utc).date()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


async def count_events(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: int,
    since: datetime,
    until: datetime,
) -> int:
    """COUNT(*) of view events for one entity with since <= viewed_at <= until."""
    id_col, viewed_at = _event_columns(entity_type)
    result = await db.execute(
        select(func.count()).where(
            id_col == entity_id,
            viewed_at >= since,
            viewed_at <= until,
        )
    )
    return result.scalar() or 0


async def compute_view_statistics(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: int,
    now: datetime | None = None,
) -> ViewStatistics:
    """Count the three windows. Raises ViewStatisticsCalculationError on failure."""
    now = now or datetime.now(timezone.utc)
    try:
        daily = await count_events(db, entity_type, entity_id, now - DAILY_WINDOW, now)
        weekly = await count_events(db, entity_type, entity_id, now - WEEKLY_WINDOW, now)
        monthly = await count_events(db, entity_type, entity_id, now - MONTHLY_WINDOW, now)
    except Exception as exc:
        raise ViewStatisticsCalculationError(entity_type.value, entity_id, exc) from exc
    return ViewStatistics(daily_views=daily, weekly_views=weekly, monthly_views=monthly)


async def calculate_view_statistics(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: int,
    now: datetime | None = None,
) -> ViewStatistics:
    """Fail-open variant for read-only reporting: zeros on failure, never raises."""
    try:
        return await compute_view_statistics(db, entity_type, entity_id, now)
    except ViewStatisticsCalculationError:
        logger.exception(
            "Error calculating view statistics for %s %s", entity_type.value, entity_id
        )
        return ViewStatistics()


async def entity_exists(db: AsyncSession, entity_type: EntityType, entity_id: int) -> bool:
    model = _entity_model(entity_type)
    result = await db.execute(select(model.id).where(model.id == entity_id))
    return result.scalar_one_or_none() is not None


async def get_all_entity_ids(db: AsyncSession, entity_type: EntityType) -> list[int]:
    model = _entity_model(entity_type)
    result = await db.execute(select(model.id).order_by(model.id.asc()))
    return list(result.scalars().all())


async def write_view_statistics(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: int,
    statistics: ViewStatistics,
) -> None:
    """Overwrite (never increment) the aggregate fields of one entity."""
    model = _entity_model(entity_type)
    await db.execute(
        update(model)
        .where(model.id == entity_id)
        .values(**statistics.as_dict(), updated_at=utcnow())
    )
    await db.commit()


async def update_entity_view_statistics(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: int,
    now: datetime | None = None,
) -> ViewStatistics:
    """Recompute and write back one entity.

    A failed calculation propagates and leaves the stored values untouched,
    so a transient error never zeroes an entity's statistics.
    """
    statistics = await compute_view_statistics(db, entity_type, entity_id, now)
    await write_view_statistics(db, entity_type, entity_id, statistics)
    return statistics


async def get_stored_view_statistics(
    db: AsyncSession, entity_type: EntityType, entity_id: int
) -> dict[str, int] | None:
    """Persisted aggregate fields; chapters report view_count as total_views."""
    model = _entity_model(entity_type)
    total_col = Comic.total_views if entity_type is EntityType.COMIC else Chapter.view_count
    result = await db.execute(
        select(model.daily_views, model.weekly_views, model.monthly_views, total_col).where(
            model.id == entity_id
        )
    )
    row = result.one_or_none()
    if row is None:
        return None
    return {
        "daily_views": row[0] or 0,
        "weekly_views": row[1] or 0,
        "monthly_views": row[2] or 0,
        "total_views": row[3] or 0,
    }


def _snapshot_upsert(dialect_name: str, values: dict):
    insert_fn = sqlite_insert if dialect_name == "sqlite" else pg_insert
    stmt = insert_fn(ViewStatisticsSnapshot).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=["entity_type", "entity_id", "date"],
        set_={
            "daily_views": stmt.excluded.daily_views,
            "weekly_views": stmt.excluded.weekly_views,
            "monthly_views": stmt.excluded.monthly_views,
            "updated_at": utcnow(),
        },
    )


async def upsert_snapshot(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: int,
    snapshot_date: date,
    statistics: ViewStatistics,
) -> None:
    now = utcnow()
    values = {
        "entity_type": entity_type.value,
        "entity_id": entity_id,
        "date": snapshot_date,
        **statistics.as_dict(),
        "created_at": now,
        "updated_at": now,
    }
    await db.execute(_snapshot_upsert(db.get_bind().dialect.name, values))
    await db.commit()


async def store_daily_view_snapshot(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: int,
    snapshot_date: date | datetime | None = None,
) -> ViewStatistics:
    """Compute current statistics and upsert today's (or the given day's) snapshot."""
    statistics = await compute_view_statistics(db, entity_type, entity_id)
    await upsert_snapshot(db, entity_type, entity_id, truncate_to_day(snapshot_date), statistics)
    return statistics


async def get_historical_view_statistics(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: int,
    days: int = 30,
    *,
    now: datetime | None = None,
) -> list[dict]:
    """Snapshot points ``{date, views}`` for the last N days, newest first."""
    now = now or datetime.now(timezone.utc)
    since = retention_boundary(now - timedelta(days=days))
    try:
        result = await db.execute(
            select(ViewStatisticsSnapshot.date, ViewStatisticsSnapshot.daily_views)
            .where(
                ViewStatisticsSnapshot.entity_type == entity_type.value,
                ViewStatisticsSnapshot.entity_id == entity_id,
                ViewStatisticsSnapshot.date >= since,
            )
            .order_by(ViewStatisticsSnapshot.date.desc())
        )
    except Exception:
        logger.exception(
            "Error getting historical view statistics for %s %s", entity_type.value, entity_id
        )
        return []
    return [{"date": row[0], "views": row[1]} for row in result.all()]


def retention_boundary(cutoff: datetime) -> date:
    """First snapshot day that is not older than ``cutoff``."""
    if cutoff.timetz().replace(tzinfo=None) == time.min:
        return cutoff.date()
    return cutoff.date() + timedelta(days=1)


async def delete_snapshots_before(db: AsyncSession, cutoff: datetime) -> int:
    result = await db.execute(
        delete(ViewStatisticsSnapshot).where(
            ViewStatisticsSnapshot.date < retention_boundary(cutoff)
        )
    )
    await db.commit()
    return result.rowcount or 0
