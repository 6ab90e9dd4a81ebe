"""Recording of individual comic and chapter views."""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from manga_stats.models.chapter import Chapter
from manga_stats.models.comic import Comic
from manga_stats.models.view_event import ChapterView, ComicView
from manga_stats.services.view_statistics import EntityType

logger = logging.getLogger(__name__)


def _enqueue_recalculation(entity_type: EntityType, entity_id: int) -> None:
    """Schedule a background recomputation; a broker outage must not lose the view."""
    from manga_stats.workers.tasks import update_single_entity_view_stats

    try:
        update_single_entity_view_stats.delay(entity_type.value, entity_id)
    except Exception:
        logger.exception(
            "Failed to enqueue view statistics update for %s %d", entity_type.value, entity_id
        )


async def record_comic_view(
    db: AsyncSession,
    slug: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
    user_id: int | None = None,
) -> Comic | None:
    """Append a view event and bump total_views. Returns None if the comic is unknown."""
    result = await db.execute(select(Comic).where(Comic.slug == slug))
    comic = result.scalar_one_or_none()
    if comic is None:
        return None

    await db.execute(
        update(Comic).where(Comic.id == comic.id).values(total_views=Comic.total_views + 1)
    )
    db.add(
        ComicView(
            comic_id=comic.id,
            user_id=user_id,
            ip_address=ip_address[:45] if ip_address else None,
            user_agent=user_agent[:255] if user_agent else None,
        )
    )
    await db.commit()

    _enqueue_recalculation(EntityType.COMIC, comic.id)
    return comic


async def record_chapter_view(
    db: AsyncSession,
    chapter_id: int,
    ip_address: str | None = None,
    user_agent: str | None = None,
    user_id: int | None = None,
) -> Chapter | None:
    """Append a view event and bump view_count. Returns None if the chapter is unknown."""
    result = await db.execute(select(Chapter).where(Chapter.id == chapter_id))
    chapter = result.scalar_one_or_none()
    if chapter is None:
        return None

    await db.execute(
        update(Chapter)
        .where(Chapter.id == chapter.id)
        .values(view_count=Chapter.view_count + 1)
    )
    db.add(
        ChapterView(
            chapter_id=chapter.id,
            user_id=user_id,
            ip_address=ip_address[:45] if ip_address else None,
            user_agent=user_agent[:255] if user_agent else None,
        )
    )
    await db.commit()

    _enqueue_recalculation(EntityType.CHAPTER, chapter.id)
    return chapter
