"""Bulk view-statistics aggregation job.

Every entry point returns a JobResult instead of raising: a failing entity is
logged and listed in ``errors`` while the rest of the batch carries on, and
only an infrastructure failure (e.g. the entity list cannot be read) turns
the result into ``success=False``.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from manga_stats.core.config import settings
from manga_stats.db.session import async_session_factory
from manga_stats.services import view_statistics as vs
from manga_stats.services.view_statistics import EntityType

logger = logging.getLogger(__name__)

EntityOperation = Callable[[AsyncSession, EntityType, int], Awaitable[object]]

_PROCESSED_KEY = {EntityType.COMIC: "comics", EntityType.CHAPTER: "chapters"}


def _empty_processed() -> dict[str, int]:
    return {"comics": 0, "chapters": 0}


@dataclass
class JobResult:
    success: bool
    message: str
    processed: dict[str, int] = field(default_factory=_empty_processed)
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


def _elapsed_ms(start: float) -> int:
    return round((time.monotonic() - start) * 1000)


async def _process_in_batches(
    entity_type: EntityType,
    entity_ids: list[int],
    operation: EntityOperation,
    label: str,
    session_factory: async_sessionmaker[AsyncSession],
    batch_size: int | None = None,
    delay_ms: int | None = None,
) -> tuple[int, list[str]]:
    """Run ``operation`` for every id, concurrently inside fixed-size batches.

    Each entity gets its own session so one failure cannot poison the others.
    Returns (succeeded, error messages).
    """
    batch_size = batch_size or settings.view_stats_batch_size
    delay = (settings.view_stats_batch_delay_ms if delay_ms is None else delay_ms) / 1000

    async def _one(entity_id: int) -> None:
        async with session_factory() as db:
            await operation(db, entity_type, entity_id)

    succeeded = 0
    errors: list[str] = []
    for start in range(0, len(entity_ids), batch_size):
        batch = entity_ids[start:start + batch_size]
        outcomes = await asyncio.gather(*(_one(i) for i in batch), return_exceptions=True)
        for entity_id, outcome in zip(batch, outcomes):
            if isinstance(outcome, Exception):
                logger.error(
                    "%s failed for %s %d",
                    label,
                    entity_type.value,
                    entity_id,
                    exc_info=outcome,
                )
                errors.append(f"{entity_type.value.capitalize()} {entity_id} {label} failed: {outcome}")
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                succeeded += 1

        # Throttle between batches to bound load on the database
        if start + batch_size < len(entity_ids) and delay > 0:
            await asyncio.sleep(delay)

    return succeeded, errors


async def batch_update_view_statistics(
    entity_type: EntityType,
    entity_ids: list[int],
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    batch_size: int | None = None,
    delay_ms: int | None = None,
) -> tuple[int, list[str]]:
    return await _process_in_batches(
        entity_type,
        entity_ids,
        vs.update_entity_view_statistics,
        "update",
        session_factory or async_session_factory,
        batch_size=batch_size,
        delay_ms=delay_ms,
    )


async def update_all_for_type(
    entity_type: EntityType,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> JobResult:
    """Recompute the rolling-window fields of every comic or chapter."""
    session_factory = session_factory or async_session_factory
    key = _PROCESSED_KEY[entity_type]
    start = time.monotonic()
    processed = _empty_processed()

    try:
        logger.info("Starting %s view statistics update", entity_type.value)
        async with session_factory() as db:
            entity_ids = await vs.get_all_entity_ids(db, entity_type)
        logger.info("Found %d %s to process", len(entity_ids), key)

        succeeded, errors = await batch_update_view_statistics(
            entity_type, entity_ids, session_factory
        )
        processed[key] = succeeded
        duration = _elapsed_ms(start)

        message = f"Updated view statistics for {succeeded} {key} in {duration}ms"
        if errors:
            message += f" ({len(errors)} failed)"
        logger.info(message)
        return JobResult(success=True, message=message, processed=processed, errors=errors)
    except Exception as exc:
        logger.exception("Error updating %s view statistics", entity_type.value)
        return JobResult(
            success=False,
            message=f"Failed to update {key} view statistics: {exc}",
            processed=processed,
            errors=[f"{key.capitalize()} update failed: {exc}"],
        )


async def update_all_comics_view_stats(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> JobResult:
    return await update_all_for_type(EntityType.COMIC, session_factory)


async def update_all_chapters_view_stats(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> JobResult:
    return await update_all_for_type(EntityType.CHAPTER, session_factory)


async def store_daily_snapshots(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    snapshot_date: date | datetime | None = None,
) -> JobResult:
    """Upsert one snapshot per comic and chapter for the given (default: current) day."""
    session_factory = session_factory or async_session_factory
    day = vs.truncate_to_day(snapshot_date)
    start = time.monotonic()
    processed = _empty_processed()
    errors: list[str] = []

    async def _snapshot(db: AsyncSession, entity_type: EntityType, entity_id: int) -> None:
        await vs.store_daily_view_snapshot(db, entity_type, entity_id, day)

    try:
        logger.info("Starting daily snapshots storage for %s", day.isoformat())
        async with session_factory() as db:
            comic_ids = await vs.get_all_entity_ids(db, EntityType.COMIC)
            chapter_ids = await vs.get_all_entity_ids(db, EntityType.CHAPTER)
        logger.info(
            "Found %d comics and %d chapters for snapshots", len(comic_ids), len(chapter_ids)
        )

        for entity_type, ids in ((EntityType.COMIC, comic_ids), (EntityType.CHAPTER, chapter_ids)):
            succeeded, failed = await _process_in_batches(
                entity_type, ids, _snapshot, "snapshot", session_factory
            )
            processed[_PROCESSED_KEY[entity_type]] = succeeded
            errors.extend(failed)

        duration = _elapsed_ms(start)
        message = (
            f"Stored daily snapshots for {processed['comics']} comics and "
            f"{processed['chapters']} chapters in {duration}ms"
        )
        logger.info(message)
        return JobResult(success=True, message=message, processed=processed, errors=errors)
    except Exception as exc:
        logger.exception("Error storing daily snapshots")
        errors.append(f"Daily snapshots failed: {exc}")
        return JobResult(
            success=False,
            message=f"Failed to store daily snapshots: {exc}",
            processed=processed,
            errors=errors,
        )


async def run_full_aggregation(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> JobResult:
    """Comic update, chapter update and snapshot storage as three concurrent pipelines."""
    from manga_stats.services.rankings import invalidate_rankings_cache

    start = time.monotonic()
    logger.info("Starting complete view statistics aggregation job")

    try:
        comics, chapters, snapshots = await asyncio.gather(
            update_all_comics_view_stats(session_factory),
            update_all_chapters_view_stats(session_factory),
            store_daily_snapshots(session_factory),
        )
    except Exception as exc:
        duration = _elapsed_ms(start)
        logger.exception("View statistics aggregation failed")
        return JobResult(
            success=False,
            message=f"Aggregation failed after {duration}ms: {exc}",
            errors=[str(exc)],
        )

    processed = {
        "comics": comics.processed["comics"] + snapshots.processed["comics"],
        "chapters": chapters.processed["chapters"] + snapshots.processed["chapters"],
    }
    errors = [*comics.errors, *chapters.errors, *snapshots.errors]
    success = comics.success and chapters.success and snapshots.success
    duration = _elapsed_ms(start)

    if success:
        logger.info("View statistics aggregation completed in %dms", duration)
    else:
        logger.warning("View statistics aggregation completed with errors in %dms", duration)

    await invalidate_rankings_cache()

    return JobResult(
        success=success,
        message=(
            f"Aggregation completed in {duration}ms. Processed {processed['comics']} comics "
            f"and {processed['chapters']} chapters."
        ),
        processed=processed,
        errors=errors,
    )


async def cleanup_old_snapshots(
    days_to_keep: int | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    now: datetime | None = None,
) -> JobResult:
    """Delete snapshot rows older than ``days_to_keep`` days. Irreversible."""
    session_factory = session_factory or async_session_factory
    days_to_keep = settings.snapshot_retention_days if days_to_keep is None else days_to_keep
    start = time.monotonic()
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days_to_keep)

    try:
        logger.info("Cleaning up view statistics older than %d days", days_to_keep)
        async with session_factory() as db:
            deleted = await vs.delete_snapshots_before(db, cutoff)
        duration = _elapsed_ms(start)
        logger.info("Cleaned up %d old view statistics records in %dms", deleted, duration)
        return JobResult(
            success=True,
            message=f"Cleaned up {deleted} old records in {duration}ms",
        )
    except Exception as exc:
        duration = _elapsed_ms(start)
        logger.exception("Error cleaning up old view statistics")
        return JobResult(
            success=False,
            message=f"Cleanup failed after {duration}ms: {exc}",
            errors=[str(exc)],
        )
