"""Celery tasks for the view statistics aggregation job.

Jobs report per-entity failures in their JobResult; a task is only retried
when the job itself raised.
"""

import logging

from manga_stats.db.session import async_session_factory
from manga_stats.workers import celery_app, worker_loop

logger = logging.getLogger(__name__)


def _log_result(task_name: str, result) -> dict:
    if result.success:
        logger.info("%s: %s", task_name, result.message)
    else:
        logger.warning(
            "%s finished unsuccessfully: %s",
            task_name,
            result.message,
            extra={"errors": result.errors[:20]},
        )
    return result.as_dict()


@celery_app.task(name="run_view_stats_aggregation", bind=True, max_retries=3, default_retry_delay=60)
def run_view_stats_aggregation(self) -> dict:
    """Periodic task: recompute comics and chapters and store today's snapshots."""
    from manga_stats.services.aggregation import run_full_aggregation

    try:
        result = worker_loop().run_until_complete(run_full_aggregation())
    except Exception as exc:
        logger.exception("run_view_stats_aggregation failed")
        raise self.retry(exc=exc)
    return _log_result("run_view_stats_aggregation", result)


@celery_app.task(name="update_all_comics_view_stats", bind=True, max_retries=3, default_retry_delay=60)
def update_all_comics_view_stats(self) -> dict:
    from manga_stats.services import aggregation

    try:
        result = worker_loop().run_until_complete(aggregation.update_all_comics_view_stats())
    except Exception as exc:
        logger.exception("update_all_comics_view_stats failed")
        raise self.retry(exc=exc)
    return _log_result("update_all_comics_view_stats", result)


@celery_app.task(name="update_all_chapters_view_stats", bind=True, max_retries=3, default_retry_delay=60)
def update_all_chapters_view_stats(self) -> dict:
    from manga_stats.services import aggregation

    try:
        result = worker_loop().run_until_complete(aggregation.update_all_chapters_view_stats())
    except Exception as exc:
        logger.exception("update_all_chapters_view_stats failed")
        raise self.retry(exc=exc)
    return _log_result("update_all_chapters_view_stats", result)


@celery_app.task(name="store_daily_view_snapshots", bind=True, max_retries=3, default_retry_delay=60)
def store_daily_view_snapshots(self) -> dict:
    """Periodic task: upsert today's snapshot for every comic and chapter."""
    from manga_stats.services.aggregation import store_daily_snapshots

    try:
        result = worker_loop().run_until_complete(store_daily_snapshots())
    except Exception as exc:
        logger.exception("store_daily_view_snapshots failed")
        raise self.retry(exc=exc)
    return _log_result("store_daily_view_snapshots", result)


@celery_app.task(name="cleanup_old_view_stats", bind=True, max_retries=3, default_retry_delay=60)
def cleanup_old_view_stats(self, days_to_keep: int | None = None) -> dict:
    """Periodic task: prune snapshots past the retention window."""
    from manga_stats.services.aggregation import cleanup_old_snapshots

    try:
        result = worker_loop().run_until_complete(cleanup_old_snapshots(days_to_keep))
    except Exception as exc:
        logger.exception("cleanup_old_view_stats failed")
        raise self.retry(exc=exc)
    return _log_result("cleanup_old_view_stats", result)


@celery_app.task(name="update_single_entity_view_stats", bind=True, max_retries=3, default_retry_delay=60)
def update_single_entity_view_stats(self, entity_type: str, entity_id: int) -> dict | None:
    """On-demand task: recompute one entity right after a view was recorded."""
    from manga_stats.services.view_statistics import (
        entity_exists,
        parse_entity_type,
        update_entity_view_statistics,
    )

    parsed = parse_entity_type(entity_type)

    async def _run() -> dict | None:
        async with async_session_factory() as db:
            try:
                if not await entity_exists(db, parsed, entity_id):
                    logger.warning(
                        "update_single_entity_view_stats: %s %d not found", entity_type, entity_id
                    )
                    return None
                statistics = await update_entity_view_statistics(db, parsed, entity_id)
                return statistics.as_dict()
            finally:
                await db.close()

    try:
        return worker_loop().run_until_complete(_run())
    except Exception as exc:
        logger.exception(
            "update_single_entity_view_stats failed for %s %d", entity_type, entity_id
        )
        raise self.retry(exc=exc)
