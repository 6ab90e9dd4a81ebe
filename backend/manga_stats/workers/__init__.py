import asyncio

from celery import Celery
from celery.schedules import crontab

from manga_stats.core.config import settings

_loop = None


def worker_loop() -> asyncio.AbstractEventLoop:
    """Return a shared event loop for all Celery worker tasks.

    All async tasks must use the same loop to avoid 'Future attached to
    a different loop' errors caused by the shared asyncpg connection pool.
    """
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop

celery_app = Celery(
    "manga_stats_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    beat_schedule={
        "run-view-stats-aggregation-every-6h": {
            "task": "run_view_stats_aggregation",
            "schedule": crontab(minute=0, hour="*/6"),
        },
        "store-daily-view-snapshots-midnight": {
            "task": "store_daily_view_snapshots",
            "schedule": crontab(minute=0, hour=0),
        },
        "cleanup-old-view-stats-weekly": {
            "task": "cleanup_old_view_stats",
            "schedule": crontab(minute=0, hour=2, day_of_week=0),
        },
    },
)

# Import tasks so they are registered with the celery app
import manga_stats.workers.tasks  # noqa: F401, E402
