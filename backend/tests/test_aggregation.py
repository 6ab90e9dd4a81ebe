"""Tests for the bulk aggregation job: batching, fault isolation, snapshots and cleanup."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from factories import add_chapter, add_comic, add_comic_views
from manga_stats.models import ViewStatisticsSnapshot
from manga_stats.services import aggregation
from manga_stats.services import view_statistics as vs
from manga_stats.services.view_statistics import EntityType, ViewStatistics


async def _seed_comics(db, count: int) -> list[int]:
    now = datetime.now(timezone.utc)
    ids = []
    for n in range(count):
        comic = await add_comic(db, f"comic-{n}")
        await add_comic_views(db, comic.id, *([timedelta(hours=1)] * (n + 1)), now=now)
        ids.append(comic.id)
    return ids


class _FakeSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class _FakeSessionFactory:
    def __init__(self) -> None:
        self.opened = 0

    def __call__(self):
        self.opened += 1
        return _FakeSession()


class TestProcessInBatches:
    @pytest.mark.asyncio
    async def test_batches_run_in_order_with_throttle(self):
        seen: list[int] = []

        async def operation(db, entity_type, entity_id):
            seen.append(entity_id)

        factory = _FakeSessionFactory()
        with patch("manga_stats.services.aggregation.asyncio.sleep", new_callable=AsyncMock) as sleep:
            succeeded, errors = await aggregation._process_in_batches(
                EntityType.COMIC, list(range(1, 26)), operation, "update", factory,
                batch_size=10, delay_ms=100,
            )

        assert succeeded == 25
        assert errors == []
        assert sorted(seen) == list(range(1, 26))
        # Three batches, two pauses between them
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.1)
        assert factory.opened == 25

    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_the_batch(self):
        async def operation(db, entity_type, entity_id):
            if entity_id == 3:
                raise RuntimeError("boom")

        succeeded, errors = await aggregation._process_in_batches(
            EntityType.CHAPTER, [1, 2, 3, 4, 5], operation, "update", _FakeSessionFactory(),
            batch_size=2, delay_ms=0,
        )
        assert succeeded == 4
        assert errors == ["Chapter 3 update failed: boom"]


class TestUpdateAllForType:
    @pytest.mark.asyncio
    async def test_updates_every_comic(self, db, session_factory):
        ids = await _seed_comics(db, 12)

        result = await aggregation.update_all_comics_view_stats(session_factory)

        assert result.success is True
        assert result.processed == {"comics": 12, "chapters": 0}
        assert result.errors == []
        for n, comic_id in enumerate(ids):
            stored = await vs.get_stored_view_statistics(db, EntityType.COMIC, comic_id)
            assert stored["daily_views"] == n + 1

    @pytest.mark.asyncio
    async def test_failing_entity_is_isolated(self, db, session_factory):
        ids = await _seed_comics(db, 4)
        failing = ids[1]
        original = vs.update_entity_view_statistics

        async def flaky(session, entity_type, entity_id, now=None):
            if entity_id == failing:
                raise RuntimeError("lock timeout")
            return await original(session, entity_type, entity_id, now)

        with patch.object(vs, "update_entity_view_statistics", flaky):
            result = await aggregation.update_all_comics_view_stats(session_factory)

        assert result.success is True
        assert result.processed["comics"] == 3
        assert len(result.errors) == 1
        assert result.errors[0].startswith(f"Comic {failing} update failed")
        stored = await vs.get_stored_view_statistics(db, EntityType.COMIC, failing)
        assert stored["daily_views"] == 0
        stored = await vs.get_stored_view_statistics(db, EntityType.COMIC, ids[2])
        assert stored["daily_views"] == 3

    @pytest.mark.asyncio
    async def test_listing_failure_reports_unsuccessful_job(self, session_factory):
        with patch.object(vs, "get_all_entity_ids", AsyncMock(side_effect=RuntimeError("no db"))):
            result = await aggregation.update_all_chapters_view_stats(session_factory)

        assert result.success is False
        assert result.processed == {"comics": 0, "chapters": 0}
        assert result.errors == ["Chapters update failed: no db"]

    @pytest.mark.asyncio
    async def test_empty_catalogue_succeeds(self, session_factory):
        result = await aggregation.update_all_chapters_view_stats(session_factory)
        assert result.success is True
        assert result.processed["chapters"] == 0


class TestStoreDailySnapshots:
    @pytest.mark.asyncio
    async def test_one_row_per_entity_and_day(self, db, session_factory):
        comic = await add_comic(db, "monster")
        await add_chapter(db, comic, 1)
        await add_chapter(db, comic, 2)

        day = date(2025, 6, 15)
        first = await aggregation.store_daily_snapshots(session_factory, day)
        second = await aggregation.store_daily_snapshots(session_factory, day)

        assert first.success and second.success
        assert second.processed == {"comics": 1, "chapters": 2}
        count = (await db.execute(select(func.count()).select_from(ViewStatisticsSnapshot))).scalar()
        assert count == 3


class TestRunFullAggregation:
    @pytest.mark.asyncio
    async def test_merges_sub_job_results(self, db, session_factory, fresh_cache):
        comic = await add_comic(db, "akira")
        await add_chapter(db, comic, 1)
        await fresh_cache.set("cache:rankings:most_viewed:weekly:1:20", "{}", 60)

        result = await aggregation.run_full_aggregation(session_factory)

        assert result.success is True
        # Updated once and snapshotted once
        assert result.processed == {"comics": 2, "chapters": 2}
        assert result.message.startswith("Aggregation completed in ")
        assert await fresh_cache.get("cache:rankings:most_viewed:weekly:1:20") is None

    @pytest.mark.asyncio
    async def test_any_failed_sub_job_fails_the_run(self, session_factory):
        failed = aggregation.JobResult(success=False, message="x", errors=["Snapshots down"])
        with patch.object(aggregation, "store_daily_snapshots", AsyncMock(return_value=failed)):
            result = await aggregation.run_full_aggregation(session_factory)

        assert result.success is False
        assert result.errors == ["Snapshots down"]


class TestCleanupOldSnapshots:
    @pytest.mark.asyncio
    async def test_deletes_rows_past_retention(self, db, session_factory):
        now = datetime(2025, 6, 15, 3, 0, tzinfo=timezone.utc)
        for age in (100, 91, 90, 10):
            await vs.upsert_snapshot(
                db, EntityType.COMIC, 1, (now - timedelta(days=age)).date(), ViewStatistics()
            )

        result = await aggregation.cleanup_old_snapshots(90, session_factory, now=now)

        assert result.success is True
        # The cutoff is 03:00 on the 90th day back, so that whole day is older
        assert result.message.startswith("Cleaned up 3 old records")
        remaining = (await db.execute(select(ViewStatisticsSnapshot.date))).scalars().all()
        assert list(remaining) == [(now - timedelta(days=10)).date()]

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self, session_factory):
        with patch.object(vs, "delete_snapshots_before", AsyncMock(side_effect=RuntimeError("gone"))):
            result = await aggregation.cleanup_old_snapshots(30, session_factory)
        assert result.success is False
        assert result.errors == ["gone"]
