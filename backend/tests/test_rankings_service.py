"""Tests for the rankings query engine: filters, ordering, pagination and ratings."""

from datetime import datetime, timedelta, timezone

import pytest

from factories import NOW, add_comic, add_comic_views, add_ratings
from manga_stats.models import Comic
from manga_stats.services import aggregation
from manga_stats.services import rankings as rankings_svc
from manga_stats.services.exceptions import InvalidRankingParameterError
from manga_stats.services.rankings import RankingCategory, RankingPeriod


def _query(category="most_viewed", period="weekly", page=1, limit=None):
    return rankings_svc.parse_ranking_query(category, period, page, limit)


class TestParseRankingQuery:
    def test_defaults(self):
        query = _query()
        assert query.category is RankingCategory.MOST_VIEWED
        assert query.period is RankingPeriod.WEEKLY
        assert (query.page, query.limit, query.offset) == (1, 20, 0)

    @pytest.mark.parametrize(
        "page,limit,expected",
        [
            (0, 0, (1, 1)),
            (-3, 500, (1, 50)),
            (4, 25, (4, 25)),
        ],
    )
    def test_page_and_limit_are_clamped(self, page, limit, expected):
        query = _query(page=page, limit=limit)
        assert (query.page, query.limit) == expected

    def test_unknown_category(self):
        with pytest.raises(InvalidRankingParameterError) as exc_info:
            _query(category="most_liked")
        assert str(exc_info.value) == (
            "Invalid category. Must be one of: most_viewed, highest_rated, most_bookmarked, trending"
        )

    def test_unknown_period(self):
        with pytest.raises(InvalidRankingParameterError) as exc_info:
            _query(period="yearly")
        assert str(exc_info.value) == "Invalid period. Must be one of: daily, weekly, monthly, all_time"


class TestPagination:
    def test_middle_page(self):
        pagination = rankings_svc.build_pagination(page=2, limit=20, total=45)
        assert (pagination.total_pages, pagination.has_next, pagination.has_previous) == (3, True, True)

    def test_empty_result(self):
        pagination = rankings_svc.build_pagination(page=1, limit=20, total=0)
        assert (pagination.total_pages, pagination.has_next, pagination.has_previous) == (0, False, False)


class TestAverageRating:
    def test_unrated_is_none_not_zero(self):
        assert rankings_svc.average_rating(None, 0) is None

    def test_rounded_to_one_decimal(self):
        assert rankings_svc.average_rating(4.6666, 3) == 4.7

    def test_half_rounds_up(self):
        assert rankings_svc.average_rating(4.25, 4) == 4.3
        assert rankings_svc.average_rating(3.75, 4) == 3.8


class TestMostViewed:
    @pytest.mark.asyncio
    async def test_orders_by_period_views_then_total_then_id(self, db):
        a = await add_comic(db, "a", weekly_views=50, total_views=10)
        b = await add_comic(db, "b", weekly_views=100, total_views=1)
        c = await add_comic(db, "c", weekly_views=50, total_views=90)
        d = await add_comic(db, "d", weekly_views=50, total_views=10)
        await add_comic(db, "unviewed", weekly_views=0, total_views=1000)

        data = await rankings_svc.get_rankings(db, _query(), now=NOW)

        assert [item.id for item in data.rankings] == [b.id, c.id, a.id, d.id]
        assert [item.rank for item in data.rankings] == [1, 2, 3, 4]
        assert data.total == 4
        assert all(item.trend_direction == "stable" for item in data.rankings)
        assert all(item.previous_rank is None for item in data.rankings)

    @pytest.mark.asyncio
    async def test_all_time_uses_total_views(self, db):
        low = await add_comic(db, "low", total_views=5, weekly_views=500)
        high = await add_comic(db, "high", total_views=50)

        data = await rankings_svc.get_rankings(db, _query(period="all_time"), now=NOW)
        assert [item.id for item in data.rankings] == [high.id, low.id]

    @pytest.mark.asyncio
    async def test_pages_partition_the_ranked_set(self, db):
        for n in range(45):
            await add_comic(db, f"comic-{n:02d}", weekly_views=(n % 7) + 1, total_views=n)

        full = await rankings_svc.get_rankings(db, _query(limit=50), now=NOW)
        pages = [
            await rankings_svc.get_rankings(db, _query(page=page, limit=20), now=NOW)
            for page in (1, 2, 3)
        ]

        assert [len(p.rankings) for p in pages] == [20, 20, 5]
        stitched = [item for p in pages for item in p.rankings]
        assert [i.id for i in stitched] == [i.id for i in full.rankings]
        assert [i.rank for i in stitched] == list(range(1, 46))
        assert pages[0].pagination.total_pages == 3
        assert pages[2].pagination.has_next is False
        assert pages[2].pagination.has_previous is True

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, db):
        await add_comic(db, "only", weekly_views=1)
        data = await rankings_svc.get_rankings(db, _query(page=5), now=NOW)
        assert data.rankings == []
        assert data.total == 1

    @pytest.mark.asyncio
    async def test_unrated_comic_has_null_average(self, db):
        unrated = await add_comic(db, "unrated", weekly_views=10)
        perfect = await add_comic(db, "perfect", weekly_views=5)
        await add_ratings(db, perfect.id, 5)

        data = await rankings_svc.get_rankings(db, _query(), now=NOW)
        by_id = {item.id: item for item in data.rankings}
        assert (by_id[unrated.id].average_rating, by_id[unrated.id].rating_count) == (None, 0)
        assert (by_id[perfect.id].average_rating, by_id[perfect.id].rating_count) == (5.0, 1)


class TestOtherCategories:
    @pytest.mark.asyncio
    async def test_highest_rated_ranks_by_rating_count(self, db):
        many = await add_comic(db, "many")
        few = await add_comic(db, "few")
        await add_comic(db, "none", weekly_views=100)
        await add_ratings(db, many.id, 3, 4, 5)
        await add_ratings(db, few.id, 5)

        data = await rankings_svc.get_rankings(db, _query(category="highest_rated"), now=NOW)

        assert [item.id for item in data.rankings] == [many.id, few.id]
        assert data.rankings[0].average_rating == 4.0
        assert data.rankings[0].rating_count == 3

    @pytest.mark.asyncio
    async def test_quarter_mean_rounds_half_up(self, db):
        comic = await add_comic(db, "quarter")
        await add_ratings(db, comic.id, 4, 4, 4, 5)

        data = await rankings_svc.get_rankings(db, _query(category="highest_rated"), now=NOW)
        assert (data.rankings[0].average_rating, data.rankings[0].rating_count) == (4.3, 4)

    @pytest.mark.asyncio
    async def test_most_bookmarked_filters_on_favorites(self, db):
        fav = await add_comic(db, "fav", total_favorites=3)
        await add_comic(db, "nofav", total_favorites=0, weekly_views=9)

        data = await rankings_svc.get_rankings(db, _query(category="most_bookmarked"), now=NOW)
        assert [item.id for item in data.rankings] == [fav.id]

    @pytest.mark.asyncio
    async def test_trending_requires_recent_chapter(self, db):
        fresh = await add_comic(
            db, "fresh", weekly_views=5, last_chapter_uploaded_at=NOW - timedelta(days=3)
        )
        await add_comic(db, "stale", weekly_views=500, last_chapter_uploaded_at=NOW - timedelta(days=45))
        await add_comic(db, "never", weekly_views=500)
        await add_comic(db, "quiet", weekly_views=0, last_chapter_uploaded_at=NOW)

        data = await rankings_svc.get_rankings(db, _query(category="trending"), now=NOW)
        assert [item.id for item in data.rankings] == [fresh.id]


class TestRankingsCache:
    @pytest.mark.asyncio
    async def test_second_read_is_served_from_cache(self, db, fresh_cache):
        comic = await add_comic(db, "cached", weekly_views=3)
        query = _query()

        first = await rankings_svc.get_rankings_cached(db, query)
        await db.execute(Comic.__table__.update().values(weekly_views=0))
        await db.commit()
        second = await rankings_svc.get_rankings_cached(db, query)

        assert [i.id for i in second.rankings] == [comic.id]
        assert second.model_dump() == first.model_dump()

        assert await rankings_svc.invalidate_rankings_cache() == 1
        third = await rankings_svc.get_rankings_cached(db, query)
        assert third.rankings == []


@pytest.mark.asyncio
async def test_aggregated_comic_ranks_by_weekly_views(db, session_factory):
    """comic#42: 5 views in the last hour, 20 in five days, 50 in 25 days."""
    now = datetime.now(timezone.utc)
    db.add(Comic(id=42, title="Comic 42", slug="comic-42"))
    await db.commit()
    await add_comic_views(
        db,
        42,
        *([timedelta(minutes=30)] * 5),
        *([timedelta(days=4)] * 15),
        *([timedelta(days=20)] * 30),
        now=now,
    )
    leader = await add_comic(db, "leader")
    await add_comic_views(db, leader.id, *([timedelta(days=2)] * 25), now=now)

    result = await aggregation.update_all_comics_view_stats(session_factory)
    assert result.success is True

    data = await rankings_svc.get_rankings(db, _query(limit=20))
    item = next(i for i in data.rankings if i.id == 42)
    assert (item.daily_views, item.weekly_views, item.monthly_views) == (5, 20, 50)
    assert [i.id for i in data.rankings] == [leader.id, 42]
    assert item.rank == 2
