"""Ranked "top manga" lists by category and period.

Ordering is always (primary key desc, total_views desc, id asc), which makes
the order total and pagination stable. ``rank`` is the absolute position in
the filtered, ordered set: ``offset + index_within_page + 1``.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from manga_stats.api.schemas import RankingItem, RankingsData, RankingsPagination
from manga_stats.core.cache import cache_delete_pattern, cache_get, cache_set, make_cache_key
from manga_stats.core.config import settings
from manga_stats.models.comic import Comic
from manga_stats.models.rating import Rating
from manga_stats.services.cache_policy import rankings_cache_policy
from manga_stats.services.exceptions import InvalidRankingParameterError

logger = logging.getLogger(__name__)

_RANKINGS_CACHE_PREFIX = "rankings"

_RANKING_ITEM_COLUMNS = (
    Comic.id,
    Comic.title,
    Comic.slug,
    Comic.cover_image_url,
    Comic.daily_views,
    Comic.weekly_views,
    Comic.monthly_views,
    Comic.total_views,
    Comic.total_favorites,
)


class RankingCategory(str, Enum):
    MOST_VIEWED = "most_viewed"
    HIGHEST_RATED = "highest_rated"
    MOST_BOOKMARKED = "most_bookmarked"
    TRENDING = "trending"


class RankingPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL_TIME = "all_time"


@dataclass(frozen=True)
class RankingQuery:
    category: RankingCategory
    period: RankingPeriod
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _choices(enum_cls: type[Enum]) -> str:
    return ", ".join(member.value for member in enum_cls)


def clamp_page(page: int | None) -> int:
    return max(1, page or 1)


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return settings.rankings_default_limit
    return min(max(1, limit), settings.rankings_max_limit)


def parse_ranking_query(
    category: str, period: str, page: int | None = 1, limit: int | None = None
) -> RankingQuery:
    """Validate category/period (raising InvalidRankingParameterError) and clamp paging."""
    try:
        parsed_category = RankingCategory(category)
    except ValueError:
        raise InvalidRankingParameterError(
            f"Invalid category. Must be one of: {_choices(RankingCategory)}"
        ) from None
    try:
        parsed_period = RankingPeriod(period)
    except ValueError:
        raise InvalidRankingParameterError(
            f"Invalid period. Must be one of: {_choices(RankingPeriod)}"
        ) from None
    return RankingQuery(
        category=parsed_category,
        period=parsed_period,
        page=clamp_page(page),
        limit=clamp_limit(limit),
    )


def period_views_column(period: RankingPeriod):
    return {
        RankingPeriod.DAILY: Comic.daily_views,
        RankingPeriod.WEEKLY: Comic.weekly_views,
        RankingPeriod.MONTHLY: Comic.monthly_views,
        RankingPeriod.ALL_TIME: Comic.total_views,
    }[period]


def _rating_stats_subquery():
    return (
        select(
            Rating.comic_id.label("comic_id"),
            func.count(Rating.id).label("rating_count"),
            func.avg(Rating.rating).label("average_rating"),
        )
        .group_by(Rating.comic_id)
        .subquery("rating_stats")
    )


def _build_ranking_select(query: RankingQuery, columns: Callable[..., list], now: datetime):
    """Base statement for ``columns`` with the category's filter applied.

    Returns (statement, primary sort expression).
    """
    rating_stats = _rating_stats_subquery()
    rating_count = func.coalesce(rating_stats.c.rating_count, 0)

    stmt = (
        select(*columns(rating_stats, rating_count))
        .select_from(Comic)
        .outerjoin(rating_stats, rating_stats.c.comic_id == Comic.id)
    )

    if query.category is RankingCategory.HIGHEST_RATED:
        # Rating volume, not average rating
        primary = rating_count
        stmt = stmt.where(rating_count > 0)
    elif query.category is RankingCategory.MOST_BOOKMARKED:
        primary = Comic.total_favorites
        stmt = stmt.where(Comic.total_favorites > 0)
    else:
        primary = period_views_column(query.period)
        stmt = stmt.where(primary > 0)
        if query.category is RankingCategory.TRENDING:
            recent = now - timedelta(days=settings.trending_window_days)
            stmt = stmt.where(Comic.last_chapter_uploaded_at >= recent)

    return stmt, primary


def average_rating(avg, count: int) -> float | None:
    """Mean rating rounded to one decimal; None (not 0) when unrated."""
    if not count or avg is None:
        return None
    return float(Decimal(str(avg)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def build_pagination(page: int, limit: int, total: int) -> RankingsPagination:
    total_pages = math.ceil(total / limit) if limit else 0
    return RankingsPagination(
        page=page,
        limit=limit,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_previous=page > 1,
    )


def empty_rankings(
    category: str, period: str, page: int | None = 1, limit: int | None = None
) -> RankingsData:
    """Empty-shaped payload used for error responses."""
    page = clamp_page(page)
    limit = clamp_limit(limit)
    return RankingsData(
        category=category,
        period=period,
        rankings=[],
        total=0,
        last_updated=datetime.now(timezone.utc),
        pagination=build_pagination(page, limit, 0),
    )


async def get_rankings(
    db: AsyncSession, query: RankingQuery, now: datetime | None = None
) -> RankingsData:
    now = now or datetime.now(timezone.utc)

    items_stmt, primary = _build_ranking_select(
        query,
        lambda stats, count: [
            *_RANKING_ITEM_COLUMNS,
            count.label("rating_count"),
            stats.c.average_rating,
        ],
        now,
    )
    items_stmt = (
        items_stmt.order_by(primary.desc(), Comic.total_views.desc(), Comic.id.asc())
        .offset(query.offset)
        .limit(query.limit)
    )

    count_stmt, _ = _build_ranking_select(
        query, lambda stats, count: [func.count(Comic.id)], now
    )
    total = (await db.execute(count_stmt)).scalar() or 0

    rows = (await db.execute(items_stmt)).all()
    rankings = [
        RankingItem(
            id=row.id,
            title=row.title,
            slug=row.slug,
            cover_image_url=row.cover_image_url,
            daily_views=row.daily_views or 0,
            weekly_views=row.weekly_views or 0,
            monthly_views=row.monthly_views or 0,
            total_views=row.total_views or 0,
            total_favorites=row.total_favorites or 0,
            average_rating=average_rating(row.average_rating, row.rating_count),
            rating_count=row.rating_count or 0,
            rank=query.offset + index + 1,
        )
        for index, row in enumerate(rows)
    ]

    return RankingsData(
        category=query.category.value,
        period=query.period.value,
        rankings=rankings,
        total=total,
        last_updated=now,
        pagination=build_pagination(query.page, query.limit, total),
    )


def _cache_key(query: RankingQuery) -> str:
    return make_cache_key(
        _RANKINGS_CACHE_PREFIX,
        query.category.value,
        query.period.value,
        str(query.page),
        str(query.limit),
    )


async def get_rankings_cached(db: AsyncSession, query: RankingQuery) -> RankingsData:
    """get_rankings behind the response cache, TTL taken from the period's policy."""
    if not settings.rankings_server_cache:
        return await get_rankings(db, query)

    key = _cache_key(query)
    cached = await cache_get(key)
    if cached is not None:
        try:
            return RankingsData.model_validate_json(cached)
        except ValueError:
            logger.warning("Discarding unreadable cached rankings for key=%s", key)

    data = await get_rankings(db, query)
    ttl = rankings_cache_policy(query.period.value).max_age
    await cache_set(key, data.model_dump_json(), ttl=ttl)
    return data


async def invalidate_rankings_cache() -> int:
    """Drop every cached ranking page."""
    removed = await cache_delete_pattern(f"cache:{_RANKINGS_CACHE_PREFIX}:*")
    logger.info("Invalidated %d cached ranking pages", removed)
    return removed
