"""Top manga rankings. GET serves ranked pages, POST is the manual refresh trigger."""

import logging

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from manga_stats.api.schemas import (
    RankingsData,
    RankingsRefreshRequest,
    RankingsResponse,
    TriggerResponse,
)
from manga_stats.core.config import settings
from manga_stats.core.deps import get_db
from manga_stats.core.rate_limit import limiter
from manga_stats.core.security import verify_trigger_secret
from manga_stats.services import rankings as rankings_svc
from manga_stats.services.cache_policy import NO_STORE, cache_control_header
from manga_stats.services.exceptions import InvalidRankingParameterError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rankings"])


def _rankings_response(
    status_code: int,
    data: RankingsData,
    error: str | None = None,
    cache_control: str = NO_STORE,
) -> JSONResponse:
    body = RankingsResponse(success=error is None, data=data, error=error)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
        headers={"Cache-Control": cache_control},
    )


@router.get("/manga/rankings", response_model=RankingsResponse)
@router.get("/rankings", response_model=RankingsResponse, include_in_schema=False)
async def get_rankings(
    category: str = Query(default="most_viewed"),
    period: str = Query(default="weekly"),
    page: int = Query(default=1),
    limit: int = Query(default=settings.rankings_default_limit),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Ranked comics for a category and period, with pagination metadata."""
    try:
        query = rankings_svc.parse_ranking_query(category, period, page, limit)
    except InvalidRankingParameterError as exc:
        return _rankings_response(
            status.HTTP_400_BAD_REQUEST,
            rankings_svc.empty_rankings(category, period, page, limit),
            error=str(exc),
        )

    try:
        data = await rankings_svc.get_rankings_cached(db, query)
    except Exception:
        logger.exception("Failed to load rankings for %s/%s", category, period)
        return _rankings_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            rankings_svc.empty_rankings(category, period, page, limit),
            error="Internal Server Error",
        )

    return _rankings_response(
        status.HTTP_200_OK,
        data,
        cache_control=cache_control_header(query.period.value),
    )


@router.post("/manga/rankings", response_model=TriggerResponse)
@router.post("/rankings", response_model=TriggerResponse, include_in_schema=False)
@limiter.limit(settings.rate_limit_trigger)
async def refresh_rankings(
    request: Request,
    body: RankingsRefreshRequest | None = None,
) -> JSONResponse:
    """Manual refresh trigger.

    Drops the server-side ranking cache; CDN and browser copies expire on their
    own Cache-Control schedule.
    """
    if not verify_trigger_secret(body.secret if body else None):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "message": "Unauthorized"},
        )

    await rankings_svc.invalidate_rankings_cache()
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, "message": "Manga rankings cache refresh triggered"},
    )
