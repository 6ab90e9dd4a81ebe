"""Per-entity view statistics: real-time vs stored values, history, manual recompute."""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from manga_stats.api.schemas import (
    CurrentViewStatisticsData,
    HistoricalViewStatisticsData,
    StoredViewStatistics,
    ViewStatisticsFields,
    ViewStatisticsPoint,
    ViewStatisticsResponse,
    ViewStatisticsUpdateData,
    ViewStatisticsUpdateResponse,
)
from manga_stats.core.config import settings
from manga_stats.core.deps import get_db
from manga_stats.core.rate_limit import limiter
from manga_stats.services import view_statistics as vs_svc
from manga_stats.services.exceptions import (
    EntityNotFoundError,
    ViewStatisticsCalculationError,
)
from manga_stats.services.view_statistics import EntityType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/view-statistics", tags=["view-statistics"])


async def _resolve_entity(
    db: AsyncSession, entity_type: str, entity_id: str
) -> tuple[EntityType, int]:
    """Validate path params, then probe existence before any aggregation work.

    InvalidEntityTypeError and EntityNotFoundError map to 400/404 in main.
    """
    parsed_type = vs_svc.parse_entity_type(entity_type)

    try:
        parsed_id = int(entity_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid entity ID"
        )

    if not await vs_svc.entity_exists(db, parsed_type, parsed_id):
        raise EntityNotFoundError(parsed_type.value, parsed_id)
    return parsed_type, parsed_id


@router.get("/{entity_type}/{entity_id}", response_model=ViewStatisticsResponse)
async def get_view_statistics(
    entity_type: str,
    entity_id: str,
    period: Literal["current", "historical"] = Query(default="current"),
    days: int = Query(default=30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
) -> ViewStatisticsResponse:
    parsed_type, parsed_id = await _resolve_entity(db, entity_type, entity_id)

    if period == "historical":
        points = await vs_svc.get_historical_view_statistics(db, parsed_type, parsed_id, days)
        return ViewStatisticsResponse(
            data=HistoricalViewStatisticsData(
                entity_type=parsed_type.value,
                entity_id=parsed_id,
                days=days,
                statistics=[ViewStatisticsPoint(**point) for point in points],
            )
        )

    real_time = await vs_svc.calculate_view_statistics(db, parsed_type, parsed_id)
    stored = await vs_svc.get_stored_view_statistics(db, parsed_type, parsed_id) or {}
    return ViewStatisticsResponse(
        data=CurrentViewStatisticsData(
            entity_type=parsed_type.value,
            entity_id=parsed_id,
            real_time=ViewStatisticsFields(**real_time.as_dict()),
            stored=StoredViewStatistics(**stored),
        )
    )


@router.post("/{entity_type}/{entity_id}", response_model=ViewStatisticsUpdateResponse)
@limiter.limit(settings.rate_limit_trigger)
async def update_view_statistics(
    request: Request,
    entity_type: str,
    entity_id: str,
    db: AsyncSession = Depends(get_db),
) -> ViewStatisticsUpdateResponse:
    """Recompute one entity now and write the result back."""
    parsed_type, parsed_id = await _resolve_entity(db, entity_type, entity_id)

    try:
        statistics = await vs_svc.update_entity_view_statistics(db, parsed_type, parsed_id)
    except ViewStatisticsCalculationError:
        logger.exception("Manual view statistics update failed for %s %d", entity_type, parsed_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to calculate view statistics; stored values were kept",
        )

    return ViewStatisticsUpdateResponse(
        message="View statistics updated successfully",
        data=ViewStatisticsUpdateData(
            entity_type=parsed_type.value,
            entity_id=parsed_id,
            statistics=ViewStatisticsFields(**statistics.as_dict()),
        ),
    )
