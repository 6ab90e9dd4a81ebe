from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Rankings
# ---------------------------------------------------------------------------


class RankingItem(BaseModel):
    id: int
    title: str
    slug: str
    cover_image_url: str | None
    daily_views: int
    weekly_views: int
    monthly_views: int
    total_views: int
    total_favorites: int
    average_rating: float | None
    rating_count: int
    rank: int = Field(..., ge=1)
    trend_direction: Literal["up", "down", "stable", "new"] = "stable"
    previous_rank: int | None = None


class RankingsPagination(BaseModel):
    page: int
    limit: int
    total_pages: int = Field(..., alias="totalPages")
    has_next: bool = Field(..., alias="hasNext")
    has_previous: bool = Field(..., alias="hasPrevious")

    model_config = {"populate_by_name": True}


class RankingsData(BaseModel):
    category: str
    period: str
    rankings: list[RankingItem]
    total: int
    last_updated: datetime = Field(..., alias="lastUpdated")
    pagination: RankingsPagination

    model_config = {"populate_by_name": True}


class RankingsResponse(BaseModel):
    success: bool
    data: RankingsData
    error: str | None = None


class RankingsRefreshRequest(BaseModel):
    secret: str | None = None


class TriggerResponse(BaseModel):
    success: bool
    message: str


# ---------------------------------------------------------------------------
# View statistics
# ---------------------------------------------------------------------------


class ViewStatisticsFields(BaseModel):
    daily_views: int = 0
    weekly_views: int = 0
    monthly_views: int = 0


class StoredViewStatistics(ViewStatisticsFields):
    total_views: int = 0


class ViewStatisticsPoint(BaseModel):
    date: date
    views: int


class CurrentViewStatisticsData(BaseModel):
    entity_type: str = Field(..., alias="entityType")
    entity_id: int = Field(..., alias="entityId")
    period: Literal["current"] = "current"
    real_time: ViewStatisticsFields = Field(..., alias="realTime")
    stored: StoredViewStatistics

    model_config = {"populate_by_name": True}


class HistoricalViewStatisticsData(BaseModel):
    entity_type: str = Field(..., alias="entityType")
    entity_id: int = Field(..., alias="entityId")
    period: Literal["historical"] = "historical"
    days: int
    statistics: list[ViewStatisticsPoint]

    model_config = {"populate_by_name": True}


class ViewStatisticsResponse(BaseModel):
    success: bool = True
    data: CurrentViewStatisticsData | HistoricalViewStatisticsData


class ViewStatisticsUpdateData(BaseModel):
    entity_type: str = Field(..., alias="entityType")
    entity_id: int = Field(..., alias="entityId")
    statistics: ViewStatisticsFields

    model_config = {"populate_by_name": True}


class ViewStatisticsUpdateResponse(BaseModel):
    success: bool = True
    message: str
    data: ViewStatisticsUpdateData


# ---------------------------------------------------------------------------
# View tracking
# ---------------------------------------------------------------------------


class ViewRecordedResponse(BaseModel):
    success: bool = True
    message: str = "View recorded successfully"


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class JobProcessed(BaseModel):
    comics: int = 0
    chapters: int = 0


class JobResultResponse(BaseModel):
    success: bool
    message: str
    processed: JobProcessed
    errors: list[str]


class JobTriggerRequest(BaseModel):
    action: Literal["full", "comics", "chapters", "snapshots", "cleanup"] = "full"
    days_to_keep: int = Field(default=90, ge=1, le=3650)
    secret: str | None = None


class JobTriggerResponse(BaseModel):
    success: bool
    action: str
    result: JobResultResponse
