"""View tracking endpoints: the producer side of the view event tables."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from manga_stats.api.schemas import ViewRecordedResponse
from manga_stats.core.config import settings
from manga_stats.core.deps import get_db
from manga_stats.core.rate_limit import limiter
from manga_stats.services import view_tracking

router = APIRouter(tags=["views"])


def _client_info(request: Request) -> tuple[str | None, str | None]:
    forwarded = request.headers.get("x-forwarded-for")
    ip = (
        forwarded.split(",")[0].strip()
        if forwarded
        else request.headers.get("x-real-ip")
        or (request.client.host if request.client else None)
    )
    return ip, request.headers.get("user-agent")


@router.post("/manga/{slug}/view", response_model=ViewRecordedResponse)
@limiter.limit(settings.rate_limit_view)
async def record_manga_view(
    request: Request,
    slug: str,
    db: AsyncSession = Depends(get_db),
) -> ViewRecordedResponse:
    ip, user_agent = _client_info(request)
    comic = await view_tracking.record_comic_view(db, slug, ip_address=ip, user_agent=user_agent)
    if comic is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Manga not found")
    return ViewRecordedResponse()


@router.post("/chapters/{chapter_id}/view", response_model=ViewRecordedResponse)
@limiter.limit(settings.rate_limit_view)
async def record_chapter_view(
    request: Request,
    chapter_id: int,
    db: AsyncSession = Depends(get_db),
) -> ViewRecordedResponse:
    ip, user_agent = _client_info(request)
    chapter = await view_tracking.record_chapter_view(
        db, chapter_id, ip_address=ip, user_agent=user_agent
    )
    if chapter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chapter not found")
    return ViewRecordedResponse()
