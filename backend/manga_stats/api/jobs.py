"""Manual trigger for the view statistics aggregation job."""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from manga_stats.api.schemas import JobTriggerRequest, JobTriggerResponse
from manga_stats.core.config import settings
from manga_stats.core.rate_limit import limiter
from manga_stats.core.security import verify_trigger_secret
from manga_stats.services import aggregation

router = APIRouter(prefix="/jobs", tags=["jobs"])

_JOB_INFO = {
    "description": "View Statistics Aggregation Job",
    "actions": {
        "full": "Run complete aggregation (comics + chapters + snapshots)",
        "comics": "Update view statistics for all comics",
        "chapters": "Update view statistics for all chapters",
        "snapshots": "Store daily view snapshots",
        "cleanup": "Clean up old view statistics data",
    },
    "usage": {
        "endpoint": "/api/jobs/view-stats-aggregation",
        "method": "POST",
        "body": {
            "action": "full | comics | chapters | snapshots | cleanup",
            "days_to_keep": "number (for cleanup action)",
            "secret": "string (required when REVALIDATION_SECRET is set)",
        },
    },
    "scheduling": {
        "recommended": {
            "full": "Every 6 hours",
            "snapshots": "Daily at midnight",
            "cleanup": "Weekly",
        },
        "cron": {
            "full": "0 */6 * * *",
            "snapshots": "0 0 * * *",
            "cleanup": "0 2 * * 0",
        },
    },
}


@router.get("/view-stats-aggregation")
async def describe_aggregation_job() -> dict:
    return {"success": True, "info": _JOB_INFO}


@router.post("/view-stats-aggregation", response_model=JobTriggerResponse)
@limiter.limit(settings.rate_limit_trigger)
async def trigger_aggregation_job(request: Request, body: JobTriggerRequest) -> JSONResponse:
    """Run one aggregation action in-process and report its JobResult."""
    if not verify_trigger_secret(body.secret):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "message": "Unauthorized"},
        )

    if body.action == "comics":
        result = await aggregation.update_all_comics_view_stats()
    elif body.action == "chapters":
        result = await aggregation.update_all_chapters_view_stats()
    elif body.action == "snapshots":
        result = await aggregation.store_daily_snapshots()
    elif body.action == "cleanup":
        result = await aggregation.cleanup_old_snapshots(body.days_to_keep)
    else:
        result = await aggregation.run_full_aggregation()

    payload = JobTriggerResponse(success=result.success, action=body.action, result=result.as_dict())
    return JSONResponse(
        status_code=status.HTTP_200_OK if result.success else status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=payload.model_dump(mode="json"),
    )
