"""Internal trigger endpoint for the notification tick."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from .orchestrator import process_scheduled_notifications
from .schemas import TickSummary

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/internal/notifications", tags=["internal"])


@router.post("/run", response_model=TickSummary)
async def run_notification_tick():
    """
    Run one notification tick.

    Intended to be called once a minute by an external scheduler.

    Returns:
        Tick summary. Responds with 500 when active schedules could not be
        loaded; individual schedule failures still return 200.
    """
    summary = await process_scheduled_notifications()
    if not summary.success:
        return JSONResponse(status_code=500, content=summary.model_dump(mode="json"))
    return summary
