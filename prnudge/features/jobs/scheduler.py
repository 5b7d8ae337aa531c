"""In-process scheduler that drives the notification tick and the token sweep.

Production deployments usually call the internal endpoints from an external
cron; this scheduler covers single-instance and local setups.
"""

from typing import Optional

import structlog
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from prnudge.core.config import get_global_settings
from prnudge.features.notifications.orchestrator import (
    process_scheduled_notifications,
)
from prnudge.features.tokens.refresh import refresh_expiring_tokens

logger = structlog.get_logger(__name__)

NOTIFICATION_TICK_JOB_ID = "notification_tick"
TOKEN_REFRESH_JOB_ID = "token_refresh_sweep"

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> Optional[AsyncIOScheduler]:
    """Get the global scheduler instance.

    Returns:
        The scheduler instance if initialized, None otherwise.
    """
    return _scheduler


async def run_notification_tick() -> None:
    """Scheduled entry point for one notification tick."""
    summary = await process_scheduled_notifications()
    if not summary.success:
        logger.error("Scheduled notification tick failed", error=summary.error)


async def run_token_refresh() -> None:
    """Scheduled entry point for one token refresh sweep."""
    summary = await refresh_expiring_tokens()
    if not summary.success:
        logger.error("Scheduled token refresh sweep failed", error=summary.error)


def _schedule_jobs(scheduler: AsyncIOScheduler, token_refresh_minutes: int) -> None:
    """Register the tick and sweep jobs on the scheduler.

    :param scheduler: Scheduler to register the jobs with.
    :param token_refresh_minutes: Interval between token refresh sweeps.
    """
    scheduler.add_job(
        run_notification_tick,
        trigger=CronTrigger(second=0, timezone="UTC"),
        id=NOTIFICATION_TICK_JOB_ID,
        name="Scheduled PR notifications",
        replace_existing=True,
    )
    scheduler.add_job(
        run_token_refresh,
        trigger="interval",
        minutes=token_refresh_minutes,
        id=TOKEN_REFRESH_JOB_ID,
        name="OAuth token refresh sweep",
        replace_existing=True,
    )
    logger.info(
        "Scheduled jobs",
        jobs=[NOTIFICATION_TICK_JOB_ID, TOKEN_REFRESH_JOB_ID],
        token_refresh_minutes=token_refresh_minutes,
    )


async def start_scheduler() -> Optional[AsyncIOScheduler]:
    """Initialize and start the APScheduler instance.

    Returns:
        The started scheduler, or None when disabled via configuration.

    Raises:
        Exception: If scheduler initialization fails.
    """
    global _scheduler

    settings = get_global_settings()

    if not settings.scheduler_enabled:
        logger.info("Job scheduler is disabled via configuration")
        return None

    if _scheduler is not None:
        logger.warning("Scheduler already initialized")
        return _scheduler

    try:
        logger.info("Initializing job scheduler")

        executors = {
            "default": AsyncIOExecutor(),
        }

        job_defaults = {
            "coalesce": True,  # Combine multiple missed runs into one
            "max_instances": 1,  # A tick never overlaps the previous one
            "misfire_grace_time": 60,
        }

        _scheduler = AsyncIOScheduler(
            executors=executors,
            job_defaults=job_defaults,
            timezone="UTC",
        )
        _schedule_jobs(_scheduler, settings.token_refresh_interval_minutes)
        _scheduler.start()

        logger.info("Job scheduler started successfully")
        return _scheduler

    except Exception as e:
        logger.error(
            "Failed to start job scheduler",
            error=str(e),
            error_type=type(e).__name__,
        )
        _scheduler = None
        raise


async def shutdown_scheduler() -> None:
    """Gracefully shutdown the scheduler, waiting for running jobs."""
    global _scheduler

    if _scheduler is None:
        logger.info("Scheduler is not running, nothing to shutdown")
        return

    try:
        logger.info("Shutting down job scheduler")
        _scheduler.shutdown(wait=True)
        _scheduler = None
        logger.info("Job scheduler shut down successfully")

    except Exception as e:
        logger.error(
            "Error during scheduler shutdown",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
