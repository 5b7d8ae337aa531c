"""
Tick Orchestrator.

Entry point invoked once a minute by an external trigger (HTTP, CLI or the
in-process scheduler). Loads active schedules, selects the due ones and runs
their executors concurrently with a bounded pool. One schedule failing never
aborts the others.
"""

import asyncio
import time
from datetime import datetime
from typing import Iterable, List, Optional

import structlog
from pydantic import ValidationError

from prnudge.core.config import Settings, get_global_settings
from prnudge.core.enums import ExecutionStatus
from prnudge.core.providers.gateway import ProviderGateway
from prnudge.core.timeutils import utcnow
from prnudge.features.schedules.due import select_due_schedules
from prnudge.features.schedules.schemas import ExecutionResult, Schedule

from .executor import JobExecutor
from .schemas import TickSummary
from .stores import StoresFactory, sqlalchemy_stores

logger = structlog.get_logger(__name__)


def to_schedules(rows: Iterable) -> List[Schedule]:
    """Validate schedule rows; malformed rows are logged and skipped."""
    schedules: List[Schedule] = []
    for row in rows:
        try:
            schedules.append(Schedule.model_validate(row))
        except ValidationError as e:
            logger.warning(
                "Skipping malformed schedule",
                schedule_id=str(getattr(row, "id", None)),
                error_count=e.error_count(),
                error=str(e),
            )
    return schedules


async def process_scheduled_notifications(
    settings: Optional[Settings] = None,
    stores_factory: Optional[StoresFactory] = None,
    gateway: Optional[ProviderGateway] = None,
    now: Optional[datetime] = None,
) -> TickSummary:
    """Run one notification tick.

    Args:
        settings: Application settings (global settings when omitted)
        stores_factory: Repository factory (SQLAlchemy when omitted)
        gateway: Provider gateway (a new one owning its HTTP client when omitted)
        now: Tick time (current UTC time when omitted)

    Returns:
        TickSummary; ``success`` is False only when schedules could not be loaded
    """
    settings = settings or get_global_settings()
    stores_factory = stores_factory or sqlalchemy_stores
    now = now or utcnow()
    started = time.perf_counter()

    logger.info("Starting notification tick", tick_time=now.isoformat())

    try:
        async with stores_factory() as stores:
            rows = await stores.schedules.list_active_schedules()
    except Exception as e:
        logger.error(
            "Failed to load active schedules",
            error=str(e),
            error_type=type(e).__name__,
        )
        return TickSummary(
            success=False,
            execution_time_ms=_elapsed_ms(started),
            error=f"{type(e).__name__}: {str(e)}",
        )

    schedules = to_schedules(rows)
    due = select_due_schedules(schedules, now)

    logger.info(
        "Due schedules selected",
        active_schedules=len(schedules),
        due_schedules=len(due),
    )

    if not due:
        return TickSummary(success=True, execution_time_ms=_elapsed_ms(started))

    results = await _run_executors(due, settings, stores_factory, gateway, now)

    failed = sum(1 for r in results if r.status == ExecutionStatus.ERROR)
    partial = sum(1 for r in results if r.status == ExecutionStatus.PARTIAL)
    summary = TickSummary(
        success=True,
        schedules_processed=len(results),
        schedules_failed=failed,
        schedules_partial=partial,
        execution_time_ms=_elapsed_ms(started),
        results=results,
    )

    logger.info(
        "Notification tick completed",
        schedules_processed=summary.schedules_processed,
        schedules_succeeded=summary.schedules_processed - failed - partial,
        schedules_partial=partial,
        schedules_failed=failed,
        execution_time_ms=summary.execution_time_ms,
    )
    return summary


async def _run_executors(
    due: List[Schedule],
    settings: Settings,
    stores_factory: StoresFactory,
    gateway: Optional[ProviderGateway],
    now: datetime,
) -> List[ExecutionResult]:
    semaphore = asyncio.Semaphore(settings.notification_concurrency)

    async def run_one(gw: ProviderGateway, schedule: Schedule) -> ExecutionResult:
        async with semaphore:
            return await JobExecutor(schedule, gw, stores_factory, settings, now).run()

    async with gateway or ProviderGateway(settings) as gw:
        outcomes = await asyncio.gather(
            *(run_one(gw, schedule) for schedule in due), return_exceptions=True
        )

    results: List[ExecutionResult] = []
    for schedule, outcome in zip(due, outcomes):
        if isinstance(outcome, BaseException):
            # JobExecutor.run() handles its own errors; this is a last resort
            logger.error(
                "Executor crashed",
                schedule_id=str(schedule.id),
                schedule_name=schedule.name,
                error=str(outcome),
                error_type=type(outcome).__name__,
            )
            outcome = ExecutionResult(
                schedule_id=schedule.id,
                schedule_name=schedule.name,
                status=ExecutionStatus.ERROR,
                error_message=f"{type(outcome).__name__}: {str(outcome)}",
            )
        results.append(outcome)
    return results


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
