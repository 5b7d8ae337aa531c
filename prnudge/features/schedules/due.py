"""
Due-Job Selector.

A schedule is due when its cron expression fired exactly at the current
minute and it has not completed a run for that fire time yet. The tick runs
every minute, so a schedule whose fire minute was missed is not caught up;
it waits for its next fire time.
"""

from datetime import datetime, timedelta
from typing import Iterable, List

import structlog
from croniter import croniter

from prnudge.core.timeutils import ensure_utc, truncate_to_minute

from .schemas import Schedule

logger = structlog.get_logger(__name__)

CRON_FIELD_COUNT = 5


class InvalidCronExpressionError(ValueError):
    """Cron expression cannot be parsed or never fires."""

    def __init__(self, expression: str, reason: str):
        super().__init__(f"Invalid cron expression '{expression}': {reason}")
        self.expression = expression
        self.reason = reason


def get_previous_fire_time(cron_expression: str, now: datetime) -> datetime:
    """Most recent fire time at or before ``now``, at minute precision (UTC).

    :raises InvalidCronExpressionError: expression is malformed
    """
    if len(cron_expression.split()) != CRON_FIELD_COUNT:
        raise InvalidCronExpressionError(
            cron_expression, f"expected {CRON_FIELD_COUNT} fields"
        )

    current_minute = truncate_to_minute(now)
    # get_prev() excludes its start time, so start one minute later
    try:
        itr = croniter(cron_expression, current_minute + timedelta(minutes=1))
        previous = itr.get_prev(datetime)
    except (ValueError, KeyError) as e:
        raise InvalidCronExpressionError(cron_expression, str(e)) from e

    return truncate_to_minute(previous)


def is_due(schedule: Schedule, now: datetime) -> bool:
    """Whether ``schedule`` should run in the tick for ``now``.

    :raises InvalidCronExpressionError: the schedule's cron expression is malformed
    """
    current_minute = truncate_to_minute(now)
    previous_fire = get_previous_fire_time(schedule.cron_expression, current_minute)

    if previous_fire != current_minute:
        return False
    if schedule.last_executed_at is None:
        return True
    return ensure_utc(schedule.last_executed_at) < previous_fire


def select_due_schedules(schedules: Iterable[Schedule], now: datetime) -> List[Schedule]:
    """Filter ``schedules`` down to the ones due at ``now``.

    Schedules with an invalid cron expression are logged and skipped.
    """
    due: List[Schedule] = []
    for schedule in schedules:
        if not schedule.is_active:
            continue
        try:
            if is_due(schedule, now):
                due.append(schedule)
        except InvalidCronExpressionError as e:
            logger.warning(
                "Skipping schedule with invalid cron expression",
                schedule_id=str(schedule.id),
                schedule_name=schedule.name,
                cron_expression=schedule.cron_expression,
                error=e.reason,
            )
    return due
