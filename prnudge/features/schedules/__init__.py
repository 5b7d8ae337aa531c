"""Schedules feature: persisted schedules, execution logs and due selection."""

from .due import (
    InvalidCronExpressionError,
    get_previous_fire_time,
    is_due,
    select_due_schedules,
)
from .orm_models import ExecutionLogORM, ScheduleORM
from .repository import ScheduleRepositoryInterface, SQLAlchemyScheduleRepository
from .schemas import ExecutionLogCreate, ExecutionResult, Schedule

__all__ = [
    "InvalidCronExpressionError",
    "get_previous_fire_time",
    "is_due",
    "select_due_schedules",
    "ExecutionLogORM",
    "ScheduleORM",
    "ScheduleRepositoryInterface",
    "SQLAlchemyScheduleRepository",
    "ExecutionLogCreate",
    "ExecutionResult",
    "Schedule",
]
