"""Repository for schedules and their execution logs."""

from abc import ABC, abstractmethod
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .orm_models import ExecutionLogORM, ScheduleORM
from .schemas import ExecutionLogCreate

logger = structlog.get_logger(__name__)


class ScheduleRepositoryInterface(ABC):
    """Interface for schedule repository."""

    @abstractmethod
    async def list_active_schedules(self) -> list[ScheduleORM]:
        """Get all active schedules.

        :returns: Active schedule rows, unvalidated
        """
        pass

    @abstractmethod
    async def mark_executed(self, schedule_id: UUID, executed_at: datetime) -> bool:
        """Advance ``last_executed_at`` to ``executed_at``.

        The write is conditional so the timestamp never moves backwards.

        :param schedule_id: Schedule identifier
        :param executed_at: Time the run completed at
        :returns: True when the row was updated
        """
        pass

    @abstractmethod
    async def create_execution_log(self, entry: ExecutionLogCreate) -> None:
        """Append an execution log row.

        :param entry: Execution outcome
        """
        pass


class SQLAlchemyScheduleRepository(ScheduleRepositoryInterface):
    """SQLAlchemy implementation of schedule repository."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session.

        :param db: Async database session
        """
        self.db = db

    async def list_active_schedules(self) -> list[ScheduleORM]:
        """Get all active schedules ordered by creation time."""
        stmt = (
            select(ScheduleORM)
            .where(ScheduleORM.is_active == True)  # noqa: E712
            .order_by(ScheduleORM.created_at.asc())
        )
        result = await self.db.execute(stmt)
        schedules = list(result.scalars().all())

        logger.debug("active_schedules_retrieved", count=len(schedules))

        return schedules

    async def mark_executed(self, schedule_id: UUID, executed_at: datetime) -> bool:
        """Advance ``last_executed_at`` when it is older than ``executed_at``."""
        stmt = (
            update(ScheduleORM)
            .where(
                ScheduleORM.id == schedule_id,
                or_(
                    ScheduleORM.last_executed_at.is_(None),
                    ScheduleORM.last_executed_at < executed_at,
                ),
            )
            .values(last_executed_at=executed_at)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()

        updated = result.rowcount > 0
        logger.debug(
            "schedule_marked_executed",
            schedule_id=str(schedule_id),
            executed_at=executed_at.isoformat(),
            updated=updated,
        )
        return updated

    async def create_execution_log(self, entry: ExecutionLogCreate) -> None:
        """Append an execution log row."""
        self.db.add(ExecutionLogORM(**entry.model_dump()))
        await self.db.commit()

        logger.debug(
            "execution_log_created",
            schedule_id=str(entry.schedule_id),
            status=entry.status.value,
        )
