"""Repository for escalation tracking rows."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prnudge.core.exceptions import DatabaseError

from .orm_models import EscalationTrackingORM
from .schemas import EscalationTracking

logger = structlog.get_logger(__name__)


class EscalationRepositoryInterface(ABC):
    """Interface for escalation tracking repository."""

    @abstractmethod
    async def get_tracking(
        self, schedule_id: UUID, pull_request_id: str
    ) -> Optional[EscalationTracking]:
        """Get the tracking row for a pull request.

        :param schedule_id: Schedule identifier
        :param pull_request_id: Provider-scoped pull request id
        :returns: EscalationTracking if the PR has escalated before, None otherwise
        """
        pass

    @abstractmethod
    async def upsert_tracking(self, entry: EscalationTracking) -> None:
        """Create or update the row for ``(entry.schedule_id, entry.pull_request_id)``.

        ``first_escalated_at`` is only written on insert.

        :param entry: Tracking state to persist
        """
        pass

    @abstractmethod
    async def delete_stale_tracking(
        self, schedule_id: UUID, active_pull_request_ids: Sequence[str]
    ) -> int:
        """Delete rows for pull requests that are no longer open.

        :param schedule_id: Schedule identifier
        :param active_pull_request_ids: Ids of every open PR from the latest fetch
        :returns: Number of rows deleted
        """
        pass


class SQLAlchemyEscalationRepository(EscalationRepositoryInterface):
    """SQLAlchemy implementation of escalation tracking repository."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session.

        :param db: Async database session
        """
        self.db = db

    async def get_tracking(
        self, schedule_id: UUID, pull_request_id: str
    ) -> Optional[EscalationTracking]:
        """Get the tracking row for a pull request."""
        stmt = select(EscalationTrackingORM).where(
            EscalationTrackingORM.schedule_id == schedule_id,
            EscalationTrackingORM.pull_request_id == pull_request_id,
        )
        result = await self.db.execute(stmt)
        row = result.scalar_one_or_none()
        return EscalationTracking.model_validate(row) if row is not None else None

    async def upsert_tracking(self, entry: EscalationTracking) -> None:
        """Insert, or on conflict advance the escalation state.

        :raises DatabaseError: If the statement or commit fails
        """
        stmt = insert(EscalationTrackingORM).values(**entry.model_dump())
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                EscalationTrackingORM.schedule_id,
                EscalationTrackingORM.pull_request_id,
            ],
            set_={
                "pull_request_url": stmt.excluded.pull_request_url,
                "last_escalated_at": stmt.excluded.last_escalated_at,
                "escalation_count": stmt.excluded.escalation_count,
            },
        )
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            raise DatabaseError(
                message=str(e),
                service="escalations",
                operation="upsert_tracking",
                context={
                    "schedule_id": str(entry.schedule_id),
                    "pull_request_id": entry.pull_request_id,
                },
                original_error=e,
            ) from e

        logger.debug(
            "escalation_tracking_upserted",
            schedule_id=str(entry.schedule_id),
            pull_request_id=entry.pull_request_id,
            escalation_count=entry.escalation_count,
        )

    async def delete_stale_tracking(
        self, schedule_id: UUID, active_pull_request_ids: Sequence[str]
    ) -> int:
        """Delete rows whose pull request is absent from the active list."""
        stmt = delete(EscalationTrackingORM).where(
            EscalationTrackingORM.schedule_id == schedule_id
        )
        if active_pull_request_ids:
            stmt = stmt.where(
                EscalationTrackingORM.pull_request_id.not_in(
                    list(active_pull_request_ids)
                )
            )
        result = await self.db.execute(stmt)
        await self.db.commit()

        deleted = result.rowcount or 0
        if deleted:
            logger.info(
                "stale_escalation_tracking_deleted",
                schedule_id=str(schedule_id),
                count=deleted,
            )
        return deleted
