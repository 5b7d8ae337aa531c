"""Per-executor bundle of repositories sharing one database session."""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncContextManager, AsyncIterator, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from prnudge.core.database import db_manager
from prnudge.features.connections.repository import (
    ConnectionRepositoryInterface,
    SQLAlchemyConnectionRepository,
)
from prnudge.features.escalations.repository import (
    EscalationRepositoryInterface,
    SQLAlchemyEscalationRepository,
)
from prnudge.features.schedules.repository import (
    ScheduleRepositoryInterface,
    SQLAlchemyScheduleRepository,
)


@dataclass
class NotificationStores:
    """Repositories used by one executor run (or one token sweep)."""

    schedules: ScheduleRepositoryInterface
    escalations: EscalationRepositoryInterface
    connections: ConnectionRepositoryInterface
    session: Optional[AsyncSession] = None

    async def rollback(self) -> None:
        """Discard a failed transaction so the session can be reused."""
        if self.session is not None:
            await self.session.rollback()


StoresFactory = Callable[[], AsyncContextManager[NotificationStores]]


@asynccontextmanager
async def sqlalchemy_stores() -> AsyncIterator[NotificationStores]:
    """Open a session and wrap it in the SQLAlchemy repositories."""
    async with db_manager.get_session() as session:
        yield NotificationStores(
            schedules=SQLAlchemyScheduleRepository(session),
            escalations=SQLAlchemyEscalationRepository(session),
            connections=SQLAlchemyConnectionRepository(session),
            session=session,
        )
