"""Repository for provider connections.

Read by the job executor to resolve a schedule's providers and by the token
refresh sweep to rotate expiring tokens.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional, Union
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prnudge.core.providers.models import TokenSet

from .orm_models import GitProviderConnectionORM, MessagingProviderConnectionORM
from .schemas import ConnectionKind, GitConnection, MessagingConnection

logger = structlog.get_logger(__name__)

ConnectionORM = Union[GitProviderConnectionORM, MessagingProviderConnectionORM]


class ConnectionRepositoryInterface(ABC):
    """Interface for provider connection repository."""

    @abstractmethod
    async def get_git_provider(self, connection_id: UUID) -> Optional[GitConnection]:
        """Get a git connection by id.

        :param connection_id: Connection identifier
        :returns: GitConnection if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_messaging_provider(
        self, connection_id: UUID
    ) -> Optional[MessagingConnection]:
        """Get a messaging connection by id.

        :param connection_id: Connection identifier
        :returns: MessagingConnection if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_tokens(
        self,
        kind: ConnectionKind,
        connection_id: UUID,
        tokens: TokenSet,
        now: datetime,
    ) -> None:
        """Persist a refreshed token set.

        The stored refresh token is kept when the provider does not rotate it.

        :param kind: Which connection table to update
        :param connection_id: Connection identifier
        :param tokens: New tokens from the provider
        :param now: Reference time for computing ``expires_at``
        """
        pass

    @abstractmethod
    async def list_expiring_git_providers(self, before: datetime) -> list[GitConnection]:
        """Git connections with a refresh token whose access token expires before ``before``."""
        pass

    @abstractmethod
    async def list_expiring_messaging_providers(
        self, before: datetime
    ) -> list[MessagingConnection]:
        """Messaging connections with a refresh token whose access token expires before ``before``."""
        pass


class SQLAlchemyConnectionRepository(ConnectionRepositoryInterface):
    """SQLAlchemy implementation of connection repository."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session.

        :param db: Async database session
        """
        self.db = db

    async def get_git_provider(self, connection_id: UUID) -> Optional[GitConnection]:
        """Get a git connection by id."""
        row = await self.db.get(GitProviderConnectionORM, connection_id)
        logger.debug(
            "git_connection_lookup",
            connection_id=str(connection_id),
            found=row is not None,
        )
        return GitConnection.model_validate(row) if row is not None else None

    async def get_messaging_provider(
        self, connection_id: UUID
    ) -> Optional[MessagingConnection]:
        """Get a messaging connection by id."""
        row = await self.db.get(MessagingProviderConnectionORM, connection_id)
        logger.debug(
            "messaging_connection_lookup",
            connection_id=str(connection_id),
            found=row is not None,
        )
        return MessagingConnection.model_validate(row) if row is not None else None

    async def update_tokens(
        self,
        kind: ConnectionKind,
        connection_id: UUID,
        tokens: TokenSet,
        now: datetime,
    ) -> None:
        """Persist a refreshed token set."""
        model = (
            GitProviderConnectionORM
            if kind == ConnectionKind.GIT
            else MessagingProviderConnectionORM
        )
        values = {
            "access_token": tokens.access_token,
            "expires_at": (
                now + timedelta(seconds=tokens.expires_in)
                if tokens.expires_in
                else None
            ),
        }
        if tokens.refresh_token:
            values["refresh_token"] = tokens.refresh_token

        stmt = update(model).where(model.id == connection_id).values(**values)
        await self.db.execute(stmt)
        await self.db.commit()

        logger.info(
            "connection_tokens_updated",
            kind=kind.value,
            connection_id=str(connection_id),
            expires_at=values["expires_at"],
        )

    async def list_expiring_git_providers(self, before: datetime) -> list[GitConnection]:
        """Git connections expiring before ``before``."""
        rows = await self._list_expiring(GitProviderConnectionORM, before)
        return [GitConnection.model_validate(row) for row in rows]

    async def list_expiring_messaging_providers(
        self, before: datetime
    ) -> list[MessagingConnection]:
        """Messaging connections expiring before ``before``."""
        rows = await self._list_expiring(MessagingProviderConnectionORM, before)
        return [MessagingConnection.model_validate(row) for row in rows]

    async def _list_expiring(self, model, before: datetime) -> list[ConnectionORM]:
        stmt = (
            select(model)
            .where(
                model.refresh_token.is_not(None),
                model.expires_at.is_not(None),
                model.expires_at < before,
            )
            .order_by(model.expires_at.asc())
        )
        result = await self.db.execute(stmt)
        rows = list(result.scalars().all())

        logger.debug(
            "expiring_connections_listed",
            table=model.__tablename__,
            count=len(rows),
        )
        return rows
