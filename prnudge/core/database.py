"""Database connection and session management for PostgreSQL using SQLAlchemy with async support."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)

from .config import get_global_settings


class DatabaseManager:
    """Database connection and session manager.

    The engine is created lazily so importing the package (tests, CLI help)
    never opens a connection pool.
    """

    def __init__(self):
        """Initialize database manager without connecting."""
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        """Create the async engine on first use."""
        if self._engine is None:
            settings = get_global_settings()
            self._engine = create_async_engine(
                settings.database_url,
                echo=settings.debug,  # Enable SQL logging in debug mode
                pool_pre_ping=True,
                # asyncpg aborts statements that run longer than this
                connect_args={
                    "command_timeout": settings.database_command_timeout_seconds
                },
            )
        return self._engine

    @property
    def async_session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Session factory bound to the lazily created engine."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session with proper cleanup."""
        async with self.async_session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self) -> None:
        """Close database connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


# Global database manager instance
db_manager = DatabaseManager()
