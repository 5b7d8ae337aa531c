"""SQLAlchemy ORM models for provider connections.

Connections are created by the OAuth flows (outside this service); the engine
only reads them and rotates their tokens.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime as SQLDateTime, String, Text
from sqlalchemy.dialects.postgresql import ENUM, UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from prnudge.core.enums import GitProviderType, MessagingProviderType
from prnudge.core.models import Base


def _enum_values(enum_class) -> list[str]:
    return [member.value for member in enum_class]


class GitProviderConnectionORM(Base):
    """A user's authorized connection to a git hosting provider."""

    __tablename__ = "git_provider_connections"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the connection",
    )

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Owner of the connection",
    )

    provider: Mapped[GitProviderType] = mapped_column(
        ENUM(
            GitProviderType,
            name="git_provider_type_enum",
            create_type=False,
            values_callable=_enum_values,
        ),
        nullable=False,
        comment="Git hosting provider (github, gitlab, bitbucket)",
    )

    access_token: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="OAuth access token",
    )

    refresh_token: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="OAuth refresh token, when the provider issues one",
    )

    expires_at: Mapped[Optional[datetime]] = mapped_column(
        SQLDateTime(timezone=True),
        nullable=True,
        index=True,
        comment="When the access token expires (null = never)",
    )

    created_at: Mapped[datetime] = mapped_column(
        SQLDateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="When the connection was created",
    )

    updated_at: Mapped[datetime] = mapped_column(
        SQLDateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="When the connection was last updated",
    )

    def __repr__(self) -> str:
        """Return string representation of the connection."""
        return f"<GitProviderConnection(id={self.id}, provider='{self.provider.value}', user='{self.user_id}')>"


class MessagingProviderConnectionORM(Base):
    """A user's authorized connection to a chat provider."""

    __tablename__ = "messaging_provider_connections"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the connection",
    )

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Owner of the connection",
    )

    provider: Mapped[MessagingProviderType] = mapped_column(
        ENUM(
            MessagingProviderType,
            name="messaging_provider_type_enum",
            create_type=False,
            values_callable=_enum_values,
        ),
        nullable=False,
        comment="Chat provider (slack, discord, teams)",
    )

    access_token: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="OAuth or bot access token",
    )

    refresh_token: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="OAuth refresh token, when the provider issues one",
    )

    expires_at: Mapped[Optional[datetime]] = mapped_column(
        SQLDateTime(timezone=True),
        nullable=True,
        index=True,
        comment="When the access token expires (null = never)",
    )

    webhook_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Incoming webhook used instead of the API when set",
    )

    created_at: Mapped[datetime] = mapped_column(
        SQLDateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="When the connection was created",
    )

    updated_at: Mapped[datetime] = mapped_column(
        SQLDateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="When the connection was last updated",
    )

    def __repr__(self) -> str:
        """Return string representation of the connection."""
        return f"<MessagingProviderConnection(id={self.id}, provider='{self.provider.value}', user='{self.user_id}')>"
