"""Pydantic schemas for provider connections."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from prnudge.core.enums import GitProviderType, MessagingProviderType


class ConnectionKind(str, Enum):
    """Which connection table a record lives in."""

    GIT = "git"
    MESSAGING = "messaging"


class ConnectionBase(BaseModel):
    """Fields shared by git and messaging connections."""

    id: UUID
    user_id: str
    access_token: str = Field(..., repr=False)
    refresh_token: Optional[str] = Field(None, repr=False)
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GitConnection(ConnectionBase):
    """Authorized git hosting connection."""

    provider: GitProviderType


class MessagingConnection(ConnectionBase):
    """Authorized chat connection."""

    provider: MessagingProviderType
    webhook_url: Optional[str] = None
