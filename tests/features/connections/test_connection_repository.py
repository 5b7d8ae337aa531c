import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from prnudge.core.enums import GitProviderType, MessagingProviderType
from prnudge.core.providers.models import TokenSet
from prnudge.features.connections.orm_models import (
    GitProviderConnectionORM,
    MessagingProviderConnectionORM,
)
from prnudge.features.connections.repository import SQLAlchemyConnectionRepository
from prnudge.features.connections.schemas import ConnectionKind, GitConnection

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_db():
    return AsyncMock()


@pytest.fixture
def repository(mock_db):
    return SQLAlchemyConnectionRepository(mock_db)


async def test_get_git_provider(repository, mock_db):
    """Test resolving a git connection"""
    row = GitProviderConnectionORM(
        id=uuid.uuid4(),
        user_id="user-1",
        provider=GitProviderType.GITLAB,
        access_token="secret",
    )
    mock_db.get = AsyncMock(return_value=row)

    result = await repository.get_git_provider(row.id)

    assert isinstance(result, GitConnection)
    assert result.provider == GitProviderType.GITLAB
    assert "secret" not in repr(result)


async def test_get_messaging_provider_missing(repository, mock_db):
    """Test resolving a missing messaging connection"""
    mock_db.get = AsyncMock(return_value=None)

    assert await repository.get_messaging_provider(uuid.uuid4()) is None


async def test_update_tokens_keeps_refresh_token_when_not_rotated(repository, mock_db):
    """Test persisting refreshed tokens"""
    await repository.update_tokens(
        ConnectionKind.MESSAGING,
        uuid.uuid4(),
        TokenSet(access_token="new", expires_in=3600),
        NOW,
    )

    statement = mock_db.execute.call_args.args[0]
    params = statement.compile().params
    assert params["access_token"] == "new"
    assert params["expires_at"] == NOW + timedelta(hours=1)
    assert "refresh_token" not in params
    assert statement.table.name == "messaging_provider_connections"
    mock_db.commit.assert_called_once()


async def test_update_tokens_rotates_refresh_token(repository, mock_db):
    """Test persisting a rotated refresh token"""
    await repository.update_tokens(
        ConnectionKind.GIT,
        uuid.uuid4(),
        TokenSet(access_token="new", refresh_token="r2"),
        NOW,
    )

    params = mock_db.execute.call_args.args[0].compile().params
    assert params["refresh_token"] == "r2"
    assert params["expires_at"] is None


async def test_list_expiring_messaging_providers(repository, mock_db):
    """Test listing connections that need a refresh"""
    row = MessagingProviderConnectionORM(
        id=uuid.uuid4(),
        user_id="user-1",
        provider=MessagingProviderType.DISCORD,
        access_token="a",
        refresh_token="r",
        expires_at=NOW,
    )
    mock_result = MagicMock()
    mock_result.scalars.return_value.all.return_value = [row]
    mock_db.execute = AsyncMock(return_value=mock_result)

    result = await repository.list_expiring_messaging_providers(NOW + timedelta(hours=1))

    assert [c.id for c in result] == [row.id]
    assert result[0].refresh_token == "r"
