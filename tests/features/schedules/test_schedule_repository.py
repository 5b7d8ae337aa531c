import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from prnudge.core.enums import ExecutionStatus
from prnudge.features.schedules.orm_models import ExecutionLogORM, ScheduleORM
from prnudge.features.schedules.repository import SQLAlchemyScheduleRepository
from prnudge.features.schedules.schemas import ExecutionLogCreate

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def repository(mock_db):
    return SQLAlchemyScheduleRepository(mock_db)


async def test_list_active_schedules(repository, mock_db):
    """Test listing active schedule rows"""
    rows = [ScheduleORM(name="a"), ScheduleORM(name="b")]
    mock_result = MagicMock()
    mock_result.scalars.return_value.all.return_value = rows
    mock_db.execute = AsyncMock(return_value=mock_result)

    result = await repository.list_active_schedules()

    assert result == rows
    mock_db.execute.assert_called_once()


async def test_mark_executed_reports_update(repository, mock_db):
    """Test the guarded last_executed_at update"""
    mock_result = MagicMock()
    mock_result.rowcount = 1
    mock_db.execute = AsyncMock(return_value=mock_result)

    assert await repository.mark_executed(uuid.uuid4(), NOW) is True
    mock_db.commit.assert_called_once()

    statement = str(mock_db.execute.call_args.args[0])
    assert "last_executed_at IS NULL" in statement
    assert "last_executed_at <" in statement


async def test_mark_executed_without_match(repository, mock_db):
    """Test that a stale timestamp does not count as an update"""
    mock_result = MagicMock()
    mock_result.rowcount = 0
    mock_db.execute = AsyncMock(return_value=mock_result)

    assert await repository.mark_executed(uuid.uuid4(), NOW) is False


async def test_create_execution_log(repository, mock_db):
    """Test appending an execution log row"""
    entry = ExecutionLogCreate(
        schedule_id=uuid.uuid4(),
        executed_at=NOW,
        status=ExecutionStatus.PARTIAL,
        pull_requests_found=4,
        messages_sent=1,
        error_message="Escalation failed: boom",
    )

    await repository.create_execution_log(entry)

    added = mock_db.add.call_args.args[0]
    assert isinstance(added, ExecutionLogORM)
    assert added.status == ExecutionStatus.PARTIAL
    assert added.error_message == "Escalation failed: boom"
    mock_db.commit.assert_called_once()
