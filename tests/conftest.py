"""Shared fixtures: in-memory repositories and a recording provider gateway."""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from prnudge.core.config import Settings
from prnudge.core.enums import GitProviderType, MessagingProviderType
from prnudge.core.providers.models import PullRequest, RenderedMessage, TokenSet
from prnudge.features.connections.repository import ConnectionRepositoryInterface
from prnudge.features.connections.schemas import (
    ConnectionKind,
    GitConnection,
    MessagingConnection,
)
from prnudge.features.escalations.repository import EscalationRepositoryInterface
from prnudge.features.escalations.schemas import EscalationTracking
from prnudge.features.notifications.stores import NotificationStores
from prnudge.features.schedules.repository import ScheduleRepositoryInterface
from prnudge.features.schedules.schemas import ExecutionLogCreate, Schedule

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def make_pr(
    pr_id: str = "1",
    age_days: float = 1,
    now: datetime = NOW,
    **overrides,
) -> PullRequest:
    """Build a pull request opened ``age_days`` before ``now``."""
    data = {
        "id": pr_id,
        "title": f"Pull request {pr_id}",
        "author": "alice",
        "url": f"https://github.com/acme/api/pull/{pr_id}",
        "created_at": now - timedelta(days=age_days),
        "repository": "acme/api",
    }
    data.update(overrides)
    return PullRequest(**data)


def make_schedule(**overrides) -> Schedule:
    data = {
        "id": uuid.uuid4(),
        "user_id": "user-1",
        "name": "Team digest",
        "cron_expression": "0 9 * * *",
        "git_provider_id": uuid.uuid4(),
        "repositories": ["acme/api"],
        "messaging_provider_id": uuid.uuid4(),
        "messaging_channel_id": "C-REGULAR",
    }
    data.update(overrides)
    return Schedule(**data)


class FakeScheduleRepository(ScheduleRepositoryInterface):
    def __init__(self, schedules: Optional[list] = None):
        self.schedules = list(schedules or [])
        self.last_executed: Dict[uuid.UUID, datetime] = {}
        self.logs: List[ExecutionLogCreate] = []
        self.fail_listing: Optional[Exception] = None

    async def list_active_schedules(self):
        if self.fail_listing:
            raise self.fail_listing
        return list(self.schedules)

    async def mark_executed(self, schedule_id, executed_at):
        current = self.last_executed.get(schedule_id)
        if current is not None and current >= executed_at:
            return False
        self.last_executed[schedule_id] = executed_at
        return True

    async def create_execution_log(self, entry):
        self.logs.append(entry)


class FakeEscalationRepository(EscalationRepositoryInterface):
    def __init__(self):
        self.rows: Dict[Tuple[uuid.UUID, str], EscalationTracking] = {}

    async def get_tracking(self, schedule_id, pull_request_id):
        return self.rows.get((schedule_id, pull_request_id))

    async def upsert_tracking(self, entry):
        key = (entry.schedule_id, entry.pull_request_id)
        existing = self.rows.get(key)
        if existing is not None:
            entry = entry.model_copy(
                update={"first_escalated_at": existing.first_escalated_at}
            )
        self.rows[key] = entry

    async def delete_stale_tracking(self, schedule_id, active_pull_request_ids):
        active = set(active_pull_request_ids)
        stale = [
            key
            for key in self.rows
            if key[0] == schedule_id and key[1] not in active
        ]
        for key in stale:
            del self.rows[key]
        return len(stale)


class FakeConnectionRepository(ConnectionRepositoryInterface):
    def __init__(self):
        self.git: Dict[uuid.UUID, GitConnection] = {}
        self.messaging: Dict[uuid.UUID, MessagingConnection] = {}
        self.updates: List[Tuple[ConnectionKind, uuid.UUID, TokenSet]] = []
        self.fail_update_for: set = set()

    def add_git(self, provider=GitProviderType.GITHUB, **overrides) -> GitConnection:
        data = {
            "id": uuid.uuid4(),
            "user_id": "user-1",
            "provider": provider,
            "access_token": "git-token",
        }
        data.update(overrides)
        connection = GitConnection(**data)
        self.git[connection.id] = connection
        return connection

    def add_messaging(
        self, provider=MessagingProviderType.SLACK, **overrides
    ) -> MessagingConnection:
        data = {
            "id": uuid.uuid4(),
            "user_id": "user-1",
            "provider": provider,
            "access_token": "chat-token",
        }
        data.update(overrides)
        connection = MessagingConnection(**data)
        self.messaging[connection.id] = connection
        return connection

    async def get_git_provider(self, connection_id):
        return self.git.get(connection_id)

    async def get_messaging_provider(self, connection_id):
        return self.messaging.get(connection_id)

    async def update_tokens(self, kind, connection_id, tokens, now):
        if connection_id in self.fail_update_for:
            raise RuntimeError("update failed")
        self.updates.append((kind, connection_id, tokens))

    async def list_expiring_git_providers(self, before):
        return [
            c
            for c in self.git.values()
            if c.refresh_token and c.expires_at and c.expires_at < before
        ]

    async def list_expiring_messaging_providers(self, before):
        return [
            c
            for c in self.messaging.values()
            if c.refresh_token and c.expires_at and c.expires_at < before
        ]


class FakeStores:
    """Shared in-memory repositories plus a factory yielding NotificationStores."""

    def __init__(self, schedules: Optional[list] = None):
        self.schedules = FakeScheduleRepository(schedules)
        self.escalations = FakeEscalationRepository()
        self.connections = FakeConnectionRepository()
        self.opened = 0

    @asynccontextmanager
    async def factory(self):
        self.opened += 1
        yield NotificationStores(
            schedules=self.schedules,
            escalations=self.escalations,
            connections=self.connections,
        )


class FakeGateway:
    """Records sends; returns canned pull requests per access token."""

    def __init__(self, pull_requests: Optional[List[PullRequest]] = None):
        self.pull_requests = list(pull_requests or [])
        self.sent: List[Tuple[str, RenderedMessage]] = []
        self.fetch_error: Optional[Exception] = None
        self.send_errors: Dict[str, Exception] = {}
        self.refresh_results: Dict[str, Optional[TokenSet]] = {}
        self.refresh_errors: Dict[str, Exception] = {}
        self.refreshed: List[str] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def fetch_pull_requests(self, provider, access_token, repositories, filters=None):
        if self.fetch_error:
            raise self.fetch_error
        return list(self.pull_requests)

    async def send_message(self, provider, access_token, channel_id, message, webhook_url=None):
        if channel_id in self.send_errors:
            raise self.send_errors[channel_id]
        self.sent.append((channel_id, message))

    async def _refresh(self, refresh_token):
        self.refreshed.append(refresh_token)
        if refresh_token in self.refresh_errors:
            raise self.refresh_errors[refresh_token]
        return self.refresh_results.get(refresh_token)

    async def refresh_git_token(self, provider, refresh_token):
        return await self._refresh(refresh_token)

    async def refresh_messaging_token(self, provider, refresh_token):
        return await self._refresh(refresh_token)


@pytest.fixture
def settings():
    return Settings(
        notification_concurrency=3,
        provider_timeout_seconds=5.0,
        re_escalation_interval_days=7,
        stale_pr_days=7,
        max_prs_per_category=10,
        token_refresh_lookahead_minutes=60,
        scheduler_enabled=False,
    )


@pytest.fixture
def stores():
    return FakeStores()


@pytest.fixture
def gateway():
    return FakeGateway()
