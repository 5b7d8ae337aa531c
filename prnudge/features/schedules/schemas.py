"""Pydantic schemas for schedules and execution logs."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prnudge.core.enums import ExecutionStatus
from prnudge.core.providers.models import PullRequestFilters


class Schedule(BaseModel):
    """A schedule as seen by the engine.

    Built from ``ScheduleORM`` rows; a row that fails validation is skipped by
    the tick instead of aborting the batch.
    """

    id: UUID
    user_id: str
    name: str
    cron_expression: str
    git_provider_id: UUID
    repositories: List[str] = Field(default_factory=list)
    messaging_provider_id: UUID
    messaging_channel_id: str
    escalation_provider_id: Optional[UUID] = None
    escalation_channel_id: Optional[str] = None
    escalation_days: Optional[int] = Field(None, ge=0)
    pr_filters: PullRequestFilters = Field(default_factory=PullRequestFilters)
    send_when_empty: bool = False
    is_active: bool = True
    last_executed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("pr_filters", mode="before")
    @classmethod
    def default_filters(cls, v):
        """Stored filters may be NULL."""
        return v if v is not None else {}

    @property
    def escalation_enabled(self) -> bool:
        """Escalation needs a provider, a channel and a non-zero threshold."""
        return (
            self.escalation_provider_id is not None
            and bool(self.escalation_channel_id)
            and bool(self.escalation_days)
        )


class ExecutionLogCreate(BaseModel):
    """One execution outcome, written exactly once per executor run."""

    schedule_id: UUID
    executed_at: datetime
    status: ExecutionStatus
    pull_requests_found: int = 0
    messages_sent: int = 0
    escalations_triggered: int = 0
    error_message: Optional[str] = None
    execution_time_ms: int = 0


class ExecutionResult(BaseModel):
    """What a single executor run reports back to the tick."""

    schedule_id: UUID
    schedule_name: str
    status: ExecutionStatus
    pull_requests_found: int = 0
    messages_sent: int = 0
    escalations_triggered: int = 0
    error_message: Optional[str] = None
    execution_time_ms: int = 0
