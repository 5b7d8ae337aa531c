"""Pydantic schemas for escalation tracking."""

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from prnudge.core.providers.models import PullRequest


class EscalationTracking(BaseModel):
    """Persisted escalation state for a (schedule, pull request) pair."""

    schedule_id: UUID
    pull_request_id: str
    pull_request_url: str
    first_escalated_at: datetime
    last_escalated_at: datetime
    escalation_count: int = Field(1, ge=1)

    model_config = ConfigDict(from_attributes=True)


class EscalationOutcome(BaseModel):
    """Result of one tracker pass."""

    escalated: List[PullRequest] = Field(default_factory=list)
    tracking_rows_deleted: int = 0

    @property
    def count(self) -> int:
        return len(self.escalated)
