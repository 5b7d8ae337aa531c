"""SQLAlchemy ORM models for notification schedules and their execution history."""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime as SQLDateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from prnudge.core.enums import ExecutionStatus
from prnudge.core.models import Base


class ScheduleORM(Base):
    """A recurring PR notification job owned by a user."""

    __tablename__ = "schedules"
    __table_args__ = (Index("idx_schedules_active", "is_active"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the schedule",
    )

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Owner of the schedule",
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name of the schedule",
    )

    cron_expression: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Five-field cron expression, evaluated in UTC",
    )

    git_provider_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("git_provider_connections.id", ondelete="CASCADE"),
        nullable=False,
        comment="Git connection used to fetch pull requests",
    )

    repositories: Mapped[List[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        comment="Repository full names to scan",
    )

    messaging_provider_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("messaging_provider_connections.id", ondelete="CASCADE"),
        nullable=False,
        comment="Chat connection receiving the regular notification",
    )

    messaging_channel_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Channel receiving the regular notification",
    )

    escalation_provider_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("messaging_provider_connections.id", ondelete="SET NULL"),
        nullable=True,
        comment="Chat connection receiving escalations",
    )

    escalation_channel_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Channel receiving escalations",
    )

    escalation_days: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Age in days after which an open PR escalates",
    )

    pr_filters: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=True,
        comment="Pull request filter specification",
    )

    send_when_empty: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Send an all-clear message when no PRs match",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Whether the schedule is evaluated by the tick",
    )

    last_executed_at: Mapped[Optional[datetime]] = mapped_column(
        SQLDateTime(timezone=True),
        nullable=True,
        comment="When the last completed execution ran (only moves forward)",
    )

    created_at: Mapped[datetime] = mapped_column(
        SQLDateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="When the schedule was created",
    )

    updated_at: Mapped[datetime] = mapped_column(
        SQLDateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="When the schedule was last updated",
    )

    def __repr__(self) -> str:
        """Return string representation of the schedule."""
        return f"<Schedule(id={self.id}, name='{self.name}', cron='{self.cron_expression}', active={self.is_active})>"


class ExecutionLogORM(Base):
    """Append-only record of one schedule execution."""

    __tablename__ = "execution_logs"
    __table_args__ = (
        Index("idx_execution_logs_schedule_executed", "schedule_id", "executed_at"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Unique identifier for the execution",
    )

    schedule_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schedules.id", ondelete="CASCADE"),
        nullable=False,
        comment="Schedule that was executed",
    )

    executed_at: Mapped[datetime] = mapped_column(
        SQLDateTime(timezone=True),
        nullable=False,
        comment="When the execution started",
    )

    status: Mapped[ExecutionStatus] = mapped_column(
        ENUM(
            ExecutionStatus,
            name="execution_status_enum",
            create_type=False,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        comment="Outcome (success, error, partial)",
    )

    pull_requests_found: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Open pull requests fetched from the provider, before filtering",
    )

    messages_sent: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Chat messages delivered (regular + escalation)",
    )

    escalations_triggered: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Pull requests escalated during this execution",
    )

    error_message: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Error text when the execution failed or partially failed",
    )

    execution_time_ms: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Wall-clock duration of the execution",
    )

    def __repr__(self) -> str:
        """Return string representation of the execution log."""
        return f"<ExecutionLog(id={self.id}, schedule_id={self.schedule_id}, status='{self.status.value}')>"
