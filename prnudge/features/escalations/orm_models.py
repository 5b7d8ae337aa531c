"""SQLAlchemy ORM model for escalation tracking."""

import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime as SQLDateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from prnudge.core.models import Base


class EscalationTrackingORM(Base):
    """One row per (schedule, pull request) that has escalated and is still open."""

    __tablename__ = "escalation_tracking"
    __table_args__ = (
        UniqueConstraint(
            "schedule_id",
            "pull_request_id",
            name="uq_escalation_tracking_schedule_pr",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Unique identifier for the tracking row",
    )

    schedule_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schedules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Schedule the escalation belongs to",
    )

    pull_request_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Provider-scoped pull request id",
    )

    pull_request_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Link to the pull request",
    )

    first_escalated_at: Mapped[datetime] = mapped_column(
        SQLDateTime(timezone=True),
        nullable=False,
        comment="When the pull request first escalated",
    )

    last_escalated_at: Mapped[datetime] = mapped_column(
        SQLDateTime(timezone=True),
        nullable=False,
        comment="When the pull request last escalated",
    )

    escalation_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Number of escalations sent (>= 1)",
    )

    def __repr__(self) -> str:
        """Return string representation of the tracking row."""
        return f"<EscalationTracking(schedule_id={self.schedule_id}, pr='{self.pull_request_id}', count={self.escalation_count})>"
