"""Escalations feature: per-(schedule, PR) escalation state and the tracker."""

from .orm_models import EscalationTrackingORM
from .repository import EscalationRepositoryInterface, SQLAlchemyEscalationRepository
from .schemas import EscalationOutcome, EscalationTracking
from .tracker import (
    EscalationDecision,
    EscalationTracker,
    exceeds_threshold,
    needs_escalation,
)

__all__ = [
    "EscalationTrackingORM",
    "EscalationRepositoryInterface",
    "SQLAlchemyEscalationRepository",
    "EscalationOutcome",
    "EscalationTracking",
    "EscalationDecision",
    "EscalationTracker",
    "exceeds_threshold",
    "needs_escalation",
]
