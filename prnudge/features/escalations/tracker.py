"""
Escalation Tracker.

Decides which overdue pull requests need an escalation notice for a schedule:

- a PR older than the threshold with no tracking row escalates now (count=1)
- a PR with a tracking row re-escalates only once the re-escalation interval
  has passed since its last escalation (count += 1)

Tracking rows are written only after the escalation message was delivered.
Rows for PRs that are no longer open are then garbage-collected.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional, Sequence
from uuid import UUID

import structlog

from prnudge.core.providers.models import PullRequest
from prnudge.core.timeutils import DAY, ensure_utc

from .repository import EscalationRepositoryInterface
from .schemas import EscalationOutcome, EscalationTracking

logger = structlog.get_logger(__name__)

DEFAULT_RE_ESCALATION_INTERVAL = timedelta(days=7)

EscalationSender = Callable[[List[PullRequest]], Awaitable[None]]


@dataclass
class EscalationDecision:
    """A pull request that escalates in this run and the state to persist for it."""

    pull_request: PullRequest
    tracking: EscalationTracking

    @property
    def is_first(self) -> bool:
        return self.tracking.escalation_count == 1


def exceeds_threshold(pr: PullRequest, escalation_days: int, now: datetime) -> bool:
    """Whether the PR has been open at least ``escalation_days`` full days."""
    return ensure_utc(now) - ensure_utc(pr.created_at) >= escalation_days * DAY


def needs_escalation(
    pr: PullRequest,
    escalation_days: int,
    tracking: Optional[EscalationTracking],
    now: datetime,
    re_escalation_interval: timedelta = DEFAULT_RE_ESCALATION_INTERVAL,
) -> bool:
    """Escalation rule for a single pull request."""
    if not exceeds_threshold(pr, escalation_days, now):
        return False
    if tracking is None:
        return True
    return ensure_utc(now) - ensure_utc(tracking.last_escalated_at) >= re_escalation_interval


class EscalationTracker:
    """Applies the escalation rule against persisted tracking state."""

    def __init__(
        self,
        repository: EscalationRepositoryInterface,
        re_escalation_interval: timedelta = DEFAULT_RE_ESCALATION_INTERVAL,
    ):
        self.repository = repository
        self.re_escalation_interval = re_escalation_interval

    async def plan(
        self,
        schedule_id: UUID,
        escalation_days: int,
        pull_requests: Sequence[PullRequest],
        now: datetime,
    ) -> List[EscalationDecision]:
        """Compute which PRs escalate now, without writing anything.

        :param schedule_id: Schedule identifier
        :param escalation_days: Age threshold in days
        :param pull_requests: Filtered pull requests of this run
        :param now: Reference time
        :returns: Decisions in input order
        """
        decisions: List[EscalationDecision] = []

        for pr in pull_requests:
            if not exceeds_threshold(pr, escalation_days, now):
                continue

            tracking = await self.repository.get_tracking(schedule_id, pr.id)
            if not needs_escalation(
                pr, escalation_days, tracking, now, self.re_escalation_interval
            ):
                logger.debug(
                    "Escalation cooldown active",
                    pull_request_id=pr.id,
                    last_escalated_at=tracking.last_escalated_at.isoformat()
                    if tracking
                    else None,
                )
                continue

            if tracking is None:
                new_state = EscalationTracking(
                    schedule_id=schedule_id,
                    pull_request_id=pr.id,
                    pull_request_url=pr.url,
                    first_escalated_at=now,
                    last_escalated_at=now,
                    escalation_count=1,
                )
            else:
                new_state = tracking.model_copy(
                    update={
                        "pull_request_url": pr.url,
                        "last_escalated_at": now,
                        "escalation_count": tracking.escalation_count + 1,
                    }
                )
            decisions.append(EscalationDecision(pull_request=pr, tracking=new_state))

        return decisions

    async def process(
        self,
        schedule_id: UUID,
        escalation_days: int,
        pull_requests: Sequence[PullRequest],
        active_pull_request_ids: Sequence[str],
        now: datetime,
        send: EscalationSender,
    ) -> EscalationOutcome:
        """Run one escalation pass for a schedule.

        :param schedule_id: Schedule identifier
        :param escalation_days: Age threshold in days
        :param pull_requests: Filtered pull requests (escalation candidates)
        :param active_pull_request_ids: Every open PR id from the fetch, before filtering
        :param now: Reference time
        :param send: Delivers the escalation message for the escalating PRs
        :returns: Escalated PRs and number of tracking rows collected
        :raises Exception: whatever ``send`` raises, in which case no tracking
            is written, or the first failing tracking write after a send
        """
        decisions = await self.plan(schedule_id, escalation_days, pull_requests, now)
        escalated = [decision.pull_request for decision in decisions]

        if escalated:
            await send(escalated)
            for decision in decisions:
                try:
                    await self.repository.upsert_tracking(decision.tracking)
                except Exception as e:
                    logger.error(
                        "Failed to record escalation tracking",
                        pull_request_id=decision.pull_request.id,
                        escalation_count=decision.tracking.escalation_count,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    raise

            logger.info(
                "Escalation sent",
                escalated=len(escalated),
                first_escalations=sum(1 for d in decisions if d.is_first),
                threshold_days=escalation_days,
            )

        deleted = await self.repository.delete_stale_tracking(
            schedule_id, list(active_pull_request_ids)
        )

        return EscalationOutcome(escalated=escalated, tracking_rows_deleted=deleted)
