"""
Job Executor.

Runs one due schedule: resolve connections, fetch and filter pull requests,
send the regular notification, run escalations, advance ``last_executed_at``
and write exactly one execution log row.
"""

import time
from collections import defaultdict
from datetime import datetime, timedelta
from typing import List, Optional

import structlog
from structlog import contextvars as structlog_contextvars

from prnudge.core.config import Settings
from prnudge.core.enums import ExecutionStatus
from prnudge.core.exceptions import ProviderNotFoundError
from prnudge.core.providers.gateway import ProviderGateway
from prnudge.core.providers.models import PullRequest
from prnudge.features.connections.schemas import GitConnection, MessagingConnection
from prnudge.features.escalations.tracker import EscalationTracker
from prnudge.features.schedules.schemas import (
    ExecutionLogCreate,
    ExecutionResult,
    Schedule,
)

from .filters import apply_filters, describe_filters, validate_filters
from .formatting import get_formatter
from .stores import NotificationStores, StoresFactory

logger = structlog.get_logger(__name__)


class JobExecutor:
    """Executes a single schedule run.

    Errors inside the run never escape ``run()``; they end up in the
    execution log and in the returned result.
    """

    def __init__(
        self,
        schedule: Schedule,
        gateway: ProviderGateway,
        stores_factory: StoresFactory,
        settings: Settings,
        now: datetime,
    ):
        """Initialize the executor.

        Args:
            schedule: Due schedule to run
            gateway: Provider gateway shared by the tick
            stores_factory: Opens the repositories (one session per run)
            settings: Application settings
            now: Tick time; used for ages, escalation state and last_executed_at
        """
        self.schedule = schedule
        self.gateway = gateway
        self.stores_factory = stores_factory
        self.settings = settings
        self.now = now
        self.metrics = defaultdict(int)
        self.metrics.update(
            {
                "pull_requests_found": 0,
                "messages_sent": 0,
                "escalations_triggered": 0,
            }
        )

    async def run(self) -> ExecutionResult:
        """Execute the schedule with error handling and logging."""
        started = time.perf_counter()
        status = ExecutionStatus.ERROR
        error_message: Optional[str] = None

        structlog_contextvars.bind_contextvars(
            schedule_id=str(self.schedule.id),
            schedule_name=self.schedule.name,
        )
        try:
            async with self.stores_factory() as stores:
                try:
                    escalation_error = await self.execute(stores)
                    await stores.schedules.mark_executed(self.schedule.id, self.now)
                except Exception as job_error:
                    error_message = self.handle_error(job_error)
                    await self._reset(stores)
                else:
                    if escalation_error:
                        status = ExecutionStatus.PARTIAL
                        error_message = escalation_error
                    else:
                        status = ExecutionStatus.SUCCESS
                finally:
                    await self.log_completion(
                        stores, status, error_message, self._elapsed_ms(started)
                    )
        except Exception as session_error:
            # The stores could not be opened; nothing was executed or logged
            error_message = self.handle_error(session_error)
            status = ExecutionStatus.ERROR
        finally:
            structlog_contextvars.clear_contextvars()

        return ExecutionResult(
            schedule_id=self.schedule.id,
            schedule_name=self.schedule.name,
            status=status,
            pull_requests_found=self.metrics["pull_requests_found"],
            messages_sent=self.metrics["messages_sent"],
            escalations_triggered=self.metrics["escalations_triggered"],
            error_message=error_message,
            execution_time_ms=self._elapsed_ms(started),
        )

    async def execute(self, stores: NotificationStores) -> Optional[str]:
        """Run the notification steps.

        :returns: Error text of a failed escalation step after the regular
            notification went out (partial success), otherwise None
        :raises Exception: any failure that makes the run an error
        """
        schedule = self.schedule
        git, messaging, escalation = await self._resolve_connections(stores)

        filter_problems = validate_filters(schedule.pr_filters)
        if filter_problems:
            logger.warning("Schedule has invalid filters", problems=filter_problems)

        pull_requests = await self.gateway.fetch_pull_requests(
            git.provider,
            git.access_token,
            schedule.repositories,
            schedule.pr_filters,
        )
        self.metrics["pull_requests_found"] = len(pull_requests)

        filtered = apply_filters(pull_requests, schedule.pr_filters, self.now)
        logger.info(
            "Pull requests fetched",
            fetched=len(pull_requests),
            after_filters=len(filtered),
            filters=describe_filters(schedule.pr_filters),
        )

        if filtered or schedule.send_when_empty:
            await self._send(messaging, schedule.messaging_channel_id, filtered)
            self.metrics["messages_sent"] += 1

        if escalation is None:
            return None

        try:
            await self._escalate(stores, escalation, pull_requests, filtered)
        except Exception as e:
            if self.metrics["messages_sent"] == 0:
                raise
            error_message = self.handle_error(e)
            logger.warning("Escalation step failed after notification was sent")
            await self._reset(stores)
            return f"Escalation failed: {error_message}"

        return None

    async def _resolve_connections(
        self, stores: NotificationStores
    ) -> tuple[GitConnection, MessagingConnection, Optional[MessagingConnection]]:
        schedule = self.schedule

        git = await stores.connections.get_git_provider(schedule.git_provider_id)
        if git is None:
            raise ProviderNotFoundError("git", schedule.git_provider_id, schedule.name)

        messaging = await stores.connections.get_messaging_provider(
            schedule.messaging_provider_id
        )
        if messaging is None:
            raise ProviderNotFoundError(
                "messaging", schedule.messaging_provider_id, schedule.name
            )

        escalation = None
        if schedule.escalation_enabled:
            escalation = await stores.connections.get_messaging_provider(
                schedule.escalation_provider_id
            )
            if escalation is None:
                raise ProviderNotFoundError(
                    "escalation", schedule.escalation_provider_id, schedule.name
                )

        return git, messaging, escalation

    async def _send(
        self,
        connection: MessagingConnection,
        channel_id: str,
        pull_requests: List[PullRequest],
        escalation_days: Optional[int] = None,
    ) -> None:
        formatter = get_formatter(connection.provider, self.settings)
        message = formatter.render(
            pull_requests, self.schedule.name, self.now, escalation_days
        )
        await self.gateway.send_message(
            connection.provider,
            connection.access_token,
            channel_id,
            message,
            connection.webhook_url,
        )
        logger.info(
            "Notification sent",
            provider=connection.provider.value,
            kind="escalation" if escalation_days is not None else "regular",
            pull_requests=message.pull_request_count,
            truncated=message.truncated,
            empty=message.is_empty,
        )

    async def _escalate(
        self,
        stores: NotificationStores,
        connection: MessagingConnection,
        pull_requests: List[PullRequest],
        filtered: List[PullRequest],
    ) -> None:
        schedule = self.schedule
        tracker = EscalationTracker(
            stores.escalations,
            timedelta(days=self.settings.re_escalation_interval_days),
        )

        async def send(escalated: List[PullRequest]) -> None:
            await self._send(
                connection,
                schedule.escalation_channel_id,
                escalated,
                escalation_days=schedule.escalation_days,
            )
            # Counted once delivered, even if tracking writes fail afterwards
            self.metrics["messages_sent"] += 1
            self.metrics["escalations_triggered"] = len(escalated)

        await tracker.process(
            schedule.id,
            schedule.escalation_days,
            filtered,
            [pr.id for pr in pull_requests],
            self.now,
            send,
        )

    def handle_error(self, error: Exception) -> str:
        """Log a run error and return the formatted error message."""
        error_message = f"{type(error).__name__}: {str(error)}"
        logger.error(
            "Schedule execution failed",
            error=error_message,
            error_type=type(error).__name__,
        )
        return error_message

    async def log_completion(
        self,
        stores: NotificationStores,
        status: ExecutionStatus,
        error_message: Optional[str],
        execution_time_ms: int,
    ) -> None:
        """Write the execution log row. Failures are logged, never raised."""
        entry = ExecutionLogCreate(
            schedule_id=self.schedule.id,
            executed_at=self.now,
            status=status,
            pull_requests_found=self.metrics["pull_requests_found"],
            messages_sent=self.metrics["messages_sent"],
            escalations_triggered=self.metrics["escalations_triggered"],
            error_message=error_message,
            execution_time_ms=execution_time_ms,
        )
        try:
            await stores.schedules.create_execution_log(entry)
        except Exception as e:
            logger.error(
                "Failed to write execution log",
                status=status.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._reset(stores)
            return

        logger.info(
            "Schedule execution completed",
            status=status.value,
            pull_requests_found=entry.pull_requests_found,
            messages_sent=entry.messages_sent,
            escalations_triggered=entry.escalations_triggered,
            execution_time_ms=execution_time_ms,
        )

    @staticmethod
    async def _reset(stores: NotificationStores) -> None:
        try:
            await stores.rollback()
        except Exception as e:
            logger.warning(
                "Session rollback failed",
                error=str(e),
                error_type=type(e).__name__,
            )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)
