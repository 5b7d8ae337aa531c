"""Notifications feature - scheduled PR notifications and escalations."""

from .executor import JobExecutor
from .filters import apply_filters, describe_filters, validate_filters
from .formatting import (
    DiscordFormatter,
    NotificationFormatter,
    SlackFormatter,
    categorize,
    get_formatter,
)
from .orchestrator import process_scheduled_notifications
from .router import router as notifications_router
from .schemas import TickSummary
from .stores import NotificationStores, StoresFactory, sqlalchemy_stores

__all__ = [
    "JobExecutor",
    "apply_filters",
    "describe_filters",
    "validate_filters",
    "DiscordFormatter",
    "NotificationFormatter",
    "SlackFormatter",
    "categorize",
    "get_formatter",
    "process_scheduled_notifications",
    "notifications_router",
    "TickSummary",
    "NotificationStores",
    "StoresFactory",
    "sqlalchemy_stores",
]
