"""Jobs feature - in-process scheduling of the tick and the token sweep."""

from .scheduler import (
    get_scheduler,
    run_notification_tick,
    run_token_refresh,
    shutdown_scheduler,
    start_scheduler,
)

__all__ = [
    "get_scheduler",
    "run_notification_tick",
    "run_token_refresh",
    "shutdown_scheduler",
    "start_scheduler",
]
