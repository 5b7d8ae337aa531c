"""
Token Refresh Sweep.

Finds connections whose access token expires within the lookahead window and
exchanges their refresh tokens. Records are processed one at a time; a
failing record is reported in ``errors`` and never blocks the rest.
"""

import time
from datetime import datetime, timedelta
from typing import List, Optional, Union

import structlog

from prnudge.core.config import Settings, get_global_settings
from prnudge.core.providers.gateway import ProviderGateway
from prnudge.core.providers.models import TokenSet
from prnudge.core.timeutils import utcnow
from prnudge.features.connections.schemas import (
    ConnectionKind,
    GitConnection,
    MessagingConnection,
)
from prnudge.features.notifications.stores import (
    NotificationStores,
    StoresFactory,
    sqlalchemy_stores,
)

from .schemas import TokenRefreshSummary

logger = structlog.get_logger(__name__)

Connection = Union[GitConnection, MessagingConnection]


async def refresh_expiring_tokens(
    settings: Optional[Settings] = None,
    stores_factory: Optional[StoresFactory] = None,
    gateway: Optional[ProviderGateway] = None,
    now: Optional[datetime] = None,
) -> TokenRefreshSummary:
    """Refresh every git and messaging token expiring within the lookahead window.

    Args:
        settings: Application settings (global settings when omitted)
        stores_factory: Repository factory (SQLAlchemy when omitted)
        gateway: Provider gateway (a new one owning its HTTP client when omitted)
        now: Reference time (current UTC time when omitted)

    Returns:
        TokenRefreshSummary with per-kind counts and per-record errors
    """
    settings = settings or get_global_settings()
    stores_factory = stores_factory or sqlalchemy_stores
    now = now or utcnow()
    started = time.perf_counter()
    expiring_before = now + timedelta(minutes=settings.token_refresh_lookahead_minutes)

    summary = TokenRefreshSummary()
    logger.info("Starting token refresh sweep", expiring_before=expiring_before.isoformat())

    try:
        async with stores_factory() as stores, (gateway or ProviderGateway(settings)) as gw:
            git_connections = await stores.connections.list_expiring_git_providers(
                expiring_before
            )
            logger.info("Expiring git connections found", count=len(git_connections))
            for connection in git_connections:
                if await _refresh_one(
                    stores, gw, ConnectionKind.GIT, connection, now, summary.errors
                ):
                    summary.git_providers_refreshed += 1

            messaging_connections = (
                await stores.connections.list_expiring_messaging_providers(
                    expiring_before
                )
            )
            logger.info(
                "Expiring messaging connections found", count=len(messaging_connections)
            )
            for connection in messaging_connections:
                if await _refresh_one(
                    stores, gw, ConnectionKind.MESSAGING, connection, now, summary.errors
                ):
                    summary.messaging_providers_refreshed += 1
    except Exception as e:
        logger.error(
            "Token refresh sweep failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        summary.success = False
        summary.error = f"{type(e).__name__}: {str(e)}"

    summary.execution_time_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        "Token refresh sweep completed",
        git_providers_refreshed=summary.git_providers_refreshed,
        messaging_providers_refreshed=summary.messaging_providers_refreshed,
        errors=len(summary.errors),
        execution_time_ms=summary.execution_time_ms,
    )
    return summary


async def _refresh_one(
    stores: NotificationStores,
    gateway: ProviderGateway,
    kind: ConnectionKind,
    connection: Connection,
    now: datetime,
    errors: List[str],
) -> bool:
    """Refresh a single connection; failures are appended to ``errors``."""
    try:
        tokens: Optional[TokenSet]
        if kind == ConnectionKind.GIT:
            tokens = await gateway.refresh_git_token(
                connection.provider, connection.refresh_token
            )
        else:
            tokens = await gateway.refresh_messaging_token(
                connection.provider, connection.refresh_token
            )

        if tokens is not None:
            await stores.connections.update_tokens(kind, connection.id, tokens, now)

        logger.info(
            "Connection token refreshed",
            kind=kind.value,
            connection_id=str(connection.id),
            provider=connection.provider.value,
            rotated=tokens is not None,
        )
        return True

    except Exception as e:
        message = (
            f"Error refreshing {kind.value} provider {connection.id} "
            f"({connection.provider.value}): {type(e).__name__}: {str(e)}"
        )
        errors.append(message)
        logger.error(
            "Connection token refresh failed",
            kind=kind.value,
            connection_id=str(connection.id),
            provider=connection.provider.value,
            error=str(e),
            error_type=type(e).__name__,
        )
        await stores.rollback()
        return False
