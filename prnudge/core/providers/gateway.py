"""
Provider Dispatch Gateway.

Single entry point the engine uses to talk to git and chat providers. It owns
the pooled HTTP client for the duration of a tick, picks the client class by
persisted provider type and bounds every call with
``provider_timeout_seconds``.
"""

import asyncio
from typing import Awaitable, List, Optional, TypeVar

import httpx
import structlog

from prnudge.core.config import Settings, get_global_settings
from prnudge.core.enums import GitProviderType, MessagingProviderType

from .errors import ProviderTimeoutError
from .http import build_http_client
from .models import PullRequest, PullRequestFilters, RenderedMessage, TokenSet
from .registry import ProviderRegistry

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def narrow_repositories(
    repositories: List[str], filters: Optional[PullRequestFilters]
) -> List[str]:
    """Intersect the schedule's repositories with the filter allow-list.

    Order of ``repositories`` is preserved. No allow-list means no narrowing.
    """
    if filters is None or not filters.repositories:
        return list(repositories)
    allowed = set(filters.repositories)
    return [repo for repo in repositories if repo in allowed]


class ProviderGateway:
    """Async context manager wrapping provider clients for one tick.

    Example:
        async with ProviderGateway() as gateway:
            prs = await gateway.fetch_pull_requests(GitProviderType.GITHUB, token, repos)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        registry: Optional[ProviderRegistry] = None,
    ):
        self.settings = settings or get_global_settings()
        self.timeout = self.settings.provider_timeout_seconds
        self._owns_http = http_client is None
        self._http = http_client or build_http_client(self.timeout)
        self.registry = registry or ProviderRegistry(self._http, self.settings)

    async def __aenter__(self) -> "ProviderGateway":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if the gateway created it."""
        if self._owns_http:
            await self._http.aclose()

    async def _bounded(self, awaitable: Awaitable[T], provider: str, operation: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.warning(
                "Provider call timed out",
                provider=provider,
                operation=operation,
                timeout_seconds=self.timeout,
            )
            raise ProviderTimeoutError(
                f"{operation} exceeded {self.timeout}s", provider=provider
            ) from e

    async def fetch_pull_requests(
        self,
        provider: GitProviderType,
        access_token: str,
        repositories: List[str],
        filters: Optional[PullRequestFilters] = None,
    ) -> List[PullRequest]:
        """Fetch open pull requests, restricted to the filter's repository allow-list."""
        client = self.registry.git(provider)
        repos = narrow_repositories(repositories, filters)
        if not repos:
            return []
        return await self._bounded(
            client.fetch_pull_requests(access_token, repos, filters),
            client.provider,
            "fetch_pull_requests",
        )

    async def send_message(
        self,
        provider: MessagingProviderType,
        access_token: str,
        channel_id: str,
        message: RenderedMessage,
        webhook_url: Optional[str] = None,
    ) -> None:
        """Deliver a rendered message to a channel."""
        client = self.registry.messaging(provider)
        await self._bounded(
            client.send_message(access_token, channel_id, message, webhook_url),
            client.provider,
            "send_message",
        )

    async def refresh_git_token(
        self, provider: GitProviderType, refresh_token: str
    ) -> Optional[TokenSet]:
        """Exchange a git connection refresh token. None means nothing to refresh."""
        client = self.registry.git(provider)
        return await self._bounded(
            client.refresh_token(refresh_token), client.provider, "refresh_token"
        )

    async def refresh_messaging_token(
        self, provider: MessagingProviderType, refresh_token: str
    ) -> Optional[TokenSet]:
        """Exchange a messaging connection refresh token. None means nothing to refresh."""
        client = self.registry.messaging(provider)
        return await self._bounded(
            client.refresh_token(refresh_token), client.provider, "refresh_token"
        )
