"""Provider capability contracts.

Git providers fetch open pull requests; messaging providers deliver rendered
notifications. Both may exchange a refresh token for a new access token.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import httpx

from prnudge.core.config import Settings

from .http import ProviderHTTPClient
from .models import PullRequest, PullRequestFilters, RenderedMessage, TokenSet


class GitProviderClient(ProviderHTTPClient, ABC):
    """Fetches open pull requests from a git hosting provider."""

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings, base_url: str):
        super().__init__(http_client, base_url)
        self.settings = settings

    @abstractmethod
    async def fetch_pull_requests(
        self,
        access_token: str,
        repositories: List[str],
        filters: Optional[PullRequestFilters] = None,
    ) -> List[PullRequest]:
        """Fetch open pull requests for the given repositories.

        :param access_token: OAuth access token of the connection
        :param repositories: Repository full names (``owner/name``)
        :param filters: Optional filter hints the provider may use to skip work
        :returns: Normalized pull requests, in provider order per repository
        """
        pass

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> Optional[TokenSet]:
        """Exchange a refresh token.

        :returns: New token set, or None when the provider's tokens never expire
        """
        pass


class MessagingProviderClient(ProviderHTTPClient, ABC):
    """Delivers rendered notifications to a chat channel."""

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings, base_url: str):
        super().__init__(http_client, base_url)
        self.settings = settings

    @abstractmethod
    async def send_message(
        self,
        access_token: str,
        channel_id: str,
        message: RenderedMessage,
        webhook_url: Optional[str] = None,
    ) -> None:
        """Post a message to a channel.

        :param access_token: OAuth/bot token of the connection
        :param channel_id: Provider channel identifier
        :param message: Rendered notification
        :param webhook_url: Incoming webhook, used instead of the API when set
        """
        pass

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> Optional[TokenSet]:
        """Exchange a refresh token.

        :returns: New token set, or None when the provider's tokens never expire
        """
        pass
