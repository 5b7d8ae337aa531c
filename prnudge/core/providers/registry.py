"""Provider type to client class lookup."""

from typing import Dict, Optional, Type

import httpx

from prnudge.core.config import Settings
from prnudge.core.enums import GitProviderType, MessagingProviderType
from prnudge.core.exceptions import UnsupportedProviderError

from .base import GitProviderClient, MessagingProviderClient
from .discord import DiscordClient
from .github import GitHubClient
from .gitlab import GitLabClient
from .slack import SlackClient

GIT_PROVIDERS: Dict[GitProviderType, Type[GitProviderClient]] = {
    GitProviderType.GITHUB: GitHubClient,
    GitProviderType.GITLAB: GitLabClient,
}

MESSAGING_PROVIDERS: Dict[MessagingProviderType, Type[MessagingProviderClient]] = {
    MessagingProviderType.SLACK: SlackClient,
    MessagingProviderType.DISCORD: DiscordClient,
}


class ProviderRegistry:
    """Builds one client instance per provider type on first use."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        git_providers: Optional[Dict[GitProviderType, Type[GitProviderClient]]] = None,
        messaging_providers: Optional[
            Dict[MessagingProviderType, Type[MessagingProviderClient]]
        ] = None,
    ):
        self._http = http_client
        self._settings = settings
        self._git_classes = git_providers if git_providers is not None else GIT_PROVIDERS
        self._messaging_classes = (
            messaging_providers if messaging_providers is not None else MESSAGING_PROVIDERS
        )
        self._git: Dict[GitProviderType, GitProviderClient] = {}
        self._messaging: Dict[MessagingProviderType, MessagingProviderClient] = {}

    def git(self, provider: GitProviderType) -> GitProviderClient:
        """Return the git client for ``provider``.

        :raises UnsupportedProviderError: no implementation is registered
        """
        provider = GitProviderType(provider)
        if provider not in self._git:
            client_class = self._git_classes.get(provider)
            if client_class is None:
                raise UnsupportedProviderError(provider.value, "git")
            self._git[provider] = client_class(self._http, self._settings)
        return self._git[provider]

    def messaging(self, provider: MessagingProviderType) -> MessagingProviderClient:
        """Return the messaging client for ``provider``.

        :raises UnsupportedProviderError: no implementation is registered
        """
        provider = MessagingProviderType(provider)
        if provider not in self._messaging:
            client_class = self._messaging_classes.get(provider)
            if client_class is None:
                raise UnsupportedProviderError(provider.value, "messaging")
            self._messaging[provider] = client_class(self._http, self._settings)
        return self._messaging[provider]
