"""
Provider clients for git hosting and chat platforms.

The engine only talks to ``ProviderGateway``; concrete clients are selected by
provider type through ``ProviderRegistry``.
"""

from .base import GitProviderClient, MessagingProviderClient
from .errors import (
    ProviderError,
    TokenExpiredError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    ProviderTimeoutError,
    ProviderConnectionError,
)
from .gateway import ProviderGateway, narrow_repositories
from .models import PullRequest, PullRequestFilters, RenderedMessage, TokenSet
from .registry import ProviderRegistry

__all__ = [
    "GitProviderClient",
    "MessagingProviderClient",
    "ProviderError",
    "TokenExpiredError",
    "ForbiddenError",
    "NotFoundError",
    "RateLimitError",
    "ServiceUnavailableError",
    "ProviderTimeoutError",
    "ProviderConnectionError",
    "ProviderGateway",
    "narrow_repositories",
    "PullRequest",
    "PullRequestFilters",
    "RenderedMessage",
    "TokenSet",
    "ProviderRegistry",
]
