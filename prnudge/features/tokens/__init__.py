"""Tokens feature - scheduled OAuth token refresh."""

from .refresh import refresh_expiring_tokens
from .router import router as tokens_router
from .schemas import TokenRefreshSummary

__all__ = [
    "refresh_expiring_tokens",
    "tokens_router",
    "TokenRefreshSummary",
]
