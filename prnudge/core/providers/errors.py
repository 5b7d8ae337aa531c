"""Custom error classes for git and chat provider clients."""

from typing import Optional, Dict, Any


class ProviderError(Exception):
    """Base exception for provider API errors with status code tracking."""

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None,
        retry_after: Optional[float] = None,
    ) -> None:
        """
        Initialize ProviderError.

        Args:
            message: Error message
            provider: Provider type value (github, slack, ...)
            status_code: HTTP status code (401, 403, 404, 429, 503, etc.)
            response_data: Raw response data from API
            retry_after: Seconds to wait before retry (for 429 errors)
        """
        super().__init__(message)
        self.provider: str = provider
        self.status_code: Optional[int] = status_code
        self.response_data: Dict[str, Any] = response_data or {}
        self.retry_after: Optional[float] = retry_after
        self.message: str = message

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.status_code == 429 and self.retry_after:
            return f"{self.provider} rate limit {self.status_code}: {self.message} (Retry after: {self.retry_after}s)"
        if self.status_code:
            return f"{self.provider} API error {self.status_code}: {self.message}"
        return f"{self.provider} API error: {self.message}"


class TokenExpiredError(ProviderError):
    """Authentication error (401) - expired, revoked or invalid token."""

    pass


class ForbiddenError(ProviderError):
    """Forbidden error (403) - insufficient permissions."""

    pass


class NotFoundError(ProviderError):
    """Not found error (404) - repository or channel doesn't exist."""

    pass


class RateLimitError(ProviderError):
    """Rate limit error (429). Not retried in-process; the next tick retries."""

    pass


class ServiceUnavailableError(ProviderError):
    """Server-side error (5xx)."""

    pass


class ProviderTimeoutError(ProviderError):
    """The call did not complete within the configured timeout."""

    pass


class ProviderConnectionError(ProviderError):
    """Network-level failure before a response was received."""

    pass
