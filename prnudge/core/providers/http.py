"""Shared httpx plumbing for provider clients.

No retries happen here; a failed call fails the schedule run and the next due
tick picks it up again.
"""

from typing import Any, Dict, Optional, Tuple

import httpx
import structlog

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

logger = structlog.get_logger(__name__)

USER_AGENT = "prnudge/0.1"


def build_http_client(timeout_seconds: float) -> httpx.AsyncClient:
    """Create the pooled client shared by all providers during one tick."""
    timeout = httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 5.0))
    limits = httpx.Limits(max_keepalive_connections=20, max_connections=20)
    return httpx.AsyncClient(
        timeout=timeout,
        limits=limits,
        headers={"User-Agent": USER_AGENT},
    )


class ProviderHTTPClient:
    """Base class for provider clients talking JSON over HTTP."""

    provider: str = "unknown"

    def __init__(self, http_client: httpx.AsyncClient, base_url: str):
        """
        Initialize provider client.

        Args:
            http_client: Shared async client (owned by the caller)
            base_url: API root, without trailing slash
        """
        self._http = http_client
        self.base_url = base_url.rstrip("/")

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Raise a typed ProviderError for non-2xx responses."""
        status = response.status_code
        if status < 400:
            return

        data = self._safe_json(response)
        detail = self._error_detail(data) or response.reason_phrase

        if status == 401:
            raise TokenExpiredError(
                f"Token expired or invalid: {detail}",
                provider=self.provider,
                status_code=status,
                response_data=data,
            )
        if status == 403:
            # GitHub reports exhausted primary rate limits as 403
            if response.headers.get("X-RateLimit-Remaining") == "0":
                raise RateLimitError(
                    "Rate limit exceeded",
                    provider=self.provider,
                    status_code=status,
                    response_data=data,
                    retry_after=self._retry_after(response),
                )
            raise ForbiddenError(
                f"Access forbidden: {detail}",
                provider=self.provider,
                status_code=status,
                response_data=data,
            )
        if status == 404:
            raise NotFoundError(
                f"Resource not found: {detail}",
                provider=self.provider,
                status_code=status,
                response_data=data,
            )
        if status == 429:
            raise RateLimitError(
                "Rate limit exceeded",
                provider=self.provider,
                status_code=status,
                response_data=data,
                retry_after=self._retry_after(response),
            )
        if status >= 500:
            raise ServiceUnavailableError(
                f"Server error: {detail}",
                provider=self.provider,
                status_code=status,
                response_data=data,
            )
        raise ProviderError(
            f"Request failed: {detail}",
            provider=self.provider,
            status_code=status,
            response_data=data,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        data: Optional[Dict[str, Any]] = None,
        auth: Optional[Tuple[str, str]] = None,
    ) -> Any:
        """Execute one HTTP request and return the decoded JSON body.

        Raises:
            ProviderError: typed subclass for HTTP, timeout and network failures
        """
        url = self._url(path)
        try:
            response = await self._http.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                data=data,
                auth=auth,
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"Request timed out: {method} {url}", provider=self.provider
            ) from e
        except httpx.RequestError as e:
            raise ProviderConnectionError(
                f"Request failed: {type(e).__name__}: {e}", provider=self.provider
            ) from e

        logger.debug(
            "Provider API response",
            provider=self.provider,
            method=method,
            url=url,
            status=response.status_code,
        )

        self._raise_for_status(response)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            # Webhook endpoints answer with plain text such as "ok"
            return response.text

    @staticmethod
    def _safe_json(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {"body": data}

    @staticmethod
    def _error_detail(data: Dict[str, Any]) -> Optional[str]:
        for key in ("message", "error_description", "error"):
            value = data.get(key)
            if value:
                return str(value)
        return None

    @staticmethod
    def _retry_after(response: httpx.Response) -> Optional[float]:
        value = response.headers.get("Retry-After")
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            return None
