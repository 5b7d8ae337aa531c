"""Slack Web API client."""

from typing import Any, Dict, Optional

import httpx

from prnudge.core.config import Settings

from .base import MessagingProviderClient
from .errors import ProviderError, RateLimitError, TokenExpiredError
from .models import RenderedMessage, TokenSet

AUTH_ERRORS = {"invalid_auth", "token_revoked", "token_expired", "not_authed"}


class SlackClient(MessagingProviderClient):
    """Posts notifications with ``chat.postMessage``.

    Slack answers most failures with HTTP 200 and ``{"ok": false}``, so the
    ``error`` field is mapped to typed errors here.
    """

    provider = "slack"

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings):
        super().__init__(http_client, settings, settings.slack_api_url)

    async def send_message(
        self,
        access_token: str,
        channel_id: str,
        message: RenderedMessage,
        webhook_url: Optional[str] = None,
    ) -> None:
        payload: Dict[str, Any] = {
            "channel": channel_id,
            "text": message.text,
            "unfurl_links": False,
        }
        if message.blocks:
            payload["blocks"] = message.blocks

        if webhook_url:
            # Incoming webhooks reply with a plain "ok" body
            await self.request("POST", webhook_url, json=payload)
            return

        data = await self.request(
            "POST",
            "/chat.postMessage",
            headers={"Authorization": f"Bearer {access_token}"},
            json=payload,
        )
        self._check_ok(data)

    def _check_ok(self, data: Any) -> None:
        if not isinstance(data, dict):
            data = {}
        if data.get("ok"):
            return
        error = data.get("error", "unknown_error")
        if error in AUTH_ERRORS:
            raise TokenExpiredError(
                "Slack token expired or invalid",
                provider=self.provider,
                response_data=data,
            )
        if error == "ratelimited" or error == "rate_limited":
            raise RateLimitError(
                "Slack API rate limit exceeded",
                provider=self.provider,
                status_code=429,
                response_data=data,
            )
        raise ProviderError(
            f"Slack API error: {error}", provider=self.provider, response_data=data
        )

    async def refresh_token(self, refresh_token: str) -> Optional[TokenSet]:
        """Slack bot tokens do not expire unless token rotation is enabled."""
        return None
