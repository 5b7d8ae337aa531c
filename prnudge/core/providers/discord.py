"""Discord API client."""

from typing import Any, Dict, Optional

import httpx

from prnudge.core.config import Settings

from .base import MessagingProviderClient
from .errors import ProviderError
from .models import RenderedMessage, TokenSet

DISCORD_OAUTH_TOKEN_URL = "https://discord.com/api/oauth2/token"


class DiscordClient(MessagingProviderClient):
    """Posts notifications through a channel webhook or the bot API."""

    provider = "discord"

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings):
        super().__init__(http_client, settings, settings.discord_api_url)

    async def send_message(
        self,
        access_token: str,
        channel_id: str,
        message: RenderedMessage,
        webhook_url: Optional[str] = None,
    ) -> None:
        payload: Dict[str, Any] = {"content": message.text}
        if message.embeds:
            # Embeds carry the full content; keep the plain text as a header only
            payload["content"] = message.text.split("\n", 1)[0]
            payload["embeds"] = message.embeds

        if webhook_url:
            await self.request("POST", webhook_url, json=payload)
            return

        bot_token = self.settings.discord_bot_token
        if not bot_token:
            raise ProviderError(
                "Discord channel has no webhook and no bot token is configured",
                provider=self.provider,
            )
        await self.request(
            "POST",
            f"/channels/{channel_id}/messages",
            headers={"Authorization": f"Bot {bot_token}"},
            json=payload,
        )

    async def refresh_token(self, refresh_token: str) -> Optional[TokenSet]:
        """Exchange a Discord OAuth refresh token."""
        data = await self.request(
            "POST",
            DISCORD_OAUTH_TOKEN_URL,
            headers={"Accept": "application/json"},
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            auth=(self.settings.discord_client_id, self.settings.discord_client_secret),
        )
        if not data or "access_token" not in data:
            raise ProviderError(
                "Token refresh returned no access token",
                provider=self.provider,
                response_data=data if isinstance(data, dict) else None,
            )
        return TokenSet(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
        )
