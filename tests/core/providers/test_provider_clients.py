"""
Tests for the git and chat provider clients against a mocked transport.
"""

import json

import httpx
import pytest

from prnudge.core.providers.discord import DISCORD_OAUTH_TOKEN_URL, DiscordClient
from prnudge.core.providers.errors import (
    ForbiddenError,
    NotFoundError,
    ProviderConnectionError,
    ProviderError,
    RateLimitError,
    ServiceUnavailableError,
    TokenExpiredError,
)
from prnudge.core.providers.github import GitHubClient
from prnudge.core.providers.gitlab import GitLabClient
from prnudge.core.providers.models import RenderedMessage
from prnudge.core.providers.slack import SlackClient


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def github_pull(number, **overrides):
    item = {
        "id": 1000 + number,
        "number": number,
        "title": f"PR {number}",
        "user": {"login": "alice"},
        "html_url": f"https://github.com/acme/api/pull/{number}",
        "created_at": "2026-02-25T10:00:00Z",
        "labels": [{"name": "bug"}],
        "requested_reviewers": [{"login": "carol"}],
    }
    item.update(overrides)
    return item


class TestGitHubClient:
    """Test cases for GitHubClient."""

    @pytest.mark.asyncio
    async def test_fetch_normalizes_pull_requests(self, settings):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/repos/acme/api/pulls":
                return httpx.Response(200, json=[github_pull(1), github_pull(2)])
            if request.url.path == "/repos/acme/api/pulls/1/reviews":
                return httpx.Response(
                    200,
                    json=[
                        {"user": {"login": "bob"}, "state": "CHANGES_REQUESTED"},
                        {"user": {"login": "bob"}, "state": "APPROVED"},
                        {"user": {"login": "dan"}, "state": "COMMENTED"},
                    ],
                )
            if request.url.path == "/repos/acme/api/pulls/2/reviews":
                return httpx.Response(
                    200, json=[{"user": {"login": "bob"}, "state": "CHANGES_REQUESTED"}]
                )
            return httpx.Response(404)

        async with client_for(handler) as http:
            prs = await GitHubClient(http, settings).fetch_pull_requests(
                "gh-token", ["acme/api"]
            )

        assert [pr.id for pr in prs] == ["1001", "1002"]
        first, second = prs
        assert first.author == "alice"
        assert first.labels == ["bug"]
        assert first.reviewers == ["carol", "bob"]
        assert first.has_approvals
        assert not first.has_changes_requested
        assert second.has_changes_requested
        assert not second.has_approvals
        assert first.additions is None and first.deletions is None
        assert seen[0].headers["Authorization"] == "Bearer gh-token"
        assert seen[0].url.params["state"] == "open"

    @pytest.mark.asyncio
    async def test_refresh_token_is_noop(self, settings):
        async with client_for(lambda request: httpx.Response(500)) as http:
            assert await GitHubClient(http, settings).refresh_token("x") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,headers,error_class",
        [
            (401, {}, TokenExpiredError),
            (403, {}, ForbiddenError),
            (403, {"X-RateLimit-Remaining": "0"}, RateLimitError),
            (404, {}, NotFoundError),
            (429, {"Retry-After": "30"}, RateLimitError),
            (502, {}, ServiceUnavailableError),
            (422, {}, ProviderError),
        ],
    )
    async def test_status_codes_map_to_errors(self, settings, status, headers, error_class):
        def handler(request):
            return httpx.Response(status, headers=headers, json={"message": "nope"})

        async with client_for(handler) as http:
            with pytest.raises(error_class) as excinfo:
                await GitHubClient(http, settings).fetch_pull_requests("t", ["acme/api"])

        assert excinfo.value.status_code == status
        assert excinfo.value.provider == "github"

    @pytest.mark.asyncio
    async def test_retry_after_is_parsed(self, settings):
        def handler(request):
            return httpx.Response(429, headers={"Retry-After": "12"})

        async with client_for(handler) as http:
            with pytest.raises(RateLimitError) as excinfo:
                await GitHubClient(http, settings).fetch_pull_requests("t", ["acme/api"])

        assert excinfo.value.retry_after == 12.0

    @pytest.mark.asyncio
    async def test_network_errors_are_wrapped(self, settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with client_for(handler) as http:
            with pytest.raises(ProviderConnectionError):
                await GitHubClient(http, settings).fetch_pull_requests("t", ["acme/api"])


class TestGitLabClient:
    """Test cases for GitLabClient."""

    @pytest.mark.asyncio
    async def test_fetch_merge_requests(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if path.endswith("/approvals"):
                approved = "/merge_requests/1/" in path
                return httpx.Response(
                    200,
                    json={"approved_by": [{"user": {"username": "bob"}}] if approved else []},
                )
            if path.endswith("/notes"):
                if "/merge_requests/2/" in path:
                    return httpx.Response(
                        200, json=[{"body": "Please fix the tests", "system": False}]
                    )
                return httpx.Response(
                    200, json=[{"body": "needs changes", "system": True}]
                )
            if path.endswith("/merge_requests"):
                return httpx.Response(
                    200,
                    json=[
                        {
                            "id": 501,
                            "iid": 1,
                            "title": "Add cache",
                            "author": {"username": "alice"},
                            "web_url": "https://gitlab.com/acme/api/-/merge_requests/1",
                            "created_at": "2026-02-20T08:00:00Z",
                            "labels": ["backend"],
                            "reviewers": [{"username": "bob"}],
                        },
                        {
                            "id": 502,
                            "iid": 2,
                            "title": "Fix typo",
                            "author": {"username": "eve"},
                            "web_url": "https://gitlab.com/acme/api/-/merge_requests/2",
                            "created_at": "2026-02-21T08:00:00Z",
                        },
                    ],
                )
            return httpx.Response(404)

        async with client_for(handler) as http:
            prs = await GitLabClient(http, settings).fetch_pull_requests(
                "gl-token", ["acme/api"]
            )

        assert [pr.id for pr in prs] == ["501", "502"]
        assert prs[0].has_approvals and not prs[0].has_changes_requested
        assert prs[0].reviewers == ["bob"]
        assert prs[1].has_changes_requested and not prs[1].has_approvals
        assert prs[1].repository == "acme/api"

    @pytest.mark.asyncio
    async def test_refresh_token(self, settings):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["body"] = request.content.decode()
            return httpx.Response(
                200,
                json={"access_token": "new", "refresh_token": "r2", "expires_in": 7200},
            )

        async with client_for(handler) as http:
            tokens = await GitLabClient(http, settings).refresh_token("r1")

        assert tokens.access_token == "new"
        assert tokens.refresh_token == "r2"
        assert tokens.expires_in == 7200
        assert captured["url"] == "https://gitlab.com/oauth/token"
        assert "grant_type=refresh_token" in captured["body"]
        assert "refresh_token=r1" in captured["body"]

    @pytest.mark.asyncio
    async def test_refresh_without_access_token_fails(self, settings):
        async with client_for(lambda request: httpx.Response(200, json={})) as http:
            with pytest.raises(ProviderError):
                await GitLabClient(http, settings).refresh_token("r1")


class TestSlackClient:
    """Test cases for SlackClient."""

    @pytest.mark.asyncio
    async def test_post_message(self, settings):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["auth"] = request.headers["Authorization"]
            captured["payload"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        message = RenderedMessage(text="hello", blocks=[{"type": "divider"}])
        async with client_for(handler) as http:
            await SlackClient(http, settings).send_message("xoxb", "C1", message)

        assert captured["path"] == "/api/chat.postMessage"
        assert captured["auth"] == "Bearer xoxb"
        assert captured["payload"]["channel"] == "C1"
        assert captured["payload"]["blocks"] == [{"type": "divider"}]

    @pytest.mark.asyncio
    async def test_webhook_plain_ok_body(self, settings):
        urls = []

        def handler(request):
            urls.append(str(request.url))
            return httpx.Response(200, text="ok")

        async with client_for(handler) as http:
            await SlackClient(http, settings).send_message(
                "xoxb", "C1", RenderedMessage(text="hi"), "https://hooks.slack.com/x"
            )

        assert urls == ["https://hooks.slack.com/x"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,error_class",
        [
            ("invalid_auth", TokenExpiredError),
            ("ratelimited", RateLimitError),
            ("channel_not_found", ProviderError),
        ],
    )
    async def test_ok_false_maps_to_errors(self, settings, error, error_class):
        def handler(request):
            return httpx.Response(200, json={"ok": False, "error": error})

        async with client_for(handler) as http:
            with pytest.raises(error_class):
                await SlackClient(http, settings).send_message(
                    "xoxb", "C1", RenderedMessage(text="hi")
                )


class TestDiscordClient:
    """Test cases for DiscordClient."""

    @pytest.mark.asyncio
    async def test_webhook_with_embeds(self, settings):
        captured = {}

        def handler(request):
            captured["payload"] = json.loads(request.content)
            return httpx.Response(204)

        message = RenderedMessage(text="📋 DIGEST (2)\nrest", embeds=[{"title": "x"}])
        async with client_for(handler) as http:
            await DiscordClient(http, settings).send_message(
                "token", "123", message, "https://discord.com/api/webhooks/1/abc"
            )

        assert captured["payload"] == {"content": "📋 DIGEST (2)", "embeds": [{"title": "x"}]}

    @pytest.mark.asyncio
    async def test_bot_api_requires_bot_token(self, settings):
        settings.discord_bot_token = ""
        async with client_for(lambda request: httpx.Response(200, json={})) as http:
            with pytest.raises(ProviderError):
                await DiscordClient(http, settings).send_message(
                    "token", "123", RenderedMessage(text="hi")
                )

    @pytest.mark.asyncio
    async def test_bot_api(self, settings):
        settings.discord_bot_token = "bot-secret"
        captured = {}

        def handler(request):
            captured["path"] = request.url.path
            captured["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"id": "1"})

        async with client_for(handler) as http:
            await DiscordClient(http, settings).send_message(
                "token", "123", RenderedMessage(text="hi")
            )

        assert captured["path"] == "/api/v10/channels/123/messages"
        assert captured["auth"] == "Bot bot-secret"

    @pytest.mark.asyncio
    async def test_refresh_token(self, settings):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["auth"] = request.headers.get("Authorization", "")
            return httpx.Response(200, json={"access_token": "new", "expires_in": 604800})

        async with client_for(handler) as http:
            tokens = await DiscordClient(http, settings).refresh_token("r1")

        assert captured["url"] == DISCORD_OAUTH_TOKEN_URL
        assert captured["auth"].startswith("Basic ")
        assert tokens.refresh_token is None
        assert tokens.expires_in == 604800
