"""GitHub REST API client."""

import asyncio
from typing import Any, Dict, List, Optional

import httpx
import structlog

from prnudge.core.config import Settings

from .base import GitProviderClient
from .models import PullRequest, PullRequestFilters, TokenSet

logger = structlog.get_logger(__name__)

GITHUB_API_VERSION = "2022-11-28"


class GitHubClient(GitProviderClient):
    """Fetches open pull requests and their review state from GitHub."""

    provider = "github"

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings):
        super().__init__(http_client, settings, settings.github_api_url)

    def _headers(self, access_token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    async def fetch_pull_requests(
        self,
        access_token: str,
        repositories: List[str],
        filters: Optional[PullRequestFilters] = None,
    ) -> List[PullRequest]:
        headers = self._headers(access_token)
        pull_requests: List[PullRequest] = []

        for repo in repositories:
            payload = await self.request(
                "GET",
                f"/repos/{repo}/pulls",
                headers=headers,
                params={"state": "open", "per_page": 100},
            )
            items = payload or []
            reviews = await asyncio.gather(
                *(self._fetch_reviews(headers, repo, item["number"]) for item in items)
            )
            pull_requests.extend(
                self._to_pull_request(repo, item, review_list)
                for item, review_list in zip(items, reviews)
            )
            logger.debug(
                "Fetched GitHub pull requests", repository=repo, count=len(items)
            )

        return pull_requests

    async def _fetch_reviews(
        self, headers: Dict[str, str], repo: str, number: int
    ) -> List[Dict[str, Any]]:
        payload = await self.request(
            "GET",
            f"/repos/{repo}/pulls/{number}/reviews",
            headers=headers,
            params={"per_page": 100},
        )
        return payload or []

    @staticmethod
    def _to_pull_request(
        repo: str, item: Dict[str, Any], reviews: List[Dict[str, Any]]
    ) -> PullRequest:
        # Reviews arrive oldest first; keep each reviewer's latest verdict
        review_states: Dict[str, str] = {}
        for review in reviews:
            user = review.get("user") or {}
            state = review.get("state")
            if user.get("login") and state and state != "COMMENTED":
                review_states[user["login"]] = state

        reviewers = [r["login"] for r in item.get("requested_reviewers") or []]
        for login in review_states:
            if login not in reviewers:
                reviewers.append(login)

        return PullRequest(
            id=str(item["id"]),
            title=item["title"],
            author=(item.get("user") or {}).get("login", "unknown"),
            url=item["html_url"],
            created_at=item["created_at"],
            repository=repo,
            labels=[label["name"] for label in item.get("labels") or []],
            reviewers=reviewers,
            has_approvals="APPROVED" in review_states.values(),
            has_changes_requested="CHANGES_REQUESTED" in review_states.values(),
        )

    async def refresh_token(self, refresh_token: str) -> Optional[TokenSet]:
        """GitHub OAuth app tokens do not expire."""
        return None
