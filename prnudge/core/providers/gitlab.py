"""GitLab REST API client."""

import asyncio
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
import structlog

from prnudge.core.config import Settings

from .base import GitProviderClient
from .errors import ProviderError
from .models import PullRequest, PullRequestFilters, TokenSet

logger = structlog.get_logger(__name__)

# Phrases in a non-system note that count as a change request
CHANGE_REQUEST_PHRASES = (
    "needs changes",
    "request changes",
    "please fix",
    "changes needed",
)


class GitLabClient(GitProviderClient):
    """Fetches open merge requests from GitLab (gitlab.com or self-hosted)."""

    provider = "gitlab"

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings):
        super().__init__(
            http_client, settings, f"{settings.gitlab_base_url.rstrip('/')}/api/v4"
        )

    @staticmethod
    def _headers(access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}

    async def fetch_pull_requests(
        self,
        access_token: str,
        repositories: List[str],
        filters: Optional[PullRequestFilters] = None,
    ) -> List[PullRequest]:
        headers = self._headers(access_token)
        pull_requests: List[PullRequest] = []

        for project_path in repositories:
            project = quote(project_path, safe="")
            items = (
                await self.request(
                    "GET",
                    f"/projects/{project}/merge_requests",
                    headers=headers,
                    params={
                        "state": "opened",
                        "per_page": 100,
                        "order_by": "updated_at",
                        "sort": "desc",
                    },
                )
                or []
            )
            review_info = await asyncio.gather(
                *(self._fetch_review_info(headers, project, item["iid"]) for item in items)
            )
            pull_requests.extend(
                self._to_pull_request(project_path, item, approved, changes)
                for item, (approved, changes) in zip(items, review_info)
            )
            logger.debug(
                "Fetched GitLab merge requests",
                repository=project_path,
                count=len(items),
            )

        return pull_requests

    async def _fetch_review_info(
        self, headers: Dict[str, str], project: str, iid: int
    ) -> tuple[bool, bool]:
        approvals, notes = await asyncio.gather(
            self.request(
                "GET",
                f"/projects/{project}/merge_requests/{iid}/approvals",
                headers=headers,
            ),
            self.request(
                "GET",
                f"/projects/{project}/merge_requests/{iid}/notes",
                headers=headers,
                params={"per_page": 100},
            ),
        )
        approved = bool((approvals or {}).get("approved_by"))
        changes_requested = any(
            not note.get("system")
            and any(p in (note.get("body") or "").lower() for p in CHANGE_REQUEST_PHRASES)
            for note in notes or []
        )
        return approved, changes_requested

    @staticmethod
    def _to_pull_request(
        project_path: str,
        item: Dict[str, Any],
        approved: bool,
        changes_requested: bool,
    ) -> PullRequest:
        if item.get("detailed_merge_status") == "requested_changes":
            changes_requested = True

        return PullRequest(
            id=str(item["id"]),
            title=item["title"],
            author=(item.get("author") or {}).get("username", "unknown"),
            url=item["web_url"],
            created_at=item["created_at"],
            repository=project_path,
            labels=list(item.get("labels") or []),
            reviewers=[r["username"] for r in item.get("reviewers") or []],
            has_approvals=approved,
            has_changes_requested=changes_requested,
        )

    async def refresh_token(self, refresh_token: str) -> Optional[TokenSet]:
        """Exchange a GitLab OAuth refresh token (tokens expire after two hours)."""
        data = await self.request(
            "POST",
            f"{self.settings.gitlab_base_url.rstrip('/')}/oauth/token",
            headers={"Accept": "application/json"},
            data={
                "client_id": self.settings.gitlab_client_id,
                "client_secret": self.settings.gitlab_client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
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
