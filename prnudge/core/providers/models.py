"""Pydantic models exchanged across the provider dispatch boundary."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from prnudge.core.timeutils import age_in_days as _age_in_days


class PullRequest(BaseModel):
    """An open pull/merge request, normalized across git providers.

    ``id`` is provider-scoped and stable across runs; escalation tracking is
    keyed on it.
    """

    id: str
    title: str
    author: str
    url: str
    created_at: datetime = Field(..., alias="createdAt")
    repository: str
    labels: List[str] = Field(default_factory=list)
    reviewers: List[str] = Field(default_factory=list)
    has_approvals: bool = Field(default=False, alias="hasApprovals")
    has_changes_requested: bool = Field(default=False, alias="hasChangesRequested")
    # Open-PR list endpoints of GitHub and GitLab do not report size; both stay
    # None unless a caller supplies them
    additions: Optional[int] = None
    deletions: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)

    def age_in_days(self, now: datetime) -> int:
        """Whole days the PR has been open."""
        return _age_in_days(self.created_at, now)


class PullRequestFilters(BaseModel):
    """Filter spec stored on a schedule. Every field is optional.

    Stored JSON uses camelCase keys (``titleKeywords``, ``minAge``); snake_case
    is accepted as well.
    """

    labels: Optional[List[str]] = None
    title_keywords: Optional[List[str]] = Field(None, alias="titleKeywords")
    exclude_authors: Optional[List[str]] = Field(None, alias="excludeAuthors")
    repositories: Optional[List[str]] = None
    min_age_days: Optional[int] = Field(None, alias="minAge")
    max_age_days: Optional[int] = Field(None, alias="maxAge")

    model_config = ConfigDict(populate_by_name=True)


class TokenSet(BaseModel):
    """Result of a refresh-token exchange."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


class RenderedMessage(BaseModel):
    """A formatted notification ready for a chat provider.

    ``text`` is always populated (plain text, or the notification fallback for
    rich providers). ``blocks`` carries Slack Block Kit content and ``embeds``
    carries Discord embeds.
    """

    text: str
    blocks: Optional[List[Dict[str, Any]]] = None
    embeds: Optional[List[Dict[str, Any]]] = None
    is_empty: bool = False
    truncated: bool = False
    pull_request_count: int = 0
