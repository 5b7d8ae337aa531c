"""Pydantic schemas for the token refresh sweep."""

from typing import List, Optional

from pydantic import BaseModel, Field


class TokenRefreshSummary(BaseModel):
    """Outcome of one token refresh sweep."""

    success: bool = Field(True, description="False when the sweep could not run")
    git_providers_refreshed: int = 0
    messaging_providers_refreshed: int = 0
    errors: List[str] = Field(default_factory=list)
    execution_time_ms: int = 0
    error: Optional[str] = None

    @property
    def tokens_refreshed(self) -> int:
        return self.git_providers_refreshed + self.messaging_providers_refreshed
