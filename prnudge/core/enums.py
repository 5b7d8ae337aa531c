"""Shared enums used across features.

This module provides a single source of truth for enums used in both models and schemas.
"""

from enum import Enum


class GitProviderType(str, Enum):
    """Supported git hosting providers."""

    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"


class MessagingProviderType(str, Enum):
    """Supported chat providers."""

    SLACK = "slack"
    DISCORD = "discord"
    TEAMS = "teams"


class ExecutionStatus(str, Enum):
    """Outcome of a single schedule execution."""

    SUCCESS = "success"
    ERROR = "error"
    PARTIAL = "partial"
