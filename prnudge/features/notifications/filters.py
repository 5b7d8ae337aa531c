"""
Filter Pipeline.

Narrows a schedule's pull requests with its filter specification. Stages run
in a fixed order and each is a no-op when its criterion is unset:

1. repository allow-list (exact)
2. labels (case-insensitive substring, match any; PRs without labels drop out)
3. title keywords (case-insensitive substring, match any)
4. excluded authors (exact)
5. minimum age in whole days
6. maximum age in whole days

An age bound of 0 is treated as unset.
"""

from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

import structlog

from prnudge.core.providers.models import PullRequest, PullRequestFilters

logger = structlog.get_logger(__name__)

Stage = Tuple[str, Callable[[PullRequest], bool]]


def _build_stages(filters: PullRequestFilters, now: datetime) -> List[Stage]:
    stages: List[Stage] = []

    if filters.repositories:
        allowed = set(filters.repositories)
        stages.append(("repositories", lambda pr: pr.repository in allowed))

    if filters.labels:
        wanted = [label.lower() for label in filters.labels]
        stages.append(
            (
                "labels",
                lambda pr: any(
                    needle in label.lower() for label in pr.labels for needle in wanted
                ),
            )
        )

    if filters.title_keywords:
        keywords = [keyword.lower() for keyword in filters.title_keywords]
        stages.append(
            ("title_keywords", lambda pr: any(k in pr.title.lower() for k in keywords))
        )

    if filters.exclude_authors:
        excluded = set(filters.exclude_authors)
        stages.append(("exclude_authors", lambda pr: pr.author not in excluded))

    if filters.min_age_days:
        min_age = filters.min_age_days
        stages.append(("min_age", lambda pr: pr.age_in_days(now) >= min_age))

    if filters.max_age_days:
        max_age = filters.max_age_days
        stages.append(("max_age", lambda pr: pr.age_in_days(now) <= max_age))

    return stages


def apply_filters(
    pull_requests: Sequence[PullRequest],
    filters: Optional[PullRequestFilters],
    now: datetime,
) -> List[PullRequest]:
    """Apply ``filters`` to ``pull_requests``, preserving input order.

    Args:
        pull_requests: Open pull requests from the provider
        filters: Filter specification; None passes everything
        now: Reference time for age stages

    Returns:
        Pull requests matching every configured stage
    """
    result = list(pull_requests)
    if filters is None:
        return result

    for name, predicate in _build_stages(filters, now):
        before = len(result)
        result = [pr for pr in result if predicate(pr)]
        logger.debug("Filter stage applied", stage=name, before=before, after=len(result))

    return result


def validate_filters(filters: PullRequestFilters) -> List[str]:
    """Return human-readable problems with a filter specification (empty when valid)."""
    errors: List[str] = []

    if filters.min_age_days is not None and filters.min_age_days < 0:
        errors.append("Minimum age must be non-negative")
    if filters.max_age_days is not None and filters.max_age_days < 0:
        errors.append("Maximum age must be non-negative")
    if (
        filters.min_age_days is not None
        and filters.max_age_days is not None
        and filters.min_age_days > filters.max_age_days
    ):
        errors.append("Minimum age cannot be greater than maximum age")

    for field, label in (
        ("repositories", "Repository filter"),
        ("labels", "Labels filter"),
        ("title_keywords", "Title keywords filter"),
        ("exclude_authors", "Excluded authors filter"),
    ):
        value = getattr(filters, field)
        if value is not None and len(value) == 0:
            errors.append(f"{label} cannot be empty array")

    return errors


def describe_filters(filters: Optional[PullRequestFilters]) -> str:
    """One-line summary of a filter specification, for logs."""
    if filters is None:
        return "No filters applied"

    parts: List[str] = []
    if filters.repositories:
        parts.append(f"Repositories: {', '.join(filters.repositories)}")
    if filters.labels:
        parts.append(f"Labels: {', '.join(filters.labels)}")
    if filters.title_keywords:
        parts.append(f"Title keywords: {', '.join(filters.title_keywords)}")
    if filters.exclude_authors:
        parts.append(f"Excluding authors: {', '.join(filters.exclude_authors)}")
    if filters.min_age_days is not None:
        parts.append(f"Minimum age: {filters.min_age_days} days")
    if filters.max_age_days is not None:
        parts.append(f"Maximum age: {filters.max_age_days} days")

    return "; ".join(parts) if parts else "No filters applied"
