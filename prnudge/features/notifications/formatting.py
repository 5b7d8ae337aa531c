"""
Notification Formatter.

Groups pull requests into review-state categories and renders them for a chat
provider. Every PR lands in the first category it matches, in this order
(which is also the display order):

    Ready to Merge -> Needs Changes -> Stale -> Under Review -> Awaiting Review

Rendering respects a hard size budget: at most ``max_prs_per_category`` PRs per
category plus per-provider character caps. Anything cut is announced with an
"...and N more" line and ``truncated=True`` on the result.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Type

from prnudge.core.config import Settings
from prnudge.core.enums import MessagingProviderType
from prnudge.core.providers.models import PullRequest, RenderedMessage

DEFAULT_TITLE = "DAILY REMINDER FOR OPEN PULL REQUESTS"
MAX_TITLE_CHARS = 60
MAX_HEADER_CHARS = 120
MAX_LABELS = 3

# Room kept free for an overflow line at the end of a section
OVERFLOW_RESERVE = 32
# Room kept free per not-yet-rendered category (heading + overflow line)
CATEGORY_RESERVE = 80

PLAIN_TEXT_LIMIT = 4000
SLACK_SECTION_LIMIT = 3000
SLACK_HEADER_LIMIT = 150
DISCORD_FIELD_LIMIT = 1024
DISCORD_FIELD_NAME_LIMIT = 256

DISCORD_COLOR_REGULAR = 0x5865F2
DISCORD_COLOR_ESCALATION = 0xED4245
DISCORD_COLOR_EMPTY = 0x57F287


@dataclass
class Category:
    """A display bucket of pull requests."""

    name: str
    emoji: str
    short_name: str
    pull_requests: List[PullRequest] = field(default_factory=list)

    @property
    def heading(self) -> str:
        return f"{self.emoji} {self.name} ({len(self.pull_requests)})"


def _category_rules(
    now: datetime, stale_days: int
) -> List[Tuple[str, str, str, Callable[[PullRequest], bool]]]:
    return [
        (
            "Ready to Merge",
            "✅",
            "ready",
            lambda pr: pr.has_approvals and not pr.has_changes_requested,
        ),
        ("Needs Changes", "🔧", "changes", lambda pr: pr.has_changes_requested),
        ("Stale", "⏰", "stale", lambda pr: pr.age_in_days(now) >= stale_days),
        ("Under Review", "👀", "review", lambda pr: bool(pr.reviewers)),
        ("Awaiting Review", "⏳", "waiting", lambda pr: True),
    ]


def categorize(
    pull_requests: Sequence[PullRequest], now: datetime, stale_days: int = 7
) -> List[Category]:
    """Split PRs into categories; input order is kept within each category."""
    rules = _category_rules(now, stale_days)
    categories = [Category(name, emoji, short) for name, emoji, short, _ in rules]

    for pr in pull_requests:
        for category, (_, _, _, matches) in zip(categories, rules):
            if matches(pr):
                category.pull_requests.append(pr)
                break

    return categories


def truncate_title(title: str, max_length: int = MAX_TITLE_CHARS) -> str:
    if len(title) <= max_length:
        return title
    return title[: max_length - 3] + "..."


def format_age(pr: PullRequest, now: datetime) -> str:
    days = pr.age_in_days(now)
    return "today" if days == 0 else f"{days}d"


def format_line_count(pr: PullRequest) -> str:
    if pr.additions is None or pr.deletions is None:
        return ""
    return f" (+{pr.additions}/-{pr.deletions})"


def format_labels(labels: Sequence[str]) -> str:
    if not labels:
        return ""
    return " [" + "] [".join(labels[:MAX_LABELS]) + "]"


def build_summary_line(categories: Sequence[Category]) -> str:
    """Compact per-category counts, e.g. ``✅2 ready ⏳1 waiting``."""
    return " ".join(
        f"{c.emoji}{len(c.pull_requests)} {c.short_name}"
        for c in categories
        if c.pull_requests
    )


def overflow_line(hidden: int) -> str:
    return f"...and {hidden} more"


def fit_lines(lines: Sequence[str], limit: int, hidden: int = 0) -> Tuple[List[str], int]:
    """Keep as many lines as fit in ``limit`` characters (newline-joined).

    Room for an overflow line is kept free whenever something is, or would
    be, left out.

    :returns: (kept lines, number of PRs not shown)
    """
    kept: List[str] = []
    used = 0
    for index, line in enumerate(lines):
        more_follow = hidden > 0 or index < len(lines) - 1
        reserve = OVERFLOW_RESERVE if more_follow else 0
        cost = len(line) + (1 if kept else 0)
        if used + cost > limit - reserve:
            return kept, hidden + len(lines) - index
        kept.append(line)
        used += cost
    return kept, hidden


class NotificationFormatter:
    """Plain-text formatter; base class for the rich chat formatters."""

    text_limit = PLAIN_TEXT_LIMIT

    def __init__(self, max_prs_per_category: int = 10, stale_days: int = 7):
        self.max_prs_per_category = max_prs_per_category
        self.stale_days = stale_days

    def render(
        self,
        pull_requests: Sequence[PullRequest],
        schedule_name: Optional[str],
        now: datetime,
        escalation_days: Optional[int] = None,
    ) -> RenderedMessage:
        """Render a regular notification, or an escalation when ``escalation_days`` is set.

        Args:
            pull_requests: PRs to list, already filtered
            schedule_name: Used as the message title
            now: Reference time for ages and the stale category
            escalation_days: Threshold that triggered the escalation

        Returns:
            RenderedMessage with ``text`` always set
        """
        title = truncate_title(
            (schedule_name or DEFAULT_TITLE).upper(), MAX_HEADER_CHARS
        )
        if not pull_requests:
            return self.render_empty(title)

        escalation = escalation_days is not None
        header = self.header(title, len(pull_requests), escalation)
        note = self.escalation_note(escalation_days) if escalation else None
        categories = categorize(pull_requests, now, self.stale_days)

        text, truncated = self._render_text(header, note, categories, now)
        message = RenderedMessage(
            text=text,
            truncated=truncated,
            pull_request_count=len(pull_requests),
        )
        return self.decorate(message, header, note, categories, now, escalation)

    @staticmethod
    def header(title: str, count: int, escalation: bool) -> str:
        if escalation:
            return f"🚨 ESCALATION: {title} ({count})"
        return f"📋 {title} ({count})"

    @staticmethod
    def escalation_note(escalation_days: int) -> str:
        unit = "day" if escalation_days == 1 else "days"
        return (
            f"⚠️ These pull requests have been open longer than the "
            f"{escalation_days} {unit} escalation threshold."
        )

    def render_empty(self, title: str) -> RenderedMessage:
        return RenderedMessage(
            text=f"📋 {title}\n\n✅ All clear! No open pull requests",
            is_empty=True,
        )

    def decorate(
        self,
        message: RenderedMessage,
        header: str,
        note: Optional[str],
        categories: List[Category],
        now: datetime,
        escalation: bool,
    ) -> RenderedMessage:
        """Attach provider-specific rich content. Plain text has none."""
        return message

    def visible(self, category: Category) -> Tuple[List[PullRequest], int]:
        shown = category.pull_requests[: self.max_prs_per_category]
        return shown, len(category.pull_requests) - len(shown)

    @staticmethod
    def text_line(pr: PullRequest, now: datetime) -> str:
        return (
            f"• {truncate_title(pr.title)}{format_line_count(pr)}{format_labels(pr.labels)}"
            f" by {pr.author} · {format_age(pr, now)} · {pr.repository}\n  {pr.url}"
        )

    def _render_text(
        self,
        header: str,
        note: Optional[str],
        categories: List[Category],
        now: datetime,
    ) -> Tuple[str, bool]:
        out = [header, build_summary_line(categories)]
        if note:
            out.append(note)
        used = sum(len(line) + 1 for line in out)
        truncated = False

        filled = [c for c in categories if c.pull_requests]
        for position, category in enumerate(filled):
            shown, hidden = self.visible(category)
            heading = f"\n{category.heading}"
            reserve = CATEGORY_RESERVE * (len(filled) - position - 1)
            budget = self.text_limit - used - len(heading) - 1 - reserve
            lines, hidden = fit_lines(
                [self.text_line(pr, now) for pr in shown], budget, hidden
            )
            block = [heading, *lines]
            if hidden:
                block.append(overflow_line(hidden))
                truncated = True
            out.extend(block)
            used += sum(len(line) + 1 for line in block)

        return "\n".join(out), truncated


def _slack_escape(value: str) -> str:
    return value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


class SlackFormatter(NotificationFormatter):
    """Block Kit rendering: header, summary context, one section per category."""

    def render_empty(self, title: str) -> RenderedMessage:
        message = super().render_empty(title)
        message.blocks = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": f"📋 {title}"[:SLACK_HEADER_LIMIT]},
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": "✅ All clear! No open pull requests"},
            },
        ]
        return message

    @staticmethod
    def slack_line(pr: PullRequest, now: datetime) -> str:
        title = _slack_escape(truncate_title(pr.title))
        labels = _slack_escape(format_labels(pr.labels))
        return (
            f"• <{pr.url}|{title}>{format_line_count(pr)}{labels}"
            f" by {_slack_escape(pr.author)} · {format_age(pr, now)}"
        )

    def decorate(self, message, header, note, categories, now, escalation):
        blocks = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": header[:SLACK_HEADER_LIMIT]},
            },
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": build_summary_line(categories)}],
            },
        ]
        truncated = message.truncated

        for category in categories:
            if not category.pull_requests:
                continue
            shown, hidden = self.visible(category)
            heading = f"*{category.heading}*"
            lines, hidden = fit_lines(
                [self.slack_line(pr, now) for pr in shown],
                SLACK_SECTION_LIMIT - len(heading) - 1,
                hidden,
            )
            body = [heading, *lines]
            if hidden:
                body.append(f"_{overflow_line(hidden)}_")
                truncated = True
            blocks.append(
                {"type": "section", "text": {"type": "mrkdwn", "text": "\n".join(body)}}
            )

        if note:
            blocks.append(
                {"type": "context", "elements": [{"type": "mrkdwn", "text": note}]}
            )

        message.blocks = blocks
        message.truncated = truncated
        return message


class DiscordFormatter(NotificationFormatter):
    """Embed rendering: one embed, one field per category."""

    def render_empty(self, title: str) -> RenderedMessage:
        message = super().render_empty(title)
        message.embeds = [
            {
                "title": f"📋 {title}"[:DISCORD_FIELD_NAME_LIMIT],
                "description": "✅ All clear! No open pull requests",
                "color": DISCORD_COLOR_EMPTY,
            }
        ]
        return message

    @staticmethod
    def discord_line(pr: PullRequest, now: datetime) -> str:
        title = truncate_title(pr.title).replace("[", "\\[").replace("]", "\\]")
        return (
            f"• [{title}]({pr.url}){format_line_count(pr)}{format_labels(pr.labels)}"
            f" by {pr.author} · {format_age(pr, now)}"
        )

    def decorate(self, message, header, note, categories, now, escalation):
        fields = []
        truncated = message.truncated

        for category in categories:
            if not category.pull_requests:
                continue
            shown, hidden = self.visible(category)
            lines, hidden = fit_lines(
                [self.discord_line(pr, now) for pr in shown],
                DISCORD_FIELD_LIMIT,
                hidden,
            )
            if hidden:
                lines.append(overflow_line(hidden))
                truncated = True
            fields.append(
                {
                    "name": category.heading[:DISCORD_FIELD_NAME_LIMIT],
                    "value": "\n".join(lines),
                    "inline": False,
                }
            )

        embed = {
            "title": header[:DISCORD_FIELD_NAME_LIMIT],
            "description": build_summary_line(categories),
            "color": DISCORD_COLOR_ESCALATION if escalation else DISCORD_COLOR_REGULAR,
            "fields": fields,
            "timestamp": now.isoformat(),
        }
        if note:
            embed["footer"] = {"text": note}

        message.embeds = [embed]
        message.truncated = truncated
        return message


FORMATTERS: Dict[MessagingProviderType, Type[NotificationFormatter]] = {
    MessagingProviderType.SLACK: SlackFormatter,
    MessagingProviderType.DISCORD: DiscordFormatter,
}


def get_formatter(
    provider: MessagingProviderType, settings: Settings
) -> NotificationFormatter:
    """Formatter for a messaging provider; plain text when it has no rich format."""
    formatter_class = FORMATTERS.get(MessagingProviderType(provider), NotificationFormatter)
    return formatter_class(
        max_prs_per_category=settings.max_prs_per_category,
        stale_days=settings.stale_pr_days,
    )
