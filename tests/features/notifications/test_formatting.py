"""
Tests for the notification formatter.
"""

from conftest import NOW, make_pr
from prnudge.core.enums import MessagingProviderType
from prnudge.features.notifications.formatting import (
    DISCORD_FIELD_LIMIT,
    PLAIN_TEXT_LIMIT,
    SLACK_HEADER_LIMIT,
    SLACK_SECTION_LIMIT,
    DiscordFormatter,
    NotificationFormatter,
    SlackFormatter,
    categorize,
    fit_lines,
    format_age,
    get_formatter,
    truncate_title,
)


def many_prs(count, **overrides):
    return [
        make_pr(str(i), age_days=1, title="A" * 200, **overrides) for i in range(count)
    ]


class TestCategorize:
    """Test cases for categorize."""

    def test_first_matching_category_wins(self):
        prs = [
            make_pr("ready", hasApprovals=True),
            make_pr("approved-but-changes", hasApprovals=True, hasChangesRequested=True),
            make_pr("stale-reviewed", age_days=30, reviewers=["bob"]),
            make_pr("review", reviewers=["bob"]),
            make_pr("waiting"),
        ]

        categories = categorize(prs, NOW, stale_days=7)

        assert [c.name for c in categories] == [
            "Ready to Merge",
            "Needs Changes",
            "Stale",
            "Under Review",
            "Awaiting Review",
        ]
        assert [[pr.id for pr in c.pull_requests] for c in categories] == [
            ["ready"],
            ["approved-but-changes"],
            ["stale-reviewed"],
            ["review"],
            ["waiting"],
        ]

    def test_every_pr_is_placed_once(self):
        prs = many_prs(5) + [make_pr("x", hasApprovals=True)]

        categories = categorize(prs, NOW)

        assert sum(len(c.pull_requests) for c in categories) == len(prs)


class TestHelpers:
    """Test cases for line helpers."""

    def test_truncate_title(self):
        assert truncate_title("short") == "short"
        assert truncate_title("x" * 100) == "x" * 57 + "..."

    def test_format_age(self):
        assert format_age(make_pr(age_days=0.2), NOW) == "today"
        assert format_age(make_pr(age_days=4), NOW) == "4d"

    def test_fit_lines_reports_hidden(self):
        lines = ["x" * 50] * 10

        kept, hidden = fit_lines(lines, 200)

        assert len(kept) + hidden == 10
        assert hidden > 0
        assert len("\n".join(kept)) <= 200


class TestNotificationFormatter:
    """Test cases for the plain-text formatter."""

    def test_all_clear_message(self):
        message = NotificationFormatter().render([], "Team digest", NOW)

        assert message.is_empty
        assert message.text == "📋 TEAM DIGEST\n\n✅ All clear! No open pull requests"

    def test_default_title(self):
        message = NotificationFormatter().render([], None, NOW)

        assert "DAILY REMINDER FOR OPEN PULL REQUESTS" in message.text

    def test_regular_header_and_lines(self):
        pr = make_pr("7", title="Fix it", additions=10, deletions=2, labels=["bug"])

        message = NotificationFormatter().render([pr], "digest", NOW)

        assert message.text.startswith("📋 DIGEST (1)")
        assert "Fix it (+10/-2) [bug] by alice" in message.text
        assert pr.url in message.text
        assert not message.truncated
        assert message.pull_request_count == 1

    def test_escalation_header_and_note(self):
        message = NotificationFormatter().render(
            [make_pr(age_days=9)], "digest", NOW, escalation_days=5
        )

        assert message.text.startswith("🚨 ESCALATION: DIGEST (1)")
        assert "5 days escalation threshold" in message.text

    def test_per_category_limit_sets_truncated(self):
        message = NotificationFormatter(max_prs_per_category=3).render(
            [make_pr(str(i)) for i in range(5)], "digest", NOW
        )

        assert message.truncated
        assert "...and 2 more" in message.text

    def test_text_never_exceeds_limit(self):
        prs = many_prs(40)
        prs += [make_pr(f"r{i}", title="B" * 200, hasApprovals=True) for i in range(40)]

        message = NotificationFormatter(max_prs_per_category=100).render(
            prs, "digest", NOW
        )

        assert len(message.text) <= PLAIN_TEXT_LIMIT
        assert message.truncated
        assert "Ready to Merge" in message.text
        assert "Awaiting Review" in message.text


class TestSlackFormatter:
    """Test cases for the Slack formatter."""

    def test_blocks_structure(self):
        message = SlackFormatter().render(
            [make_pr("1", title="<script>", hasApprovals=True)], "digest", NOW
        )

        assert message.blocks[0]["type"] == "header"
        assert message.blocks[1]["type"] == "context"
        section = message.blocks[2]["text"]["text"]
        assert "&lt;script&gt;" in section
        assert message.text

    def test_sections_respect_limits(self):
        message = SlackFormatter(max_prs_per_category=100).render(
            many_prs(100), "x" * 300, NOW
        )

        assert len(message.blocks[0]["text"]["text"]) <= SLACK_HEADER_LIMIT
        for block in message.blocks:
            if block["type"] == "section":
                assert len(block["text"]["text"]) <= SLACK_SECTION_LIMIT
        assert message.truncated

    def test_empty_has_blocks(self):
        message = SlackFormatter().render([], "digest", NOW)

        assert message.is_empty
        assert message.blocks


class TestDiscordFormatter:
    """Test cases for the Discord formatter."""

    def test_fields_respect_limit(self):
        message = DiscordFormatter(max_prs_per_category=100).render(
            many_prs(60), "digest", NOW
        )

        embed = message.embeds[0]
        for field in embed["fields"]:
            assert len(field["value"]) <= DISCORD_FIELD_LIMIT
        assert message.truncated

    def test_escalation_embed_has_note(self):
        message = DiscordFormatter().render(
            [make_pr(age_days=9)], "digest", NOW, escalation_days=1
        )

        embed = message.embeds[0]
        assert embed["title"].startswith("🚨 ESCALATION")
        assert "1 day escalation threshold" in embed["footer"]["text"]


class TestGetFormatter:
    """Test cases for get_formatter."""

    def test_provider_mapping(self, settings):
        assert isinstance(get_formatter(MessagingProviderType.SLACK, settings), SlackFormatter)
        assert isinstance(
            get_formatter(MessagingProviderType.DISCORD, settings), DiscordFormatter
        )
        plain = get_formatter(MessagingProviderType.TEAMS, settings)
        assert type(plain) is NotificationFormatter
        assert plain.max_prs_per_category == settings.max_prs_per_category
