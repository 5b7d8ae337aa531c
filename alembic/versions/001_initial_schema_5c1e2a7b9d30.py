"""Create connection, schedule, execution log and escalation tracking tables

Revision ID: 5c1e2a7b9d30
Revises:
Create Date: 2026-10-19 09:12:44.318201

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "5c1e2a7b9d30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

git_provider_type = postgresql.ENUM(
    "github", "gitlab", "bitbucket", name="git_provider_type_enum", create_type=False
)
messaging_provider_type = postgresql.ENUM(
    "slack", "discord", "teams", name="messaging_provider_type_enum", create_type=False
)
execution_status = postgresql.ENUM(
    "success", "error", "partial", name="execution_status_enum", create_type=False
)


def _timestamps() -> list:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
            comment="When the row was created",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
            comment="When the row was last updated",
        ),
    ]


def _connection_columns(provider_enum: postgresql.ENUM, comment: str) -> list:
    return [
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            comment="Unique identifier for the connection",
        ),
        sa.Column(
            "user_id",
            sa.String(length=255),
            nullable=False,
            comment="Owner of the connection",
        ),
        sa.Column("provider", provider_enum, nullable=False, comment=comment),
        sa.Column(
            "access_token", sa.Text(), nullable=False, comment="OAuth access token"
        ),
        sa.Column(
            "refresh_token",
            sa.Text(),
            nullable=True,
            comment="OAuth refresh token, when the provider issues one",
        ),
        sa.Column(
            "expires_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="When the access token expires (null = never)",
        ),
    ]


def upgrade() -> None:
    """Create enums, tables and indexes."""
    bind = op.get_bind()
    git_provider_type.create(bind, checkfirst=True)
    messaging_provider_type.create(bind, checkfirst=True)
    execution_status.create(bind, checkfirst=True)

    op.create_table(
        "git_provider_connections",
        *_connection_columns(
            git_provider_type, "Git hosting provider (github, gitlab, bitbucket)"
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_git_provider_connections")),
    )
    op.create_index(
        op.f("ix_git_provider_connections_user_id"),
        "git_provider_connections",
        ["user_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_git_provider_connections_expires_at"),
        "git_provider_connections",
        ["expires_at"],
        unique=False,
    )

    op.create_table(
        "messaging_provider_connections",
        *_connection_columns(
            messaging_provider_type, "Chat provider (slack, discord, teams)"
        ),
        sa.Column(
            "webhook_url",
            sa.Text(),
            nullable=True,
            comment="Incoming webhook used instead of the API when set",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_messaging_provider_connections")),
    )
    op.create_index(
        op.f("ix_messaging_provider_connections_user_id"),
        "messaging_provider_connections",
        ["user_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_messaging_provider_connections_expires_at"),
        "messaging_provider_connections",
        ["expires_at"],
        unique=False,
    )

    op.create_table(
        "schedules",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            comment="Unique identifier for the schedule",
        ),
        sa.Column(
            "user_id",
            sa.String(length=255),
            nullable=False,
            comment="Owner of the schedule",
        ),
        sa.Column(
            "name",
            sa.String(length=255),
            nullable=False,
            comment="Display name of the schedule",
        ),
        sa.Column(
            "cron_expression",
            sa.String(length=128),
            nullable=False,
            comment="Five-field cron expression, evaluated in UTC",
        ),
        sa.Column(
            "git_provider_id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            comment="Git connection used to fetch pull requests",
        ),
        sa.Column(
            "repositories",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
            comment="Repository full names to scan",
        ),
        sa.Column(
            "messaging_provider_id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            comment="Chat connection receiving the regular notification",
        ),
        sa.Column(
            "messaging_channel_id",
            sa.String(length=255),
            nullable=False,
            comment="Channel receiving the regular notification",
        ),
        sa.Column(
            "escalation_provider_id",
            postgresql.UUID(as_uuid=True),
            nullable=True,
            comment="Chat connection receiving escalations",
        ),
        sa.Column(
            "escalation_channel_id",
            sa.String(length=255),
            nullable=True,
            comment="Channel receiving escalations",
        ),
        sa.Column(
            "escalation_days",
            sa.Integer(),
            nullable=True,
            comment="Age in days after which an open PR escalates",
        ),
        sa.Column(
            "pr_filters",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Pull request filter specification",
        ),
        sa.Column(
            "send_when_empty",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
            comment="Send an all-clear message when no PRs match",
        ),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
            comment="Whether the schedule is evaluated by the tick",
        ),
        sa.Column(
            "last_executed_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="When the last completed execution ran (only moves forward)",
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["git_provider_id"],
            ["git_provider_connections.id"],
            name=op.f("fk_schedules_git_provider_id"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["messaging_provider_id"],
            ["messaging_provider_connections.id"],
            name=op.f("fk_schedules_messaging_provider_id"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["escalation_provider_id"],
            ["messaging_provider_connections.id"],
            name=op.f("fk_schedules_escalation_provider_id"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_schedules")),
    )
    op.create_index(
        op.f("ix_schedules_user_id"), "schedules", ["user_id"], unique=False
    )
    op.create_index("idx_schedules_active", "schedules", ["is_active"], unique=False)

    op.create_table(
        "execution_logs",
        sa.Column(
            "id",
            sa.Integer(),
            autoincrement=True,
            nullable=False,
            comment="Unique identifier for the execution",
        ),
        sa.Column(
            "schedule_id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            comment="Schedule that was executed",
        ),
        sa.Column(
            "executed_at",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When the execution started",
        ),
        sa.Column(
            "status",
            execution_status,
            nullable=False,
            comment="Outcome (success, error, partial)",
        ),
        sa.Column(
            "pull_requests_found",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Open pull requests fetched from the provider, before filtering",
        ),
        sa.Column(
            "messages_sent",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Chat messages delivered (regular + escalation)",
        ),
        sa.Column(
            "escalations_triggered",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Pull requests escalated during this execution",
        ),
        sa.Column(
            "error_message",
            sa.Text(),
            nullable=True,
            comment="Error text when the execution failed or partially failed",
        ),
        sa.Column(
            "execution_time_ms",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Wall-clock duration of the execution",
        ),
        sa.ForeignKeyConstraint(
            ["schedule_id"],
            ["schedules.id"],
            name=op.f("fk_execution_logs_schedule_id"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_execution_logs")),
    )
    op.create_index(
        "idx_execution_logs_schedule_executed",
        "execution_logs",
        ["schedule_id", "executed_at"],
        unique=False,
    )

    op.create_table(
        "escalation_tracking",
        sa.Column(
            "id",
            sa.Integer(),
            autoincrement=True,
            nullable=False,
            comment="Unique identifier for the tracking row",
        ),
        sa.Column(
            "schedule_id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            comment="Schedule the escalation belongs to",
        ),
        sa.Column(
            "pull_request_id",
            sa.String(length=255),
            nullable=False,
            comment="Provider-scoped pull request id",
        ),
        sa.Column(
            "pull_request_url",
            sa.Text(),
            nullable=False,
            comment="Link to the pull request",
        ),
        sa.Column(
            "first_escalated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When the pull request first escalated",
        ),
        sa.Column(
            "last_escalated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When the pull request last escalated",
        ),
        sa.Column(
            "escalation_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("1"),
            comment="Number of escalations sent (>= 1)",
        ),
        sa.CheckConstraint(
            "escalation_count >= 1", name=op.f("ck_escalation_tracking_count")
        ),
        sa.ForeignKeyConstraint(
            ["schedule_id"],
            ["schedules.id"],
            name=op.f("fk_escalation_tracking_schedule_id"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_escalation_tracking")),
        sa.UniqueConstraint(
            "schedule_id",
            "pull_request_id",
            name="uq_escalation_tracking_schedule_pr",
        ),
    )
    op.create_index(
        op.f("ix_escalation_tracking_schedule_id"),
        "escalation_tracking",
        ["schedule_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop tables and enums."""
    op.drop_index(
        op.f("ix_escalation_tracking_schedule_id"), table_name="escalation_tracking"
    )
    op.drop_table("escalation_tracking")

    op.drop_index("idx_execution_logs_schedule_executed", table_name="execution_logs")
    op.drop_table("execution_logs")

    op.drop_index("idx_schedules_active", table_name="schedules")
    op.drop_index(op.f("ix_schedules_user_id"), table_name="schedules")
    op.drop_table("schedules")

    for table in ("messaging_provider_connections", "git_provider_connections"):
        op.drop_index(op.f(f"ix_{table}_expires_at"), table_name=table)
        op.drop_index(op.f(f"ix_{table}_user_id"), table_name=table)
        op.drop_table(table)

    bind = op.get_bind()
    execution_status.drop(bind, checkfirst=True)
    messaging_provider_type.drop(bind, checkfirst=True)
    git_provider_type.drop(bind, checkfirst=True)
