"""Configuration settings for the prnudge notification engine."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    postgres_db: str = Field(default="prnudge")
    postgres_user: str = Field(default="prnudge")
    postgres_password: str = Field(default="dev_password")
    postgres_host: str = Field(default="localhost")
    postgres_port: int = Field(default=5432)
    database_command_timeout_seconds: float = Field(
        default=15.0,
        description="Upper bound for a single database statement",
    )

    @property
    def database_url(self) -> str:
        """Construct async database URL from components."""
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # Application Configuration
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Notification engine
    notification_concurrency: int = Field(
        default=5,
        description="Maximum number of schedules executed in parallel per tick",
    )
    provider_timeout_seconds: float = Field(
        default=30.0,
        description="Upper bound for a single provider fetch or send call",
    )
    re_escalation_interval_days: int = Field(default=7)
    stale_pr_days: int = Field(default=7)
    max_prs_per_category: int = Field(default=10)

    # Token refresh sweep
    token_refresh_lookahead_minutes: int = Field(default=60)
    token_refresh_interval_minutes: int = Field(default=5)

    # In-process scheduler (single instance / local development)
    scheduler_enabled: bool = Field(default=False)

    # Provider endpoints and credentials
    github_api_url: str = Field(default="https://api.github.com")
    gitlab_base_url: str = Field(default="https://gitlab.com")
    gitlab_client_id: str = Field(default="")
    gitlab_client_secret: str = Field(default="")
    slack_api_url: str = Field(default="https://slack.com/api")
    discord_api_url: str = Field(default="https://discord.com/api/v10")
    discord_bot_token: str = Field(default="")
    discord_client_id: str = Field(default="")
    discord_client_secret: str = Field(default="")

    @field_validator("notification_concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Reject non-positive worker pool sizes."""
        if v < 1:
            raise ValueError("notification_concurrency must be at least 1")
        return v

    @field_validator("provider_timeout_seconds", "database_command_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Every external call must be bounded."""
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix for environment variables
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()


# Create a global settings instance lazily
settings: Settings | None = None


def get_global_settings() -> Settings:
    """Get or create the global settings instance."""
    global settings
    if settings is None:
        settings = get_settings()
    return settings
