"""Settings for visual-ci, read from the GitHub Actions environment.

GitHub exports ``GITHUB_*`` variables to every step; action inputs and the
test-results API credentials come in as ``VISUAL_CI_*`` variables.

Usage:
    from visual_ci.config import get_settings

    settings = get_settings()
    owner, repo = settings.repo
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from visual_ci.errors import ConfigurationError

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_API_URL = "https://app.visual-ci.dev/api/"


class Settings(BaseSettings):
    """visual-ci settings.

    Everything has a default so that commands can start and report a clear
    error for the one value they actually need.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # === GitHub Actions runtime ===

    github_token: str = Field(
        default="",
        validation_alias=AliasChoices("GITHUB_TOKEN", "VISUAL_CI_GITHUB_TOKEN"),
        description="Token used for GitHub REST API calls",
    )
    github_api_url: str = Field(
        default=DEFAULT_GITHUB_API_URL,
        validation_alias="GITHUB_API_URL",
        description="GitHub REST API base URL (differs on GitHub Enterprise)",
    )
    github_repository: str = Field(
        default="",
        validation_alias="GITHUB_REPOSITORY",
        description="Repository in owner/repo form",
    )
    github_run_id: int | None = Field(
        default=None,
        validation_alias="GITHUB_RUN_ID",
        description="ID of the running workflow run",
    )
    github_event_name: str = Field(
        default="",
        validation_alias="GITHUB_EVENT_NAME",
        description="Name of the event that triggered the workflow",
    )
    github_event_path: str | None = Field(
        default=None,
        validation_alias="GITHUB_EVENT_PATH",
        description="Path to the JSON webhook payload of the triggering event",
    )
    github_sha: str = Field(
        default="",
        validation_alias="GITHUB_SHA",
        description="Commit SHA that triggered the workflow",
    )
    github_output: str | None = Field(
        default=None,
        validation_alias="GITHUB_OUTPUT",
        description="File that step outputs are appended to",
    )

    # === Test-results API ===

    api_token: str = Field(
        default="",
        validation_alias="VISUAL_CI_API_TOKEN",
        description="Token for the test-results API",
    )
    api_url: str = Field(
        default=DEFAULT_API_URL,
        validation_alias="VISUAL_CI_API_URL",
        description="Base URL of the test-results API",
    )

    # === Polling ===

    deployment_timeout_seconds: float = Field(
        default=30 * 60,
        gt=0,
        validation_alias="VISUAL_CI_DEPLOYMENT_TIMEOUT_SECONDS",
    )
    deployment_min_poll_seconds: float = Field(
        default=1,
        gt=0,
        validation_alias="VISUAL_CI_DEPLOYMENT_MIN_POLL_SECONDS",
    )
    deployment_max_poll_seconds: float = Field(
        default=10,
        gt=0,
        validation_alias="VISUAL_CI_DEPLOYMENT_MAX_POLL_SECONDS",
    )
    workflow_timeout_seconds: float = Field(
        default=60 * 60,
        gt=0,
        validation_alias="VISUAL_CI_WORKFLOW_TIMEOUT_SECONDS",
    )
    workflow_poll_seconds: float = Field(
        default=10,
        gt=0,
        validation_alias="VISUAL_CI_WORKFLOW_POLL_SECONDS",
    )

    # === Logging ===

    service_name: str = Field(
        default="visual-ci",
        description="Service name for structured logging",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @property
    def repo(self) -> tuple[str, str]:
        """Split GITHUB_REPOSITORY into (owner, repo)."""
        owner, _, name = self.github_repository.partition("/")
        if not owner or not name or "/" in name:
            raise ConfigurationError(
                f"GITHUB_REPOSITORY must look like 'owner/repo', got '{self.github_repository}'"
            )
        return owner, name

    def require_github_token(self) -> str:
        if not self.github_token:
            raise ConfigurationError("GITHUB_TOKEN is not set")
        return self.github_token

    def require_api_token(self) -> str:
        if not self.api_token:
            raise ConfigurationError("VISUAL_CI_API_TOKEN is not set")
        return self.api_token


@lru_cache
def get_settings() -> Settings:
    return Settings()
