"""Pipeweaver configuration using pydantic-settings.

Settings are read from environment variables with the PIPEWEAVER_ prefix
(e.g. PIPEWEAVER_GITHUB_TOKEN) and, when present, from a .env file in the
working directory. Environment variables take precedence over .env.
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class PipeweaverSettings(BaseSettings):
    """Service configuration from environment variables.

    Required fields (must be set via environment variables or .env):
    - github_token: token used to push branches and open pull requests
    - git_remote_url: HTTPS URL of the definitions repository
    """

    model_config = SettingsConfigDict(
        env_prefix="PIPEWEAVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    github_token: str

    # Username paired with the token in the clone URL
    github_username: str = "x-access-token"

    # Supports GitHub Enterprise
    github_base_url: str = "https://api.github.com"

    # Shared secret for X-Hub-Signature-256; signatures are not checked when unset
    webhook_secret: Optional[str] = None

    # -------------------------------------------------------------------------
    # Repository Configuration
    # -------------------------------------------------------------------------
    git_remote_url: str
    git_default_branch: str = "main"

    # Local checkout of the definitions repository
    repo_base_dir: str = "/var/lib/pipeweaver/repo"

    git_command_timeout_seconds: int = 300

    bot_name: str = "Pipeweaver Bot"
    bot_email: str = "pipeweaver-bot@users.noreply.github.com"

    # -------------------------------------------------------------------------
    # Generation Configuration
    # -------------------------------------------------------------------------
    pipelines_dir: str = "pipelines/"
    output_dir: str = "airflow-dags/"

    # Directory of dag_template.py.tmpl.<version> files; packaged templates when unset
    templates_dir: Optional[str] = None

    # -------------------------------------------------------------------------
    # Service Configuration
    # -------------------------------------------------------------------------
    queue_capacity: int = 100

    # Seconds to wait for the in-flight workflow on shutdown
    shutdown_timeout_seconds: float = 60.0

    log_level: str = "INFO"
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 8080

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_token")
    @classmethod
    def validate_github_token(cls, v: str) -> str:
        """Validate that GitHub token is not empty."""
        if not v or not v.strip():
            raise ValueError("github_token cannot be empty")
        return v

    @field_validator("webhook_secret")
    @classmethod
    def validate_webhook_secret(cls, v: Optional[str]) -> Optional[str]:
        """Treat a blank secret as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("git_remote_url", "github_base_url")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("URL cannot be empty")
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v

    @field_validator("git_default_branch")
    @classmethod
    def validate_default_branch(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("git_default_branch cannot be empty")
        return v.strip()

    @field_validator("repo_base_dir")
    @classmethod
    def validate_repo_base_dir(cls, v: str) -> str:
        """Validate that the checkout path is absolute."""
        if not Path(v).is_absolute():
            raise ValueError("repo_base_dir must be an absolute path")
        return v

    @field_validator("templates_dir")
    @classmethod
    def validate_templates_dir(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not Path(v).is_absolute():
            raise ValueError("templates_dir must be an absolute path")
        return v

    @field_validator("pipelines_dir", "output_dir")
    @classmethod
    def validate_repo_prefix(cls, v: str) -> str:
        """Normalise to a relative prefix ending in a slash."""
        v = v.strip()
        if not v or v.startswith("/") or ".." in v.split("/"):
            raise ValueError("must be a non-empty path relative to the repository root")
        return v if v.endswith("/") else v + "/"

    @field_validator("queue_capacity", "git_command_timeout_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("shutdown_timeout_seconds")
    @classmethod
    def validate_shutdown_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("shutdown_timeout_seconds must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}")
        return level

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)

    @property
    def repository_full_name(self) -> str:
        """Repository "owner/name" parsed from git_remote_url, or "" if absent."""
        path = urlsplit(self.git_remote_url).path.strip("/")
        if path.endswith(".git"):
            path = path[: -len(".git")]
        segments = [segment for segment in path.split("/") if segment]
        if len(segments) < 2:
            return ""
        return "/".join(segments[-2:])


def get_settings() -> PipeweaverSettings:
    """Create and return a PipeweaverSettings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return PipeweaverSettings()
