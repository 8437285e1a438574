"""Application configuration"""

from typing import Optional

from pydantic import Field, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

from taskbridge.services.identity import DedupMode

DEFAULT_TUDUDI_URL = "http://localhost:3002/api/v1"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_SYNC_INTERVAL_SECONDS = 300
MIN_SYNC_INTERVAL_SECONDS = 10
DEFAULT_URLS = {"tududi_url": DEFAULT_TUDUDI_URL, "github_api_url": DEFAULT_GITHUB_API_URL}


class ConfigurationError(RuntimeError):
    """Raised when the process cannot start with the given environment."""


class Settings(BaseSettings):
    """Application settings"""

    # Credentials
    github_token: str = Field(min_length=1)
    tududi_api_key: str = Field(min_length=1)

    # Endpoints
    tududi_url: str = DEFAULT_TUDUDI_URL
    github_api_url: str = DEFAULT_GITHUB_API_URL
    http_timeout_seconds: float = 10.0

    # Sync
    sync_interval: int = DEFAULT_SYNC_INTERVAL_SECONDS
    dry_run: bool = False
    # One strategy per deployment; switching modes on an existing sink duplicates tasks.
    dedup_mode: DedupMode = DedupMode.TITLE
    assigned_issue_limit: int = 50
    repo_issue_page_size: int = 20
    source_tag: str = "github"

    # Logging
    log_level: str = "INFO"
    debug: bool = False

    # Control API
    host: str = "0.0.0.0"
    port: int = 8000
    # When set, all routes except /health require "Authorization: Bearer <api_token>".
    api_token: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = False

    @field_validator("tududi_url", "github_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str, info: ValidationInfo) -> str:
        value = (value or "").strip().rstrip("/")
        if not value:
            return DEFAULT_URLS[info.field_name]
        return value

    @field_validator("sync_interval", mode="before")
    @classmethod
    def _apply_interval_floor(cls, value) -> int:
        try:
            seconds = int(value)
        except (TypeError, ValueError):
            return DEFAULT_SYNC_INTERVAL_SECONDS
        if seconds < MIN_SYNC_INTERVAL_SECONDS:
            return DEFAULT_SYNC_INTERVAL_SECONDS
        return seconds

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level.upper()


def load_settings(**overrides) -> Settings:
    """Build settings once at startup, turning validation failures into ConfigurationError."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        missing = sorted(
            str(err["loc"][0]).upper()
            for err in e.errors()
            if err.get("loc") and err["loc"][0] in ("github_token", "tududi_api_key")
        )
        if missing:
            raise ConfigurationError(
                f"Missing {' or '.join(missing)} environment variables."
            ) from e
        raise ConfigurationError(f"Invalid configuration: {e}") from e
