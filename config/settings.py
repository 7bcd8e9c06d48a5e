"""Application settings using Pydantic."""
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///jobtrack.db",
        description="SQLAlchemy database URL",
    )

    # Google OAuth (web flow)
    google_client_id: Optional[str] = Field(
        default=None,
        description="OAuth client ID from Google Cloud Console",
    )
    google_client_secret: Optional[str] = Field(
        default=None,
        description="OAuth client secret from Google Cloud Console",
    )
    base_url: str = Field(
        default="http://localhost:3000",
        description="Public base URL, used to build the OAuth redirect URI",
    )

    # JSearch API (RapidAPI)
    jsearch_api_key: Optional[str] = Field(
        default=None,
        description="RapidAPI key for JSearch",
    )
    jsearch_api_host: str = Field(
        default="jsearch.p.rapidapi.com",
        description="RapidAPI host header for JSearch",
    )

    # Mailbox scanning
    email_check_interval_minutes: int = Field(
        default=30,
        description="How often to scan a connected mailbox (minutes)",
    )
    email_initial_scan_delay_seconds: int = Field(
        default=5,
        description="Delay before the first scan after a mailbox is connected",
    )
    email_lookback_days: int = Field(
        default=3,
        description="Only messages newer than this many days are listed",
    )
    email_max_messages: int = Field(
        default=10,
        description="Maximum number of messages listed per scan",
    )
    email_fetch_concurrency: int = Field(
        default=5,
        description="Maximum number of message fetches in flight per scan",
    )
    email_connection_poll_seconds: int = Field(
        default=60,
        description="How often the service looks for newly connected or removed mailboxes",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for a rotating log file",
    )

    # Paths
    config_dir: Path = Field(
        default=Path(__file__).parent,
        description="Configuration directory",
    )

    @property
    def oauth_redirect_uri(self) -> str:
        """Callback URL registered with Google for the OAuth code exchange."""
        return f"{self.base_url.rstrip('/')}/auth/google/callback"

    @property
    def project_root(self) -> Path:
        """Project root directory."""
        return self.config_dir.parent


# Global settings instance
settings = Settings()
