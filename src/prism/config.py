"""Configuration management using pydantic-settings."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Connected Instagram Business account
    ig_access_token: Optional[str] = Field(
        default=None,
        description="Long-lived access token for the Instagram Business account",
    )
    ig_business_id: Optional[str] = Field(
        default=None,
        description="Instagram Business account ID",
    )

    # Graph API
    graph_api_version: str = Field(
        default="v24.0",
        description="Graph API version used for all requests",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout in seconds",
    )

    # Dashboard limits
    max_posts: int = Field(
        default=500,
        ge=1,
        le=2000,
        description="Maximum number of media items to load",
    )
    max_stories: int = Field(
        default=25,
        ge=1,
        le=50,
        description="Maximum number of active stories to load",
    )
    max_insights_posts: int = Field(
        default=200,
        ge=0,
        description="Number of most recent posts that get per-item insights",
    )
    insights_batch_size: int = Field(
        default=50,
        ge=1,
        description="Concurrent insight fetches per batch",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    @property
    def graph_base_url(self) -> str:
        """Base URL of the versioned Graph API."""
        return f"https://graph.facebook.com/{self.graph_api_version}"

    @property
    def is_instagram_configured(self) -> bool:
        """Check if an Instagram Business account is connected."""
        return bool(self.ig_access_token and self.ig_business_id)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
