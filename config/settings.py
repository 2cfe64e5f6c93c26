"""Configuration management using pydantic-settings."""
from typing import Optional

from pydantic_settings import BaseSettings

from app.cache.core import FreshnessPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Site being measured
    site_name: str = "My Site"
    site_url: str = "http://localhost/"

    # Cache settings
    cache_key: str = "site_speed_api_data"
    cache_ttl_seconds: int = 3600
    # None means 2 x cache_ttl_seconds
    cache_store_expiry_seconds: Optional[int] = None
    cache_database_url: str = "sqlite:///./site_speed.db"

    # Refresh job
    refresh_delay_seconds: float = 10.0
    producer_timeout_seconds: float = 10.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def freshness_policy(self) -> FreshnessPolicy:
        """Build the cache timing policy from these settings."""
        return FreshnessPolicy(
            ttl=self.cache_ttl_seconds,
            store_expiry=self.cache_store_expiry_seconds,
            schedule_delay=self.refresh_delay_seconds,
            producer_timeout=self.producer_timeout_seconds,
        )


settings = Settings()
