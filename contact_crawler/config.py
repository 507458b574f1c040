"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Redis (cache store and job queue)
    redis_url: RedisDsn = Field(default="redis://localhost:6379/0")  # type: ignore[assignment]
    redis_socket_timeout: float = 2.0
    cache_ttl_seconds: int = 3600
    queue_key: str = "crawler:queue"

    # Crawler
    crawl_concurrency: int = 5
    crawl_max_depth: int = 2
    crawl_max_pages: int | None = 100
    request_delay_ms: int = 1000  # Pause between batches
    request_timeout_ms: int = 10000
    request_retries: int = 3
    retry_delay_ms: int = 1000  # Multiplied by the attempt number
    render_timeout_ms: int = 15000
    robots_timeout_ms: int = 10000
    user_agent: str = "AggressiveCrawler"
    use_cached_result: bool = False  # Return a cache hit instead of re-crawling

    # Worker
    worker_poll_interval: float = 1.0
    job_record_ttl_seconds: int = 60 * 60 * 24

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.env == "test"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
