"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "Dragon Quest Sessions"
    debug: bool = False
    port: int = 8011
    log_level: str = "INFO"
    json_logs: bool = False

    # Session engine
    max_tokens: int = 10
    tick_interval_seconds: float = 1.0
    event_queue_size: int = 100

    # Activity modules
    break_extension_seconds: int = 30

    # Simulated content generation
    content_latency_seconds: float = 2.0
    content_api_key: str = ""
    require_content_api_key: bool = False

    # Redis (optional, summaries fall back to memory when empty)
    redis_url: str = ""

    # Summaries
    summary_ttl_seconds: int = 86400 * 30  # 30 days

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    @model_validator(mode="after")
    def validate_required_settings(self):
        """Validate numeric ranges and enumerated values."""
        errors = []

        if self.max_tokens < 1:
            errors.append("MAX_TOKENS must be at least 1")
        if self.tick_interval_seconds <= 0:
            errors.append("TICK_INTERVAL_SECONDS must be positive")
        if self.event_queue_size < 1:
            errors.append("EVENT_QUEUE_SIZE must be at least 1")
        if self.break_extension_seconds <= 0:
            errors.append("BREAK_EXTENSION_SECONDS must be positive")
        if self.content_latency_seconds < 0:
            errors.append("CONTENT_LATENCY_SECONDS cannot be negative")
        if self.log_level.upper() not in LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

        if self.require_content_api_key and not self.content_api_key:
            errors.append("CONTENT_API_KEY is required when REQUIRE_CONTENT_API_KEY is set")

        if errors:
            raise ValueError(f"Configuration errors: {'; '.join(errors)}")

        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
