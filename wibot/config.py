"""Application configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings validated at startup."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    telegram_bot_token: str = Field(..., alias="TELEGRAM_BOT_TOKEN")
    telegram_api_base_url: str = Field(
        default="https://api.telegram.org",
        alias="TELEGRAM_API_BASE_URL",
    )
    telegram_poll_timeout_seconds: int = Field(default=30, alias="TELEGRAM_POLL_TIMEOUT_SECONDS")
    xai_api_token: str = Field(..., alias="XAI_API_TOKEN")
    xai_base_url: str = Field(default="https://api.x.ai/v1", alias="XAI_BASE_URL")
    xai_model: str = Field(default="grok-beta", alias="XAI_MODEL")
    xai_temperature: float = Field(default=0.0, alias="XAI_TEMPERATURE")
    # Telegram user id allowed to run /botstats.
    bot_owner_id: int = Field(..., alias="BOT_OWNER_ID")
    database_path: Path = Field(default=Path("data") / "tasks.db", alias="DATABASE_PATH")
    request_timeout_seconds: float = Field(default=60.0, alias="REQUEST_TIMEOUT_SECONDS")
    scheduler_interval_seconds: float = Field(default=60.0, alias="SCHEDULER_INTERVAL_SECONDS")
    connect_max_retries: int = Field(default=5, ge=1, alias="CONNECT_MAX_RETRIES")
    connect_retry_delay_seconds: float = Field(default=5.0, alias="CONNECT_RETRY_DELAY_SECONDS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()
