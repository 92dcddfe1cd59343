"""
Application configuration using Pydantic Settings.

Values come from environment variables or a local `.env` file.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "test"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Local durable storage
    # ===========================================
    DATABASE_URL: str = "sqlite:///./todotoday.db"

    # Prefix of the four collection keys (<prefix>_tasks, <prefix>_events, ...)
    STORAGE_KEY_PREFIX: str = "todoToday"

    # ===========================================
    # Synchronization
    # ===========================================
    # When disabled, local mutations are never propagated to the remote store
    SYNC_ENABLED: bool = True

    # ===========================================
    # Views
    # ===========================================
    # Length of the "upcoming" window used by the due-items summary
    UPCOMING_DAYS: int = 7


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
