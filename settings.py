"""
Application configuration using Pydantic Settings.

Values come from environment variables (or a .env file). A Settings object
is built once at startup and handed to the application factory; nothing else
reads the environment.
"""
import logging
import os
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LOG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "logs")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Server Configuration
    API_HOST: str = "localhost"
    API_PORT: int = 8000
    DEBUG: bool = False

    # Logging Configuration
    LOG_DIR: str = DEFAULT_LOG_DIR  # empty disables the log file
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @property
    def log_level(self) -> int:
        return logging.DEBUG if self.DEBUG else logging.INFO


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()
