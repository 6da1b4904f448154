"""Configuration settings for the resource synchronization layer.

This module defines the configuration settings using Pydantic's
SettingsConfigDict to load environment variables from a .env file.
"""

import logging
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings class for the resource synchronization layer."""

    # ENVIRONMENT CONFIG
    environment: str = "dev"
    testing: bool = bool(0)
    log_level: str = "INFO"

    # REMOTE API CONFIG
    api_base_url: str = "http://localhost:5000"
    api_token: Optional[str] = None
    request_timeout: float = 30.0  # seconds, enforced by the transport

    # TRANSPORT CONFIG
    transport: Literal["http", "sandbox"] = "http"

    # TABLE CONFIG
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1)
    mutation_policy: Literal["reject", "queue"] = "reject"

    # SANDBOX API CONFIG
    project_name: str = "Resource Sync Sandbox API"

    model_config = SettingsConfigDict(
        env_file=["../../.env", "../.env", ".env"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_page_sizes(self) -> "Settings":
        if self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size must not exceed max_page_size")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Get the settings for the application."""
    logger.info("Loading config settings from the environment...")

    settings = Settings()

    if settings.api_token:
        logger.info("API token is set")
    else:
        logger.warning("API token is not set, requests will be sent unauthenticated")

    return settings
