"""Configuration settings for html_pagegen.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: build file > env vars > defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the HTML_PAGEGEN_
    prefix. Values declared per page in a build file take precedence.
    """

    model_config = SettingsConfigDict(
        env_prefix="HTML_PAGEGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Page defaults
    default_filename: str = Field(
        default="index.html",
        min_length=1,
        description="Output filename for pages that do not declare one",
    )
    show_errors: bool = Field(
        default=True,
        description="Publish a detailed error page instead of 'ERROR'",
    )
    cache: bool = Field(
        default=True,
        description="Skip regenerating pages whose template and assets did not change",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
