"""
Settings for building application contexts.

Uses Pydantic BaseSettings so every value can come from the process
environment (prefixed ``STRATUM_``) or a ``.env`` file. Lists are given as
JSON, e.g. ``STRATUM_ACTIVE_PROFILES='["dev", "local"]'``.

Example:
    from stratum.config import get_settings

    settings = get_settings()
    context = ApplicationContext.from_settings(registry, settings)
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["ContextSettings", "get_settings", "setup_logging"]

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ContextSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STRATUM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    context_id: Optional[str] = Field(
        default=None,
        description="Unique id of the context; left unset when not configured",
    )
    display_name: Optional[str] = Field(
        default=None,
        description="Human readable context name; generated when not configured",
    )
    application_name: str = Field(
        default="",
        description="Name of the deployed application the context belongs to",
    )
    active_profiles: list[str] = Field(default_factory=list)
    default_profiles: list[str] = Field(default_factory=lambda: ["default"])
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("active_profiles", "default_profiles")
    @classmethod
    def validate_profiles(cls, v: list[str]) -> list[str]:
        for profile in v:
            if not profile or profile.startswith("!"):
                raise ValueError(f"Invalid profile name: {profile!r}")
        return v


@lru_cache
def get_settings() -> ContextSettings:
    return ContextSettings()


def setup_logging(settings: Optional[ContextSettings] = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
