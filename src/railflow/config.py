"""
Configuration: typed settings loaded from the environment / .env.

Uses pydantic-settings so an application embedding railflow can tune it with
RAILFLOW_* variables:

    RAILFLOW_LOG_LEVEL=DEBUG
    RAILFLOW_LOG_FORMAT=json
    RAILFLOW_TRACE_STEPS=true
    RAILFLOW_DEFAULT_MESSAGES='{"forbidden": "You shall not pass"}'

Settings are read once (get_settings() caches them) and applied explicitly by
apply_settings() / configure_logging(); importing railflow never touches the
environment.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from railflow.error import Error


class RailflowSettings(BaseSettings):
    """
    Library settings.

    Load order (highest priority first):
      1. Environment variables (RAILFLOW_ prefix)
      2. .env file in the working directory
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="RAILFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Threshold for railflow log events")
    log_format: Literal["console", "json"] = Field(
        default="console",
        description="Renderer used by configure_logging()",
    )
    trace_steps: bool = Field(
        default=False,
        description="Emit a DEBUG event for every step a flow executes",
    )
    default_messages: dict[str, str] = Field(
        default_factory=dict,
        description="Error kind → default message, merged into Error.default_messages",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Reject names the logging module doesn't know."""
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value!r}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> RailflowSettings:
    return RailflowSettings()


def apply_settings(settings: RailflowSettings | None = None) -> RailflowSettings:
    """Merge configured default messages into the Error registry."""
    settings = settings or get_settings()
    Error.default_messages.update(settings.default_messages)
    return settings
