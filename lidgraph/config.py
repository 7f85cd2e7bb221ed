"""
Configuration for lidgraph.

Uses pydantic-settings for environment variable loading. Every setting has
a default suitable for embedding the store in an application; override
through LIDGRAPH_* environment variables or by passing Settings(...)
explicitly to Database.

Invariants:
    - Settings are read once, when a Database is constructed
    - Invalid values are rejected at construction, never at operation time
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Store configuration loaded from environment."""

    # How put() treats fields the schema does not declare
    unknown_fields: Literal["allow", "ignore", "reject"] = Field(
        default="allow",
        description="allow: store as scalars, ignore: drop, reject: report and drop",
    )

    # Level for discarded field writes (validation and unique failures)
    error_log_level: str = Field(default="WARNING", description="Level for rejected writes")

    # Used by setup_logging()
    log_level: str = Field(default="INFO", description="Root logging level")
    log_format: Literal["text", "json"] = Field(default="text", description="Log line format")

    model_config = {"env_prefix": "LIDGRAPH_"}

    @field_validator("error_log_level", "log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LEVELS:
            raise ValueError(f"Invalid log level '{value}'. Must be one of: {', '.join(_LEVELS)}")
        return level

    @property
    def error_level(self) -> int:
        """error_log_level as a logging constant."""
        return getattr(logging, self.error_log_level)


def setup_logging(settings: Settings | None = None) -> None:
    """Configure root logging based on configuration.

    Args:
        settings: Store settings, loaded from the environment if omitted
    """
    settings = settings or Settings()
    level = getattr(logging, settings.log_level, logging.INFO)

    if settings.log_format == "json":
        formatter = logging.Formatter(
            '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
        )
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]
