"""Environment configuration and logging setup."""

import logging
import os
import sys
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .combinators import once

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s'


class Settings(BaseModel):
    """Runtime settings, read from ``UNDERBAR_*`` environment variables."""
    log_level: str = Field(
        default="INFO",
        description="Root logging level name"
    )
    max_collection_size: int = Field(
        default=10_000,
        ge=1,
        description="Largest collection the HTTP service accepts"
    )
    shuffle_seed: Optional[int] = Field(
        default=None,
        description="Seed for the service's shuffle RNG (random when unset)"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Accept any standard logging level name, case-insensitive."""
        level = str(v).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        values = {}
        if environ.get("UNDERBAR_LOG_LEVEL"):
            values["log_level"] = environ["UNDERBAR_LOG_LEVEL"]
        if environ.get("UNDERBAR_MAX_COLLECTION_SIZE"):
            values["max_collection_size"] = environ["UNDERBAR_MAX_COLLECTION_SIZE"]
        if environ.get("UNDERBAR_SHUFFLE_SEED"):
            values["shuffle_seed"] = environ["UNDERBAR_SHUFFLE_SEED"]
        return cls(**values)


@once
def get_settings() -> Settings:
    """Process-wide settings, read from the environment on first use."""
    return Settings.from_env()


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Configure structured logging for the service."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    return logging.getLogger('underbar')
