"""
Configuration management for slpcore.
"""

from __future__ import annotations

import sys

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from slpcore.constants import OP_RETURN_VALUE_OVERHEAD, STANDARD_DUST_LIMIT


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SLP_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    dust_limit: int = Field(default=STANDARD_DUST_LIMIT, ge=0)
    fee_rate: int = Field(default=1, ge=1)  # sat/byte
    op_return_overhead: int = Field(default=OP_RETURN_VALUE_OVERHEAD, ge=0)

    # Seconds allowed for the ancestry validator call, None to wait forever
    validator_timeout: float | None = 30.0

    log_level: str = "INFO"


def get_settings() -> Settings:
    return Settings()


def setup_logging(level: str) -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )
