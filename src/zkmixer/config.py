"""Runtime configuration for the ZK-Mixer.

Values are read from the environment (prefix ``ZKMIXER_``) and, when present,
from a ``.env`` file in the working directory.
"""

import logging
from functools import lru_cache
from typing import Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from zkmixer.utils.hash import FIELD_BITS

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class MixerSettings(BaseSettings):
    """Deployment settings for a mixer instance."""

    model_config = SettingsConfigDict(
        env_prefix="ZKMIXER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tree_depth: int = Field(
        default=256,
        ge=FIELD_BITS,
        le=256,
        description="Sparse map depth; commitments and nullifier hashes need every field bit",
    )
    pool_address: str = Field(default="zkmixer-pool", description="Pool account address")
    tier_amounts: Tuple[int, int, int] = Field(
        default=(100_000, 500_000, 1_000_000),
        description="Transfer amounts for tiers 1, 2 and 3",
    )
    database_url: str = Field(default="sqlite:///zk_mixer.db")
    log_level: str = Field(default="INFO")

    @field_validator("tier_amounts")
    @classmethod
    def _positive_amounts(cls, value: Tuple[int, int, int]) -> Tuple[int, int, int]:
        if any(amount <= 0 for amount in value):
            raise ValueError("Tier amounts must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level


@lru_cache()
def get_settings() -> MixerSettings:
    """Get cached settings instance."""
    return MixerSettings()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for scripts and examples."""
    if level is None:
        level = get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
