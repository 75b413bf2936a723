"""Configuration loading for ranking runs.

Settings come from ``RANK_*`` environment variables and an optional .env
file. Tier sizes are kept as raw strings until a run asks for them, so a
malformed value is reported as a configuration error instead of failing at
load time.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from raritygen.engine.scoring import ScoringStrategy
from raritygen.engine.tiers import TierConfiguration

logger = logging.getLogger(__name__)


class RankSettings(BaseSettings):
    """Settings for rank generation.

    Environment Variables:
        RANK_LEGENDARY: Number of Legendary composites (default: 1)
        RANK_RARE: Number of Rare composites (default: 10)
        RANK_UNCOMMON: Number of Uncommon composites (default: 100)
        RANK_SCORING_STRATEGY: frequency, frequency-unnormalized or product
            (default: frequency)
        RANK_MAX_CONCURRENT_UPDATES: Parallel store writes (default: 16)
        RANK_UPDATE_MAX_ATTEMPTS: Attempts per store write (default: 3)
        RANK_UPDATE_RETRY_WAIT: Initial backoff in seconds (default: 0.5)
        RANK_STORE_DIR: Root of the file-backed store (default: data)

    Example:
        >>> settings = RankSettings()  # Loads from environment
        >>> settings.tier_configuration()
        TierConfiguration(legendary=1, rare=10, uncommon=100)
    """

    model_config = SettingsConfigDict(
        env_prefix="RANK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Tier sizes, parsed by tier_configuration()
    legendary: str = Field(default="1", description="Number of Legendary composites")
    rare: str = Field(default="10", description="Number of Rare composites")
    uncommon: str = Field(default="100", description="Number of Uncommon composites")

    scoring_strategy: ScoringStrategy = Field(
        default=ScoringStrategy.FREQUENCY,
        description="Rarity scoring strategy",
    )

    # Persistence
    max_concurrent_updates: int = Field(
        default=16,
        ge=1,
        le=200,
        description="Maximum concurrent composite updates",
    )
    update_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per composite update before giving up",
    )
    update_retry_wait: float = Field(
        default=0.5,
        ge=0.0,
        le=60.0,
        description="Initial wait before retrying a failed update (seconds)",
    )
    store_dir: str = Field(default="data", description="Root of the file-backed store")

    @field_validator("legendary", "rare", "uncommon", mode="before")
    @classmethod
    def stringify_count(cls, v: Any) -> Any:
        """Accept ints as well as strings for tier sizes."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("scoring_strategy", mode="before")
    @classmethod
    def normalize_strategy(cls, v: Any) -> Any:
        """Normalize strategy string to enum."""
        if isinstance(v, str):
            return ScoringStrategy(v.strip().lower())
        return v

    def tier_configuration(self) -> TierConfiguration:
        """Parse the tier sizes.

        Raises:
            TierConfigurationError: If a size is not a non-negative integer.
        """
        return TierConfiguration.parse(self.legendary, self.rare, self.uncommon)

    def __repr__(self) -> str:
        return (
            f"RankSettings("
            f"legendary={self.legendary!r}, "
            f"rare={self.rare!r}, "
            f"uncommon={self.uncommon!r}, "
            f"strategy={self.scoring_strategy.value}, "
            f"max_concurrent={self.max_concurrent_updates}, "
            f"attempts={self.update_max_attempts}"
            f")"
        )


@lru_cache
def get_rank_settings() -> RankSettings:
    """Get cached settings singleton.

    To reload, call get_rank_settings.cache_clear() first.
    """
    settings = RankSettings()
    logger.info("Loaded rank settings: %s", settings)
    return settings
