"""Rank tiers and the tier-size configuration."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RankTier(StrEnum):
    """Rank labels, rarest first."""

    LEGENDARY = "Legendary"
    RARE = "Rare"
    UNCOMMON = "Uncommon"
    COMMON = "Common"


class TierConfigurationError(ValueError):
    """Exception raised for malformed or inconsistent tier sizes.

    Attributes:
        values: The offending operands, by tier name.
    """

    def __init__(self, message: str, **values: Any) -> None:
        super().__init__(message)
        self.values = values


def _parse_count(name: str, raw: Any) -> int:
    if isinstance(raw, bool):
        raise TierConfigurationError(f"{name} count must be an integer, got {raw!r}", **{name: raw})
    try:
        count = int(str(raw).strip())
    except (TypeError, ValueError):
        raise TierConfigurationError(
            f"{name} count must be an integer, got {raw!r}", **{name: raw}
        ) from None
    if count < 0:
        raise TierConfigurationError(
            f"{name} count must not be negative, got {count}", **{name: count}
        )
    return count


class TierConfiguration(BaseModel):
    """How many of the rarest composites fall in each tier.

    The remainder are Common. Sizes must satisfy
    ``legendary <= rare <= uncommon``; see :meth:`validate_order`.
    """

    model_config = ConfigDict(frozen=True)

    legendary: int = Field(ge=0, description="Number of Legendary composites")
    rare: int = Field(ge=0, description="Number of Rare composites")
    uncommon: int = Field(ge=0, description="Number of Uncommon composites")

    @classmethod
    def parse(cls, legendary: Any, rare: Any, uncommon: Any) -> TierConfiguration:
        """Build from raw values such as environment strings.

        Raises:
            TierConfigurationError: If a value is not a non-negative integer.
        """
        return cls(
            legendary=_parse_count("Legendary", legendary),
            rare=_parse_count("Rare", rare),
            uncommon=_parse_count("Uncommon", uncommon),
        )

    def validate_order(self) -> None:
        """Check ``legendary <= rare <= uncommon``.

        Raises:
            TierConfigurationError: Naming the first inequality that fails.
        """
        if self.legendary > self.rare:
            raise TierConfigurationError(
                f"Legendary count {self.legendary} is greater than Rare count {self.rare}",
                legendary=self.legendary,
                rare=self.rare,
            )
        if self.rare > self.uncommon:
            raise TierConfigurationError(
                f"Rare count {self.rare} is greater than Uncommon count {self.uncommon}",
                rare=self.rare,
                uncommon=self.uncommon,
            )

    def tier_for(self, position: int) -> RankTier:
        """Tier for a zero-based position in the rarest-first ordering."""
        if position < self.legendary:
            return RankTier.LEGENDARY
        if position < self.legendary + self.rare:
            return RankTier.RARE
        if position < self.legendary + self.rare + self.uncommon:
            return RankTier.UNCOMMON
        return RankTier.COMMON
