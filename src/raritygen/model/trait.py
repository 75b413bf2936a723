"""Trait definitions, trait values and their per-composite pairings."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from raritygen.model.base import Document


class TraitDefinition(Document):
    """A named axis of variation, e.g. "Background".

    ``id`` is the join key used by every scorer.
    """

    id: str
    name: str
    z_index: int = Field(default=0, description="Draw order")
    trait_set_ids: list[str] = Field(default_factory=list)
    is_metadata_only: bool = False
    is_artwork_only: bool = False
    is_always_unique: bool = False
    exclude_from_duplicate_detection: bool = False


class TraitValue(Document):
    """One concrete option for a trait.

    ``rarity`` is the designer-assigned weight; smaller means rarer.
    """

    id: str
    name: str
    rarity: float = Field(default=1.0, gt=0)


class TraitValuePairing(Document):
    """Links a trait to the value selected for one composite.

    ``trait_value`` is None when the trait is not present on the composite.
    """

    trait: TraitDefinition
    trait_value: TraitValue | None = None
    image_layer: dict[str, Any] | None = None

    @property
    def is_present(self) -> bool:
        return self.trait_value is not None
