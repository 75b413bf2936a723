"""Composite and collection documents."""

from __future__ import annotations

from pydantic import Field

from raritygen.model.base import Document
from raritygen.model.trait import TraitValuePairing


class Composite(Document):
    """One generated artwork: an id plus its trait pairings in draw order."""

    id: str
    traits: list[TraitValuePairing] = Field(default_factory=list)

    def with_traits(self, traits: list[TraitValuePairing]) -> Composite:
        """Return a copy of this composite carrying ``traits``."""
        return self.model_copy(update={"traits": traits})


class Collection(Document):
    """A collection document. Only the name is used, for diagnostics."""

    id: str
    name: str = ""
