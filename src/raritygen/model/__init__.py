"""Domain model: TraitDefinition, TraitValue, TraitValuePairing, Composite, Collection."""

from raritygen.model.base import Document
from raritygen.model.composite import Collection, Composite
from raritygen.model.trait import TraitDefinition, TraitValue, TraitValuePairing

__all__ = [
    "Collection",
    "Composite",
    "Document",
    "TraitDefinition",
    "TraitValue",
    "TraitValuePairing",
]
