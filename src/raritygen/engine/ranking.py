"""Rank assignment: order a scored population and label it by tier.

Labels depend on the whole population, so ranking always completes over the
full snapshot before any composite is handed back for persistence.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from raritygen.engine.scoring import (
    RANK_TRAIT_NAME,
    RANK_TRAIT_Z_INDEX,
    RarityScorer,
    is_rank_pairing,
    scorable_pairings,
)
from raritygen.engine.tiers import RankTier, TierConfiguration
from raritygen.model import Composite, TraitDefinition, TraitValue, TraitValuePairing

logger = logging.getLogger(__name__)


def make_rank_trait() -> TraitDefinition:
    """Create the Rank trait shared by every composite in one run."""
    return TraitDefinition(
        id=str(uuid.uuid4()),
        name=RANK_TRAIT_NAME,
        z_index=RANK_TRAIT_Z_INDEX,
        trait_set_ids=[],
        is_metadata_only=True,
        is_artwork_only=False,
        is_always_unique=False,
        exclude_from_duplicate_detection=True,
    )


def apply_rank(composite: Composite, tier: RankTier, rank_trait: TraitDefinition) -> Composite:
    """Return ``composite`` with a rank pairing for ``tier`` appended.

    A rank pairing left by an earlier run is replaced so each composite
    carries exactly one.
    """
    rank_pairing = TraitValuePairing(
        trait=rank_trait,
        trait_value=TraitValue(id=str(uuid.uuid4()), name=tier.value, rarity=1),
        image_layer=None,
    )
    traits = [p for p in composite.traits if not is_rank_pairing(p)]
    return composite.with_traits([*traits, rank_pairing])


@dataclass(frozen=True)
class RankedComposite:
    """One composite's place in the ranking.

    ``composite`` already carries its rank pairing.
    """

    position: int
    score: float
    tier: RankTier
    composite: Composite

    @property
    def composite_id(self) -> str:
        return self.composite.id


class RankAssigner:
    """Sorts a population rarest first and assigns tier labels.

    Example:
        >>> assigner = RankAssigner(FrequencyScorer(), TierConfiguration.parse(1, 2, 3))
        >>> ranked = assigner.assign(population)
        >>> ranked[0].tier
        <RankTier.LEGENDARY: 'Legendary'>
    """

    def __init__(self, scorer: RarityScorer, tiers: TierConfiguration) -> None:
        self.scorer = scorer
        self.tiers = tiers

    def sort(self, population: Sequence[Composite]) -> list[tuple[Composite, float]]:
        """Score ``population`` and order it rarest first.

        Composites with nothing to score go last. Equal keys keep their
        population order.
        """
        scores = self.scorer.score_population(population)
        scored = list(zip(population, scores, strict=True))
        return sorted(
            scored,
            key=lambda item: (not scorable_pairings(item[0]), self.scorer.sort_key(item[1])),
        )

    def assign(
        self,
        population: Sequence[Composite],
        rank_trait: TraitDefinition | None = None,
    ) -> list[RankedComposite]:
        """Rank the whole population.

        Args:
            population: Snapshot of every composite in the scope.
            rank_trait: Trait to label with. A fresh one is made if omitted.

        Returns:
            Ranked composites, rarest first, each with its rank pairing.

        Raises:
            TierConfigurationError: If the tier sizes are out of order. Raised
                before any scoring.
        """
        self.tiers.validate_order()
        rank_trait = rank_trait or make_rank_trait()

        ranked = []
        for position, (composite, score) in enumerate(self.sort(population)):
            tier = self.tiers.tier_for(position)
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "Rank %d: composite %s score=%.4f tier=%s traits=%s",
                    position,
                    composite.id,
                    score,
                    tier.value,
                    self.scorer.trait_scores(composite),
                )
            ranked.append(
                RankedComposite(
                    position=position,
                    score=score,
                    tier=tier,
                    composite=apply_rank(composite, tier, rank_trait),
                )
            )
        return ranked


def count_tiers(ranked: Sequence[RankedComposite]) -> dict[RankTier, int]:
    """Tally ranked composites per tier, every tier present."""
    counts = Counter(r.tier for r in ranked)
    return {tier: counts.get(tier, 0) for tier in RankTier}
