"""Rarity scoring strategies.

A scorer turns a composite's trait selections into one real number, relative
to the population it is ranked against. Every scorer declares the direction
in which its scores mean "rarer" so the ranking step can sort without knowing
which strategy produced them:

    FrequencyScorer      higher is rarer (default, normalized by modal count)
    WeightProductScorer  lower is rarer

A composite with no scorable trait values scores 0 under every strategy.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Sequence
from enum import StrEnum
from typing import ClassVar

from raritygen.engine.tiers import RankTier
from raritygen.model import Composite, TraitValuePairing

logger = logging.getLogger(__name__)

RANK_TRAIT_NAME = "Rank"
RANK_TRAIT_Z_INDEX = 99

_TIER_NAMES = frozenset(tier.value for tier in RankTier)


class ScoreDirection(StrEnum):
    """Which end of a scorer's range holds the rarest composites."""

    HIGHER_IS_RARER = "higher_is_rarer"
    LOWER_IS_RARER = "lower_is_rarer"


class ScoringStrategy(StrEnum):
    """Selectable scoring strategies."""

    FREQUENCY = "frequency"
    FREQUENCY_UNNORMALIZED = "frequency-unnormalized"
    PRODUCT = "product"


class ScoringError(Exception):
    """Exception raised when a scorer is used incorrectly."""

    pass


def is_rank_pairing(pairing: TraitValuePairing) -> bool:
    """True if ``pairing`` is a rank label written by an earlier run.

    A designer trait that is merely called "Rank" does not match: the trait
    flags, draw order and tier-named value must all look like ours.
    """
    trait = pairing.trait
    return (
        trait.name == RANK_TRAIT_NAME
        and trait.is_metadata_only
        and trait.exclude_from_duplicate_detection
        and trait.z_index == RANK_TRAIT_Z_INDEX
        and pairing.image_layer is None
        and pairing.trait_value is not None
        and pairing.trait_value.name in _TIER_NAMES
    )


def first_pairings(composite: Composite) -> dict[str, TraitValuePairing]:
    """Map trait id to the composite's first pairing for that trait.

    Rank labels from earlier runs are skipped so they never feed back into
    the score.
    """
    pairings: dict[str, TraitValuePairing] = {}
    for pairing in composite.traits:
        if is_rank_pairing(pairing):
            continue
        pairings.setdefault(pairing.trait.id, pairing)
    return pairings


def scorable_pairings(composite: Composite) -> list[TraitValuePairing]:
    """Pairings that contribute to a score: first per trait, value present."""
    return [p for p in first_pairings(composite).values() if p.is_present]


class TraitValueIndex:
    """Occurrence counts of trait values across one population.

    Built once per ranking run. Composites on which a trait has no pairing,
    or a pairing without a value, are counted in that trait's absent bucket
    (keyed by None).
    """

    def __init__(self, population: Sequence[Composite]) -> None:
        self._size = len(population)
        self._counts: dict[str, Counter[str | None]] = {}

        per_composite = [first_pairings(c) for c in population]
        trait_ids: dict[str, None] = {}
        for pairings in per_composite:
            trait_ids.update(dict.fromkeys(pairings))

        for trait_id in trait_ids:
            counter: Counter[str | None] = Counter()
            for pairings in per_composite:
                pairing = pairings.get(trait_id)
                present = pairing is not None and pairing.is_present
                counter[pairing.trait_value.id if present else None] += 1
            self._counts[trait_id] = counter

    @property
    def population_size(self) -> int:
        return self._size

    def count(self, trait_id: str, value_id: str | None) -> int:
        """Number of composites whose pairing for ``trait_id`` resolves to ``value_id``."""
        counter = self._counts.get(trait_id)
        if counter is None:
            return 0
        return counter[value_id]

    def modal_count(self, trait_id: str) -> int:
        """Largest bucket for ``trait_id``, absent bucket included.

        Falls back to the population size for a trait never seen.
        """
        counter = self._counts.get(trait_id)
        if not counter:
            return self._size
        return max(counter.values())


class RarityScorer(ABC):
    """Interface for rarity scoring strategies.

    Call :meth:`prepare` with the population before scoring any of its
    composites.
    """

    direction: ClassVar[ScoreDirection]
    strategy: ClassVar[ScoringStrategy]

    def prepare(self, population: Sequence[Composite]) -> None:
        """Precompute whatever the strategy needs from the population."""
        return None

    @abstractmethod
    def score(self, composite: Composite) -> float:
        """Score one composite of the prepared population."""

    @abstractmethod
    def trait_scores(self, composite: Composite) -> dict[str, float]:
        """Per-trait terms of :meth:`score`, keyed by trait name."""

    def score_population(self, population: Sequence[Composite]) -> list[float]:
        """Prepare for ``population`` and score each member, in order."""
        self.prepare(population)
        scores = [self.score(c) for c in population]
        logger.debug(
            "Scored %d composites with %s strategy", len(scores), self.strategy.value
        )
        return scores

    def sort_key(self, score: float) -> float:
        """Key that orders scores rarest first when sorted ascending."""
        if self.direction == ScoreDirection.HIGHER_IS_RARER:
            return -score
        return score


class WeightProductScorer(RarityScorer):
    """Product of the designer-assigned rarity weights, scaled by 100.

    Values with small weights make the product small, so lower is rarer.
    Pairings without a value are ignored rather than contributing zero.
    """

    direction = ScoreDirection.LOWER_IS_RARER
    strategy = ScoringStrategy.PRODUCT

    def score(self, composite: Composite) -> float:
        weights = [p.trait_value.rarity for p in scorable_pairings(composite)]
        if not weights:
            return 0.0
        return math.prod(weights) * 100

    def trait_scores(self, composite: Composite) -> dict[str, float]:
        return {p.trait.name: p.trait_value.rarity for p in scorable_pairings(composite)}


class FrequencyScorer(RarityScorer):
    """Sum over trait values of ``normalizer / count``.

    ``count`` is how many composites in the population share the value for
    that trait. With ``normalized=True`` the normalizer is the trait's modal
    bucket count, otherwise the population size. A value held by fewer
    composites contributes more, so higher is rarer.
    """

    direction = ScoreDirection.HIGHER_IS_RARER

    def __init__(self, normalized: bool = True) -> None:
        self.normalized = normalized
        self._index: TraitValueIndex | None = None

    @property
    def strategy(self) -> ScoringStrategy:  # type: ignore[override]
        if self.normalized:
            return ScoringStrategy.FREQUENCY
        return ScoringStrategy.FREQUENCY_UNNORMALIZED

    @property
    def index(self) -> TraitValueIndex:
        if self._index is None:
            raise ScoringError("FrequencyScorer.prepare() must be called before scoring")
        return self._index

    def prepare(self, population: Sequence[Composite]) -> None:
        self._index = TraitValueIndex(population)

    def _normalizer(self, trait_id: str) -> int:
        if self.normalized:
            return self.index.modal_count(trait_id)
        return self.index.population_size

    def contribution(self, pairing: TraitValuePairing) -> float:
        """Score contributed by a single pairing with a present value."""
        if not pairing.is_present:
            return 0.0
        count = self.index.count(pairing.trait.id, pairing.trait_value.id)
        if count == 0:
            # Value not in the prepared population.
            return 0.0
        return self._normalizer(pairing.trait.id) / count

    def trait_scores(self, composite: Composite) -> dict[str, float]:
        return {p.trait.name: self.contribution(p) for p in scorable_pairings(composite)}

    def score(self, composite: Composite) -> float:
        return sum(self.contribution(p) for p in scorable_pairings(composite))


def create_scorer(strategy: ScoringStrategy | str = ScoringStrategy.FREQUENCY) -> RarityScorer:
    """Build the scorer for ``strategy``.

    Raises:
        ValueError: If the strategy name is unknown.
    """
    strategy = ScoringStrategy(strategy.lower() if isinstance(strategy, str) else strategy)
    if strategy == ScoringStrategy.PRODUCT:
        return WeightProductScorer()
    return FrequencyScorer(normalized=strategy == ScoringStrategy.FREQUENCY)
