"""Rarity scoring and rank assignment."""

from raritygen.engine.ranking import (
    RankAssigner,
    RankedComposite,
    apply_rank,
    count_tiers,
    make_rank_trait,
)
from raritygen.engine.scoring import (
    FrequencyScorer,
    RarityScorer,
    ScoreDirection,
    ScoringError,
    ScoringStrategy,
    TraitValueIndex,
    WeightProductScorer,
    create_scorer,
)
from raritygen.engine.tiers import RankTier, TierConfiguration, TierConfigurationError

__all__ = [
    "FrequencyScorer",
    "RankAssigner",
    "RankTier",
    "RankedComposite",
    "RarityScorer",
    "ScoreDirection",
    "ScoringError",
    "ScoringStrategy",
    "TierConfiguration",
    "TierConfigurationError",
    "TraitValueIndex",
    "WeightProductScorer",
    "apply_rank",
    "count_tiers",
    "create_scorer",
    "make_rank_trait",
]
