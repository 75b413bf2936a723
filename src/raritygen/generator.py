"""Rank generation run for one (project, collection, group) scope.

Coordinates the flow: collection lookup -> tier validation -> population
snapshot -> scoring and ranking -> concurrent write-back.

Every label depends on the whole population, so nothing is written until
the full snapshot has been ranked. Writes then run in parallel on a thread
pool; a composite that still fails after retries comes back as None at its
position instead of aborting the rest.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import StrEnum

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from raritygen.config import RankSettings, get_rank_settings
from raritygen.engine.ranking import RankAssigner, RankedComposite, count_tiers
from raritygen.engine.scoring import RarityScorer, create_scorer
from raritygen.engine.tiers import RankTier, TierConfiguration, TierConfigurationError
from raritygen.model import Composite
from raritygen.store.base import (
    CollectionLookup,
    CompositeNotFoundError,
    CompositeStore,
    CompositeStoreError,
)

logger = logging.getLogger(__name__)

MAX_RETRY_WAIT = 30.0


class RunStatus(StrEnum):
    """Outcome of a ranking run."""

    RANKED = "ranked"
    EMPTY_POPULATION = "empty_population"
    INVALID_CONFIGURATION = "invalid_configuration"


@dataclass
class RankingReport:
    """Result of :meth:`RarityGenerator.run`.

    Attributes:
        status: Whether the population was ranked, empty, or refused.
        results: Store results in rank order; None where an update failed.
        ranked: The in-memory ranking, rarest first.
        tier_counts: Composites per tier.
        error: Configuration error message, if any.
    """

    status: RunStatus
    results: list[Composite | None] = field(default_factory=list)
    ranked: list[RankedComposite] = field(default_factory=list)
    tier_counts: dict[RankTier, int] = field(default_factory=dict)
    error: str | None = None

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if r is None)


class RarityGenerator:
    """Ranks every composite in a group and writes the labels back.

    Example:
        >>> store = JsonFileStore("data")
        >>> generator = RarityGenerator("proj", "apes", "batch-1", store, store)
        >>> results = generator.generate()
    """

    def __init__(
        self,
        project_id: str,
        collection_id: str,
        group_id: str,
        store: CompositeStore,
        collections: CollectionLookup,
        settings: RankSettings | None = None,
        scorer: RarityScorer | None = None,
        tiers: TierConfiguration | None = None,
    ) -> None:
        """Initialize the generator.

        Args:
            project_id: Project the collection belongs to.
            collection_id: Collection to rank.
            group_id: Composite group within the collection.
            store: Source of the population and target of updates.
            collections: Collection lookup, used for diagnostics.
            settings: Run settings. Loaded from environment if omitted.
            scorer: Scoring strategy. Built from settings if omitted.
            tiers: Tier sizes. Parsed from settings if omitted.
        """
        self.project_id = project_id
        self.collection_id = collection_id
        self.group_id = group_id
        self._store = store
        self._collections = collections
        self._settings = settings or get_rank_settings()
        self._scorer = scorer or create_scorer(self._settings.scoring_strategy)
        self._tiers = tiers

    def _load_tiers(self) -> TierConfiguration:
        tiers = self._tiers or self._settings.tier_configuration()
        logger.info("Legendary count: %d", tiers.legendary)
        logger.info("Rare count: %d", tiers.rare)
        logger.info("Uncommon count: %d", tiers.uncommon)
        tiers.validate_order()
        return tiers

    def _rank(self) -> tuple[RunStatus, list[RankedComposite], str | None]:
        collection = self._collections.get(self.collection_id, self.project_id)
        logger.info(
            "Generate rarity for project: %s collection: %s (%s) group: %s",
            self.project_id,
            collection.name,
            self.collection_id,
            self.group_id,
        )

        try:
            tiers = self._load_tiers()
        except TierConfigurationError as e:
            logger.warning("Not ranking %s: %s", self.collection_id, e)
            return RunStatus.INVALID_CONFIGURATION, [], str(e)

        population = self._store.list_all(self.project_id, self.collection_id, self.group_id)
        if not population:
            logger.info("No composites in group %s, nothing to rank", self.group_id)
            return RunStatus.EMPTY_POPULATION, [], None

        ranked = RankAssigner(self._scorer, tiers).assign(population)
        return RunStatus.RANKED, ranked, None

    def dry_run(self) -> RankingReport:
        """Rank the population without writing anything.

        The report's ``results`` stay empty.

        Raises:
            CollectionNotFoundError: If the collection does not exist.
        """
        status, ranked, error = self._rank()
        return RankingReport(
            status=status, ranked=ranked, tier_counts=count_tiers(ranked), error=error
        )

    def run(self) -> RankingReport:
        """Rank the population and persist every composite.

        Raises:
            CollectionNotFoundError: If the collection does not exist. Raised
                before any scoring.
        """
        status, ranked, error = self._rank()
        if status != RunStatus.RANKED:
            return RankingReport(status=status, error=error)

        results = self._persist(ranked)
        report = RankingReport(
            status=status,
            results=results,
            ranked=ranked,
            tier_counts=count_tiers(ranked),
        )
        logger.info(
            "Ranked %d composites (%s), %d updates failed",
            len(ranked),
            ", ".join(f"{tier.value}={n}" for tier, n in report.tier_counts.items()),
            report.failed_count,
        )
        return report

    def generate(self) -> list[Composite | None]:
        """Rank and persist; return store results in rank order.

        An empty list means nothing was ranked: the configuration was invalid
        or the group is empty. Use :meth:`run` to tell those apart.
        """
        return self.run().results

    def _persist(self, ranked: list[RankedComposite]) -> list[Composite | None]:
        """Write every ranked composite concurrently, preserving rank order."""
        workers = min(self._settings.max_concurrent_updates, len(ranked))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="rank_update") as executor:
            futures = [executor.submit(self._update, r.composite) for r in ranked]
            return [f.result() for f in futures]

    def _update(self, composite: Composite) -> Composite | None:
        """Persist one composite with retries; None if it never succeeds."""

        def before_sleep(retry_state: RetryCallState) -> None:
            wait_time = retry_state.next_action.sleep if retry_state.next_action else 0
            logger.warning(
                "Update of composite %s failed, attempt %d/%d, retrying in %.1fs",
                composite.id,
                retry_state.attempt_number,
                self._settings.update_max_attempts,
                wait_time,
            )

        retryer = Retrying(
            stop=stop_after_attempt(self._settings.update_max_attempts),
            wait=wait_exponential(multiplier=self._settings.update_retry_wait, max=MAX_RETRY_WAIT),
            retry=(
                retry_if_exception_type(CompositeStoreError)
                & retry_if_not_exception_type(CompositeNotFoundError)
            ),
            before_sleep=before_sleep,
            reraise=True,
        )

        try:
            return retryer(
                self._store.update,
                composite,
                self.project_id,
                self.collection_id,
                self.group_id,
            )
        except CompositeStoreError as e:
            logger.error("Giving up on composite %s: %s", composite.id, e)
        except Exception:
            logger.exception("Unexpected error updating composite %s", composite.id)
        return None
