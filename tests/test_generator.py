"""Tests for the rank generation run."""

import logging
import threading
import time

import pytest

from raritygen.config import RankSettings
from raritygen.engine.scoring import FrequencyScorer, WeightProductScorer
from raritygen.engine.tiers import RankTier, TierConfiguration
from raritygen.generator import RankingReport, RarityGenerator, RunStatus
from raritygen.model import Collection
from raritygen.store import CollectionNotFoundError, JsonFileStore
from tests.factories import (
    BACKGROUND,
    FakeStore,
    background_population,
    composite,
    pairing,
    rank_label,
    value,
)


def make_generator(store: FakeStore, settings: RankSettings, **kwargs) -> RarityGenerator:
    return RarityGenerator("proj", "col", "grp", store, store, settings=settings, **kwargs)


class TestRun:
    """Tests for a successful run."""

    def test_background_scenario(self, settings: RankSettings) -> None:
        """Ten composites ranked 1/2/3/4 and all written back."""
        store = FakeStore(background_population())
        report = make_generator(store, settings).run()

        assert report.status == RunStatus.RANKED
        assert report.tier_counts == {
            RankTier.LEGENDARY: 1,
            RankTier.RARE: 2,
            RankTier.UNCOMMON: 3,
            RankTier.COMMON: 4,
        }
        assert report.failed_count == 0
        assert sorted(store.update_calls) == sorted(f"c{i}" for i in range(10))
        assert rank_label(store.composites["c8"]) == "Legendary"

    def test_results_in_rank_order(self, settings: RankSettings) -> None:
        """Results line up with the ranking, rarest first."""
        store = FakeStore(background_population())
        report = make_generator(store, settings).run()
        assert [r.id for r in report.results] == [r.composite_id for r in report.ranked]
        assert report.results[0].id in {"c8", "c9"}

    def test_generate_returns_results(self, settings: RankSettings) -> None:
        """generate() is run().results."""
        store = FakeStore(background_population())
        results = make_generator(store, settings).generate()
        assert len(results) == 10
        assert all(rank_label(c) is not None for c in results)

    def test_single_rank_trait_per_run(self, settings: RankSettings) -> None:
        """All composites in a run share one Rank trait."""
        store = FakeStore(background_population())
        results = make_generator(store, settings).generate()
        assert len({c.traits[-1].trait.id for c in results}) == 1

    def test_explicit_scorer_and_tiers(self, settings: RankSettings) -> None:
        """Injected scorer and tiers override settings."""
        population = [
            composite("heavy", pairing(BACKGROUND, value("a", 0.9))),
            composite("light", pairing(BACKGROUND, value("b", 0.1))),
        ]
        store = FakeStore(population)
        report = make_generator(
            store,
            settings,
            scorer=WeightProductScorer(),
            tiers=TierConfiguration.parse(1, 1, 1),
        ).run()
        assert [r.composite_id for r in report.ranked] == ["light", "heavy"]
        assert [r.tier for r in report.ranked] == [RankTier.LEGENDARY, RankTier.RARE]

    def test_strategy_from_settings(self) -> None:
        """The scorer is built from the configured strategy."""
        settings = RankSettings(scoring_strategy="product", _env_file=None)
        generator = make_generator(FakeStore(), settings)
        assert isinstance(generator._scorer, WeightProductScorer)

    def test_default_strategy(self, settings: RankSettings) -> None:
        """Default scorer is normalized frequency."""
        generator = make_generator(FakeStore(), settings)
        assert isinstance(generator._scorer, FrequencyScorer)
        assert generator._scorer.normalized

    def test_idempotent_rerun(self, settings: RankSettings) -> None:
        """Running twice on the same store keeps every label."""
        store = FakeStore(background_population())
        make_generator(store, settings).run()
        first = {cid: rank_label(c) for cid, c in store.composites.items()}
        make_generator(store, settings).run()
        second = {cid: rank_label(c) for cid, c in store.composites.items()}
        assert first == second


class TestConfigurationErrors:
    """Tests for invalid tier configuration."""

    def test_invalid_order_aborts(self, settings: RankSettings, caplog) -> None:
        """legendary > rare yields no mutations and a warning."""
        store = FakeStore(background_population())
        bad = settings.model_copy(update={"legendary": "5", "rare": "3"})

        with caplog.at_level(logging.WARNING, logger="raritygen"):
            report = make_generator(store, bad).run()

        assert report.status == RunStatus.INVALID_CONFIGURATION
        assert report.results == []
        assert store.update_calls == []
        assert "Legendary count 5 is greater than Rare count 3" in caplog.text
        assert report.error == "Legendary count 5 is greater than Rare count 3"

    def test_rare_greater_than_uncommon(self, settings: RankSettings, caplog) -> None:
        """rare > uncommon is reported with its operands."""
        store = FakeStore(background_population())
        bad = settings.model_copy(update={"rare": "4", "uncommon": "2"})

        with caplog.at_level(logging.WARNING, logger="raritygen"):
            assert make_generator(store, bad).generate() == []

        assert "Rare count 4 is greater than Uncommon count 2" in caplog.text
        assert store.update_calls == []

    def test_non_numeric(self, settings: RankSettings) -> None:
        """Malformed tier sizes are a configuration error, not a crash."""
        store = FakeStore(background_population())
        bad = settings.model_copy(update={"uncommon": "lots"})
        report = make_generator(store, bad).run()
        assert report.status == RunStatus.INVALID_CONFIGURATION
        assert "Uncommon" in report.error
        assert store.update_calls == []

    def test_population_not_read(self, settings: RankSettings) -> None:
        """The population is not loaded when tiers are invalid."""
        store = FakeStore(background_population())
        bad = settings.model_copy(update={"legendary": "9"})
        make_generator(store, bad).run()
        assert store.list_calls == 0


class TestEmptyAndMissing:
    """Tests for empty populations and missing collections."""

    def test_empty_population(self, settings: RankSettings) -> None:
        """An empty group is ranked trivially."""
        store = FakeStore([])
        report = make_generator(store, settings).run()
        assert report.status == RunStatus.EMPTY_POPULATION
        assert report.results == []
        assert report.error is None

    def test_missing_collection(self, settings: RankSettings) -> None:
        """A missing collection fails before the population is read."""
        store = FakeStore(background_population(), collections={})
        with pytest.raises(CollectionNotFoundError):
            make_generator(store, settings).run()
        assert store.list_calls == 0
        assert store.update_calls == []


class TestPersistenceFailures:
    """Tests for partial success on write-back."""

    def test_failed_update_is_none(self, settings: RankSettings, caplog) -> None:
        """A composite that cannot be written is None at its position."""
        store = FakeStore(background_population(), fail_ids={"c8"})

        with caplog.at_level(logging.WARNING, logger="raritygen"):
            report = make_generator(store, settings).run()

        positions = {r.composite_id: r.position for r in report.ranked}
        assert report.results[positions["c8"]] is None
        assert report.failed_count == 1
        assert sum(1 for r in report.results if r is not None) == 9
        assert "Giving up on composite c8" in caplog.text

    def test_failed_update_is_retried(self, settings: RankSettings) -> None:
        """Failed updates are attempted update_max_attempts times."""
        store = FakeStore(background_population(), fail_ids={"c0"})
        make_generator(store, settings).run()
        assert store.update_calls.count("c0") == settings.update_max_attempts

    def test_transient_failure_recovers(self, settings: RankSettings) -> None:
        """A single transient failure is absorbed by the retry."""
        store = FakeStore(background_population(), flaky_ids={"c3", "c9"})
        report = make_generator(store, settings).run()
        assert report.failed_count == 0
        assert store.update_calls.count("c3") == 2

    def test_missing_composite_not_retried(self, caplog) -> None:
        """A composite gone from the store fails on the first attempt."""
        settings = RankSettings(update_max_attempts=5, update_retry_wait=0, _env_file=None)
        store = FakeStore(background_population(), missing_ids={"c2"})

        with caplog.at_level(logging.WARNING, logger="raritygen"):
            report = make_generator(store, settings).run()

        assert store.update_calls.count("c2") == 1
        assert report.failed_count == 1
        assert "Giving up on composite c2" in caplog.text
        assert "Update of composite c2 failed" not in caplog.text

    def test_unexpected_error_is_contained(self, settings: RankSettings) -> None:
        """Errors outside the store contract still only fail one composite."""

        class BrokenStore(FakeStore):
            def update(self, composite, project_id, collection_id, group_id):
                if composite.id == "c1":
                    raise RuntimeError("disk on fire")
                return super().update(composite, project_id, collection_id, group_id)

        store = BrokenStore(background_population())
        report = make_generator(store, settings).run()
        assert report.failed_count == 1
        assert "c1" not in store.update_calls


class TestConcurrency:
    """Tests for concurrent write-back."""

    def test_updates_run_in_parallel(self, settings: RankSettings) -> None:
        """Updates overlap on the thread pool."""
        active = 0
        peak = 0
        lock = threading.Lock()

        class SlowStore(FakeStore):
            def update(self, composite, project_id, collection_id, group_id):
                nonlocal active, peak
                with lock:
                    active += 1
                    peak = max(peak, active)
                time.sleep(0.02)
                with lock:
                    active -= 1
                return super().update(composite, project_id, collection_id, group_id)

        store = SlowStore(background_population())
        report = make_generator(store, settings).run()
        assert report.failed_count == 0
        assert 1 < peak <= settings.max_concurrent_updates


class TestWithFileStore:
    """End-to-end run against JsonFileStore."""

    def test_round_trip(self, tmp_path, settings: RankSettings) -> None:
        """Ranks stored composites and writes the labels to disk."""
        store = JsonFileStore(tmp_path)
        store.save_collection(Collection(id="col", name="Test"), "proj")
        for c in background_population():
            store.add(c, "proj", "col", "grp")

        report = RarityGenerator("proj", "col", "grp", store, store, settings=settings).run()
        assert isinstance(report, RankingReport)
        assert report.failed_count == 0

        reloaded = {c.id: c for c in store.list_all("proj", "col", "grp")}
        labels = [rank_label(reloaded[r.composite_id]) for r in report.ranked]
        assert labels == [r.tier.value for r in report.ranked]
        rank_pairing = reloaded["c8"].traits[-1]
        assert rank_pairing.trait.exclude_from_duplicate_detection
        assert rank_pairing.image_layer is None
