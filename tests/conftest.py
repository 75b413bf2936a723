"""Shared fixtures for raritygen tests."""

import logging

import pytest

from raritygen.config import RankSettings, get_rank_settings


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging so caplog sees raritygen records."""
    yield
    root = logging.getLogger("raritygen")
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
    root.propagate = True
    get_rank_settings.cache_clear()


@pytest.fixture
def settings() -> RankSettings:
    """Settings with tiers 1/2/3 and no retry delay."""
    return RankSettings(
        legendary=1,
        rare=2,
        uncommon=3,
        max_concurrent_updates=4,
        update_max_attempts=2,
        update_retry_wait=0,
        _env_file=None,
    )
