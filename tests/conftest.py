"""Shared test fixtures for mevdash."""

from __future__ import annotations

import random

import pytest

from mevdash.config import BotConfig
from mevdash.storage.sqlite_store import SqliteStorage
from mevdash.strategy.generator import OpportunityGenerator


@pytest.fixture
def store(tmp_path):
    """Empty SQLite store in a temp directory."""
    s = SqliteStorage(tmp_path / "mevdash.db")
    yield s
    s.close()


@pytest.fixture
def fast_config(tmp_path) -> BotConfig:
    """Config with zero delays so loop tests finish immediately."""
    return BotConfig(
        db_path=str(tmp_path / "app.db"),
        execution_delay=0.0,
        empty_pool_delay=0.0,
        fault_retry_delay=0.0,
        io_timeout=2.0,
        seed_demo_data=False,
    )


@pytest.fixture
def generator() -> OpportunityGenerator:
    """Deterministic generator (seeded)."""
    return OpportunityGenerator(rng=random.Random(42))
