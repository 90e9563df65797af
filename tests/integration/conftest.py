"""Integration test fixtures: real SQLite I/O, HTTP mocked with respx."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from stockfeed.acquisition import AcquisitionOrchestrator
from stockfeed.core.config import (
    AcquisitionConfig,
    FeedConfig,
    FeedsConfig,
    StockfeedConfig,
    StorageConfig,
)
from stockfeed.feeds.factory import create_feeds, create_store
from stockfeed.feeds.store import SqliteSeriesStore

YAHOO_BASE = "https://yahoo.test"
STOOQ_BASE = "https://stooq.test"

# Friday
TODAY = date(2024, 1, 19)


def pytest_configure(config):
    """Register the integration marker."""
    config.addinivalue_line("markers", "integration: real I/O without network")


@pytest.fixture
def integration_config(tmp_path: Path) -> StockfeedConfig:
    """Both feeds pointed at mock hosts, breaker trips on the first failure."""
    feed = dict(rate_limit=100, failure_threshold=1, cooldown_seconds=600)
    return StockfeedConfig(
        acquisition=AcquisitionConfig(providers=["yahoo", "stooq"]),
        storage=StorageConfig(sqlite_path=str(tmp_path / "integration.db")),
        feeds=FeedsConfig(
            yahoo=FeedConfig(base_url=YAHOO_BASE, **feed),
            stooq=FeedConfig(base_url=STOOQ_BASE, **feed),
        ),
    )


@pytest.fixture
def integration_store(integration_config: StockfeedConfig) -> SqliteSeriesStore:
    return create_store(integration_config)


@pytest.fixture
async def orchestrator(
    integration_config: StockfeedConfig, integration_store: SqliteSeriesStore
) -> AcquisitionOrchestrator:
    """Orchestrator wired like production, with a fixed clock."""
    async with AcquisitionOrchestrator(
        cache=integration_store,
        feeds=create_feeds(integration_config),
        config=integration_config.acquisition,
        cleaning=integration_config.cleaning,
        clock=lambda: TODAY,
    ) as o:
        yield o
