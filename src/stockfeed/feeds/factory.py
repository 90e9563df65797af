"""Construction of feeds and the cache store from configuration."""

from __future__ import annotations

from collections.abc import Callable

from stockfeed.core.config import FeedConfig, StockfeedConfig
from stockfeed.feeds.provider import StockFeed
from stockfeed.feeds.store import SqliteSeriesStore
from stockfeed.feeds.stooq import StooqFeed
from stockfeed.feeds.yahoo import YahooFinanceFeed

_BUILDERS: dict[str, Callable[[FeedConfig], StockFeed]] = {
    YahooFinanceFeed.name: YahooFinanceFeed,
    StooqFeed.name: StooqFeed,
}


def create_feeds(config: StockfeedConfig) -> list[StockFeed]:
    """Remote feeds in the configured priority order.

    Only feeds named in ``acquisition.providers`` are built. Names that
    match no feed are ignored.
    """
    return [
        _BUILDERS[name](getattr(config.feeds, name))
        for name in config.acquisition.providers
        if name in _BUILDERS
    ]


def create_store(config: StockfeedConfig) -> SqliteSeriesStore:
    return SqliteSeriesStore(config.storage.sqlite_path)
