"""Price sources.

Built-in implementations:

- ``YahooFinanceFeed``: Yahoo Finance chart API.
- ``StooqFeed``: Stooq CSV download endpoints.
- ``SqliteSeriesStore``: SQLite-backed series cache.
- ``CSVBarAdapter`` / ``YahooChartAdapter``: raw payload → bars.
- ``InstrumentRegistry``: ticker / ISIN → Instrument.

Adding a new price source:
1. Write an adapter that implements ``BarAdapter.adapt(raw_data)``.
2. Write a feed that implements ``StockFeed`` and list its name in
   ``acquisition.providers``.
"""

from stockfeed.feeds.breaker import CircuitBreaker
from stockfeed.feeds.client import FeedClient
from stockfeed.feeds.csv_adapter import CSVBarAdapter, load_csv_bars
from stockfeed.feeds.factory import create_feeds, create_store
from stockfeed.feeds.provider import BarAdapter, SeriesStore, StockFeed
from stockfeed.feeds.registry import InstrumentRegistry, load_instruments_csv
from stockfeed.feeds.stooq import StooqFeed
from stockfeed.feeds.store import SqliteSeriesStore
from stockfeed.feeds.yahoo import YahooChartAdapter, YahooFinanceFeed

__all__ = [
    # Protocols
    "BarAdapter",
    "StockFeed",
    "SeriesStore",
    # Remote feeds
    "YahooFinanceFeed",
    "YahooChartAdapter",
    "StooqFeed",
    "FeedClient",
    "CircuitBreaker",
    # CSV
    "CSVBarAdapter",
    "load_csv_bars",
    # Cache
    "SqliteSeriesStore",
    # Instruments
    "InstrumentRegistry",
    "load_instruments_csv",
    # Factories
    "create_feeds",
    "create_store",
]
