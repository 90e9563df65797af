"""stockfeed.core: foundation types, config, and exceptions."""

from stockfeed.core.config import (
    AcquisitionConfig,
    CleaningConfig,
    FeedConfig,
    FeedsConfig,
    RegistryConfig,
    StockfeedConfig,
    StorageConfig,
    load_config,
)
from stockfeed.core.exceptions import (
    ConfigError,
    FetchError,
    ProviderError,
    ProviderUnavailableError,
    StockfeedError,
    StorageError,
)
from stockfeed.core.models import (
    CASH,
    AssetType,
    Bar,
    DateRange,
    Exchange,
    FeedName,
    Instrument,
    InstrumentKey,
    Provenance,
    ProviderResult,
    Series,
    Ticker,
)

__all__ = [
    # Type aliases
    "Ticker",
    "InstrumentKey",
    "FeedName",
    # Enums
    "Exchange",
    "AssetType",
    "Provenance",
    # Models
    "Instrument",
    "CASH",
    "Bar",
    "Series",
    "DateRange",
    "ProviderResult",
    # Config
    "StockfeedConfig",
    "AcquisitionConfig",
    "CleaningConfig",
    "FeedConfig",
    "FeedsConfig",
    "RegistryConfig",
    "StorageConfig",
    "load_config",
    # Exceptions
    "StockfeedError",
    "ConfigError",
    "ProviderError",
    "ProviderUnavailableError",
    "FetchError",
    "StorageError",
]
