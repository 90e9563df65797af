"""Custom exception hierarchy for stockfeed."""

from typing import Any


class StockfeedError(Exception):
    """Base exception for all stockfeed errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(StockfeedError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str, the config field that failed validation
        value: Any, the invalid value
    """


class ProviderError(StockfeedError):
    """A price feed could not produce data.

    Policy: the orchestrator logs it and moves on to the next feed or to the
    cached series. Never aborts an acquisition.

    Context keys:
        provider: str, the feed name
        instrument: str, the instrument key being fetched
    """


class ProviderUnavailableError(ProviderError):
    """The feed is disabled or its circuit breaker is open.

    Policy: skip the feed, try the next one in priority order.

    Context keys:
        retry_at: float | None, monotonic time the breaker closes again
    """


class FetchError(ProviderError):
    """I/O failure while fetching from a feed (HTTP error, timeout, bad payload).

    Policy: log and degrade to whatever the cache holds.

    Context keys:
        url: str, the URL that was being fetched
        status_code: int | None, HTTP status code if applicable
    """


class StorageError(StockfeedError):
    """Cache database operation failed.

    Raised by the series store. The orchestrator absorbs it so a broken
    cache never hides freshly fetched data from the caller.

    Context keys:
        operation: str, "read", "write", "init", etc.
        instrument: str, the instrument key involved
    """
