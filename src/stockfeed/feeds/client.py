"""Rate-limited async HTTP client shared by the remote feeds."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from aiolimiter import AsyncLimiter

from stockfeed.core.config import FeedConfig
from stockfeed.core.exceptions import FetchError, ProviderUnavailableError
from stockfeed.feeds.breaker import CircuitBreaker

logger = logging.getLogger(__name__)

_USER_AGENT = "Mozilla/5.0 (compatible; stockfeed/0.1)"


class FeedClient:
    """HTTP access for one feed: timeout, rate limit and circuit breaker.

    Every request is bounded by ``config.timeout_seconds``. Transport errors,
    timeouts and non-2xx responses (other than 404) raise ``FetchError`` and
    count against the breaker. A 404 means the source does not know the
    symbol and is returned as None.

    Parameters
    ----------
    name : str
        Feed name, used in logs and error context.
    config : FeedConfig
        Timeout, rate limit and breaker settings.
    client : httpx.AsyncClient | None
        Injected client (tests). Created from config if None.
    """

    def __init__(
        self,
        name: str,
        config: FeedConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._name = name
        self._config = config
        self._limiter = AsyncLimiter(max_rate=1, time_period=1.0 / config.rate_limit)
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": _USER_AGENT},
            timeout=httpx.Timeout(config.timeout_seconds),
            follow_redirects=True,
        )
        self.breaker = CircuitBreaker(
            name,
            failure_threshold=config.failure_threshold,
            cooldown_seconds=config.cooldown_seconds,
        )

    async def __aenter__(self) -> FeedClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def available(self) -> bool:
        return self._config.enabled and not self.breaker.is_open

    async def get(
        self, url: str, params: dict[str, Any] | None = None
    ) -> httpx.Response | None:
        """GET ``url``. Returns None on 404."""
        if not self._config.enabled:
            raise ProviderUnavailableError(
                f"{self._name} feed is disabled",
                context={"provider": self._name},
            )
        if self.breaker.is_open:
            raise ProviderUnavailableError(
                f"{self._name} feed is cooling down after failures",
                context={"provider": self._name, "retry_at": self.breaker.retry_at},
            )

        async with self._limiter:
            try:
                resp = await self._client.get(url, params=params)
            except httpx.TimeoutException as e:
                self.breaker.record_failure()
                raise FetchError(
                    f"{self._name} request timed out: {url}",
                    context={"provider": self._name, "url": url},
                ) from e
            except httpx.RequestError as e:
                self.breaker.record_failure()
                raise FetchError(
                    f"{self._name} request failed: {e}",
                    context={"provider": self._name, "url": url},
                ) from e

        if resp.status_code == 404:
            logger.info("%s has no data at %s", self._name, url)
            self.breaker.record_success()
            return None

        if resp.status_code >= 400:
            self.breaker.record_failure()
            raise FetchError(
                f"{self._name} HTTP {resp.status_code}: {resp.text[:200]}",
                context={
                    "provider": self._name,
                    "url": url,
                    "status_code": resp.status_code,
                },
            )

        self.breaker.record_success()
        return resp
