"""Stooq price feed: CSV download endpoints over httpx."""

from __future__ import annotations

import logging
from datetime import date

import httpx

from stockfeed.core.config import FeedConfig
from stockfeed.core.exceptions import FetchError
from stockfeed.core.models import Bar, Exchange, Instrument, Series
from stockfeed.feeds.client import FeedClient
from stockfeed.feeds.csv_adapter import CSVBarAdapter, rows_from_text
from stockfeed.timeseries.calendar import normalize

logger = logging.getLogger(__name__)

_BASE_URL = "https://stooq.com"
_HISTORY_PATH = "/q/d/l/"
_QUOTE_PATH = "/q/l/"

_SUFFIXES: dict[Exchange, str] = {
    Exchange.LONDON: ".uk",
    Exchange.XETRA: ".de",
    Exchange.NYSE: ".us",
    Exchange.NASDAQ: ".us",
    Exchange.NA: ".us",
}


class StooqFeed:
    """Fetches daily bars and quotes from Stooq.

    Stooq answers unknown symbols with a 200 and the body ``No data``, which
    is reported as None rather than an error.

    Parameters
    ----------
    config : FeedConfig | None
        Timeout, rate limit, breaker and optional ``base_url`` override.
    client : httpx.AsyncClient | None
        Injected HTTP client (tests).
    """

    name = "stooq"

    def __init__(
        self,
        config: FeedConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or FeedConfig()
        self._base_url = self._config.base_url or _BASE_URL
        self._http = FeedClient(self.name, self._config, client)
        self._adapter = CSVBarAdapter(source=self.name)

    async def close(self) -> None:
        await self._http.close()

    def is_available(self) -> bool:
        return self._http.available

    @staticmethod
    def symbol(instrument: Instrument) -> str:
        return instrument.code.lower() + _SUFFIXES.get(instrument.exchange, "")

    async def _get_rows(self, path: str, params: dict[str, str]) -> list[dict[str, str]]:
        resp = await self._http.get(f"{self._base_url}{path}", params=params)
        if resp is None:
            return []
        text = resp.text.strip()
        if not text or text.lower().startswith("no data"):
            return []
        return rows_from_text(text)

    def _adapt(self, rows: list[dict[str, str]], instrument: Instrument) -> list[Bar]:
        try:
            return self._adapter.adapt(rows)
        except ValueError as e:
            raise FetchError(
                f"Unexpected Stooq CSV layout for {instrument.code}: {e}",
                context={"provider": self.name, "instrument": instrument.key},
            ) from e

    async def fetch(
        self, instrument: Instrument, start: date, end: date
    ) -> Series | None:
        rows = await self._get_rows(
            _HISTORY_PATH,
            {
                "s": self.symbol(instrument),
                "i": "d",
                "d1": start.strftime("%Y%m%d"),
                "d2": end.strftime("%Y%m%d"),
            },
        )
        bars = [b for b in self._adapt(rows, instrument) if start <= b.date <= end]
        if not bars:
            logger.info("Stooq has no bars for %s in %s..%s", instrument.code, start, end)
            return None
        return Series.from_bars(instrument, bars)

    async def fetch_latest_quote(self, instrument: Instrument) -> Bar | None:
        rows = await self._get_rows(
            _QUOTE_PATH,
            {"s": self.symbol(instrument), "f": "sd2t2ohlcv", "h": "", "e": "csv"},
        )
        bars = self._adapt(rows, instrument)
        if not bars:
            return None
        quote = bars[-1]
        return quote.model_copy(update={"date": normalize(quote.date)})
