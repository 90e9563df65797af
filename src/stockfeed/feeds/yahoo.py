"""Yahoo Finance price feed: direct HTTP implementation.

Uses the unauthenticated ``/v8/finance/chart/`` endpoint via httpx for both
daily history and the latest quote (the chart ``meta`` block).
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

import httpx

from stockfeed.core.config import FeedConfig
from stockfeed.core.exceptions import FetchError
from stockfeed.core.models import Bar, Exchange, Instrument, Series
from stockfeed.feeds.client import FeedClient
from stockfeed.timeseries.calendar import normalize

logger = logging.getLogger(__name__)

_BASE_URL = "https://query2.finance.yahoo.com"
_CHART_PATH = "/v8/finance/chart"

# Yahoo ticker suffix per exchange
_SUFFIXES: dict[Exchange, str] = {
    Exchange.LONDON: ".L",
    Exchange.XETRA: ".DE",
}


def _bar_date(ts: int, gmtoffset: int) -> date:
    """Exchange-local calendar date of a chart timestamp."""
    return datetime.fromtimestamp(ts + gmtoffset, tz=timezone.utc).date()


def _epoch(day: date) -> int:
    return int(datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp())


class YahooChartAdapter:
    """Transforms a Yahoo Finance ``chart.result[0]`` object into bars.

    Points with a null close (holidays, halted days) are skipped. Missing
    open/high/low fall back to the close.
    """

    source = "yahoo"

    def adapt(self, raw_data: Any) -> list[Bar]:
        timestamps: list[int] = raw_data.get("timestamp") or []
        if not timestamps:
            return []

        gmtoffset = int(raw_data.get("meta", {}).get("gmtoffset") or 0)
        quotes = (raw_data.get("indicators", {}).get("quote") or [{}])[0]
        opens: list[float | None] = quotes.get("open") or []
        highs: list[float | None] = quotes.get("high") or []
        lows: list[float | None] = quotes.get("low") or []
        closes: list[float | None] = quotes.get("close") or []
        volumes: list[int | None] = quotes.get("volume") or []

        def at(values: list, i: int):
            return values[i] if i < len(values) else None

        bars: list[Bar] = []
        skipped = 0
        for i, ts in enumerate(timestamps):
            close = at(closes, i)
            if close is None or ts is None:
                skipped += 1
                continue
            volume = at(volumes, i)
            bars.append(
                Bar(
                    date=_bar_date(int(ts), gmtoffset),
                    open=at(opens, i),
                    high=at(highs, i),
                    low=at(lows, i),
                    close=float(close),
                    volume=int(volume) if volume is not None else 0,
                    source=self.source,
                )
            )

        if skipped:
            logger.debug("Skipped %d Yahoo points without a close", skipped)
        return sorted(bars, key=lambda b: b.date)


class YahooFinanceFeed:
    """Fetches daily bars and quotes from Yahoo Finance's chart API.

    Parameters
    ----------
    config : FeedConfig | None
        Timeout, rate limit, breaker and optional ``base_url`` override.
    client : httpx.AsyncClient | None
        Injected HTTP client (tests).
    adapter : YahooChartAdapter | None
        Custom adapter instance. Uses default if None.
    """

    name = "yahoo"

    def __init__(
        self,
        config: FeedConfig | None = None,
        client: httpx.AsyncClient | None = None,
        adapter: YahooChartAdapter | None = None,
    ) -> None:
        self._config = config or FeedConfig()
        self._base_url = self._config.base_url or _BASE_URL
        self._http = FeedClient(self.name, self._config, client)
        self._adapter = adapter or YahooChartAdapter()

    async def close(self) -> None:
        await self._http.close()

    def is_available(self) -> bool:
        return self._http.available

    @staticmethod
    def symbol(instrument: Instrument) -> str:
        return instrument.code + _SUFFIXES.get(instrument.exchange, "")

    async def _fetch_chart(
        self, instrument: Instrument, params: dict[str, str]
    ) -> dict | None:
        """Return ``chart.result[0]``, or None when Yahoo has nothing."""
        url = f"{self._base_url}{_CHART_PATH}/{self.symbol(instrument)}"
        resp = await self._http.get(url, params=params)
        if resp is None:
            return None

        try:
            data = resp.json()
        except ValueError as e:
            raise FetchError(
                f"Yahoo Finance returned invalid JSON for {instrument.code}",
                context={"provider": self.name, "url": url},
            ) from e

        chart = data.get("chart", {})
        if chart.get("error"):
            err = chart["error"]
            logger.warning(
                "Yahoo Finance API error for %s: %s (%s)",
                instrument.code,
                err.get("code"),
                err.get("description"),
            )
            return None

        results = chart.get("result")
        if not results:
            logger.warning("Yahoo Finance returned no results for %s", instrument.code)
            return None
        return results[0]

    async def fetch(
        self, instrument: Instrument, start: date, end: date
    ) -> Series | None:
        raw = await self._fetch_chart(
            instrument,
            {
                "interval": "1d",
                "period1": str(_epoch(start)),
                "period2": str(_epoch(end + timedelta(days=1))),
                "events": "div,split",
            },
        )
        if raw is None:
            return None

        # The API may return a buffer outside the requested window
        bars = [b for b in self._adapter.adapt(raw) if start <= b.date <= end]
        if not bars:
            return None
        return Series.from_bars(instrument, bars)

    async def fetch_latest_quote(self, instrument: Instrument) -> Bar | None:
        raw = await self._fetch_chart(instrument, {"interval": "1d", "range": "1d"})
        if raw is None:
            return None

        meta = raw.get("meta", {})
        price = meta.get("regularMarketPrice")
        ts = meta.get("regularMarketTime")
        if price is None or ts is None:
            return None

        opens = ((raw.get("indicators", {}).get("quote") or [{}])[0]).get("open") or []
        volume = meta.get("regularMarketVolume")
        return Bar(
            date=normalize(_bar_date(int(ts), int(meta.get("gmtoffset") or 0))),
            open=opens[-1] if opens else None,
            high=meta.get("regularMarketDayHigh"),
            low=meta.get("regularMarketDayLow"),
            close=float(price),
            volume=int(volume) if volume is not None else 0,
            source=self.name,
        )
