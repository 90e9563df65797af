"""Integration tests: orchestrator + SQLite cache + HTTP feeds behind respx."""

from __future__ import annotations

from datetime import date

import httpx
import pytest
import respx

from stockfeed.core.models import CASH, Exchange, Instrument, Provenance

pytestmark = pytest.mark.integration

# Hosts configured in conftest.integration_config
CHART_URL = "https://yahoo.test/v8/finance/chart/XDND.L"
STOOQ_HISTORY_URL = "https://stooq.test/q/d/l/"
STOOQ_QUOTE_URL = "https://stooq.test/q/l/"

# 14:30 UTC, Monday 15 to Friday 19 January 2024
TS = {
    15: 1705329000,
    16: 1705415400,
    17: 1705501800,
    18: 1705588200,
    19: 1705674600,
}


def _chart(days: list[int], closes: list[float], quote: float | None = None) -> dict:
    """Yahoo chart payload for the given January 2024 days."""
    meta = {"symbol": "XDND.L", "gmtoffset": 0}
    if quote is not None:
        meta.update(regularMarketPrice=quote, regularMarketTime=TS[19])
    return {
        "chart": {
            "result": [
                {
                    "meta": meta,
                    "timestamp": [TS[d] for d in days],
                    "indicators": {
                        "quote": [
                            {
                                "open": closes,
                                "high": closes,
                                "low": closes,
                                "close": closes,
                                "volume": [100] * len(closes),
                            }
                        ]
                    },
                }
            ],
            "error": None,
        }
    }


@pytest.fixture
def xdnd() -> Instrument:
    return Instrument(code="XDND", exchange=Exchange.LONDON)


def _yahoo(*history: httpx.Response, quote: float | None = None):
    """respx side effect: history requests get the next queued response,
    quote requests (``range=1d``) get a meta-only payload."""
    pending = list(history)

    def handler(request: httpx.Request) -> httpx.Response:
        if "range" in request.url.params:
            return httpx.Response(200, json=_chart([], [], quote=quote))
        return pending.pop(0)

    return handler


def _history_calls(route) -> list[httpx.QueryParams]:
    return [c.request.url.params for c in route.calls if "period1" in c.request.url.params]


class TestColdCache:
    @respx.mock
    async def test_fetches_caches_and_tops_up(self, orchestrator, integration_store, xdnd):
        respx.get(CHART_URL).mock(
            return_value=httpx.Response(200, json=_chart([15, 16], [10.0, 11.0], quote=12.0))
        )

        series = await orchestrator.acquire(xdnd, date(2024, 1, 15), date(2024, 1, 19))

        assert series.dates == [date(2024, 1, 15), date(2024, 1, 16), date(2024, 1, 19)]
        assert series.last.close == 12.0
        cached = await integration_store.read_series(xdnd)
        assert cached.dates == [date(2024, 1, 15), date(2024, 1, 16)]

    @respx.mock
    async def test_interpolated_output(self, orchestrator, integration_store, xdnd):
        respx.get(CHART_URL).mock(
            return_value=httpx.Response(200, json=_chart([15, 16], [10.0, 11.0], quote=12.0))
        )

        series = await orchestrator.acquire(
            xdnd, date(2024, 1, 15), date(2024, 1, 19), interpolate=True
        )

        assert len(series) == 5
        assert series.get(date(2024, 1, 17)).close == 11.0
        assert series.get(date(2024, 1, 18)).source == Provenance.FLAT_LINE.value
        assert len(await integration_store.read_series(xdnd)) == 2


class TestWarmCache:
    @respx.mock
    async def test_second_call_fetches_only_the_gap(self, orchestrator, xdnd):
        route = respx.get(CHART_URL).mock(
            side_effect=_yahoo(
                httpx.Response(200, json=_chart([15, 16], [10.0, 11.0])),
                httpx.Response(200, json=_chart([17, 18], [11.5, 11.7])),
            )
        )

        await orchestrator.acquire(xdnd, date(2024, 1, 15), date(2024, 1, 16))
        series = await orchestrator.acquire(xdnd, date(2024, 1, 15), date(2024, 1, 19))

        second = _history_calls(route)[1]
        assert second["period1"] == "1705449600"  # 2024-01-17
        assert second["period2"] == "1705622400"  # 2024-01-19 00:00, exclusive end
        assert series.dates == [date(2024, 1, d) for d in (15, 16, 17, 18)]
        assert series.get(date(2024, 1, 15)).close == 10.0

    @respx.mock
    async def test_refresh_failure_serves_cache(self, orchestrator, xdnd):
        respx.get(CHART_URL).mock(
            side_effect=_yahoo(
                httpx.Response(200, json=_chart([15, 16], [10.0, 11.0])),
                httpx.Response(500),
            )
        )
        respx.get(STOOQ_HISTORY_URL).mock(return_value=httpx.Response(200, text="No data"))

        await orchestrator.acquire(xdnd, date(2024, 1, 15), date(2024, 1, 16))
        series = await orchestrator.acquire(xdnd, date(2024, 1, 15), date(2024, 1, 19))

        assert series.dates == [date(2024, 1, 15), date(2024, 1, 16)]


class TestFallback:
    @respx.mock
    async def test_stooq_serves_when_yahoo_fails(self, orchestrator, integration_store, xdnd):
        yahoo = respx.get(CHART_URL).mock(return_value=httpx.Response(500))
        respx.get(STOOQ_HISTORY_URL).mock(
            return_value=httpx.Response(
                200,
                text=(
                    "Date,Open,High,Low,Close,Volume\n"
                    "2024-01-15,10,10,10,10.0,100\n"
                    "2024-01-16,11,11,11,11.0,100\n"
                ),
            )
        )
        respx.get(STOOQ_QUOTE_URL).mock(
            return_value=httpx.Response(
                200,
                text="Symbol,Date,Time,Open,High,Low,Close,Volume\nXDND.UK,2024-01-19,17:35:00,12,12,12,12.0,50\n",
            )
        )

        series = await orchestrator.acquire(xdnd, date(2024, 1, 15), date(2024, 1, 19))

        assert yahoo.call_count == 1
        assert [b.source for b in series.bars] == ["stooq", "stooq", "stooq"]
        assert series.last.date == date(2024, 1, 19)
        assert (await integration_store.read_series(xdnd)).first.source == "stooq"

    @respx.mock
    async def test_open_breaker_skips_feed(self, orchestrator, xdnd):
        yahoo = respx.get(CHART_URL).mock(return_value=httpx.Response(503))
        respx.get(STOOQ_HISTORY_URL).mock(return_value=httpx.Response(200, text="No data"))

        assert await orchestrator.acquire(xdnd, date(2024, 1, 15), date(2024, 1, 19)) is None
        assert await orchestrator.acquire(xdnd, date(2024, 1, 15), date(2024, 1, 19)) is None
        assert yahoo.call_count == 1

    @respx.mock
    async def test_nothing_anywhere_is_none(self, orchestrator, xdnd):
        respx.get(CHART_URL).mock(return_value=httpx.Response(404))
        respx.get(STOOQ_HISTORY_URL).mock(return_value=httpx.Response(200, text="No data"))

        assert await orchestrator.acquire(xdnd, date(2024, 1, 15), date(2024, 1, 19)) is None


class TestCash:
    @respx.mock
    async def test_no_http_for_cash(self, orchestrator, integration_store):
        series = await orchestrator.acquire(CASH, date(2024, 1, 13), date(2024, 1, 19))

        assert respx.calls.call_count == 0
        assert series.dates == [date(2024, 1, 12)] + [date(2024, 1, d) for d in range(15, 20)]
        assert await integration_store.get_instruments() == []
