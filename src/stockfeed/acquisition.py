"""Acquisition orchestrator: cache-first fetch, gap refresh, merge, clean, interpolate.

Pipeline for one ``acquire`` call, always in this order:

    normalize range → cash short-circuit → read cache → find gaps
    → fetch gaps from the first feed that answers → merge → write back
    → top up today's quote → clean → interpolate → trim to range

The cache keeps the merged raw series. Interpolated bars are derived per
call and never written back.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import date

from stockfeed.core.config import AcquisitionConfig, CleaningConfig, StockfeedConfig
from stockfeed.core.exceptions import ProviderUnavailableError, StorageError
from stockfeed.core.models import (
    Bar,
    DateRange,
    Instrument,
    Provenance,
    ProviderResult,
    Series,
)
from stockfeed.feeds.provider import SeriesStore, StockFeed
from stockfeed.timeseries.calendar import (
    business_days_between,
    is_business_day,
    previous_business_day,
    years_before,
)
from stockfeed.timeseries.cleaner import Cleaner
from stockfeed.timeseries.gaps import covering_range, find_missing
from stockfeed.timeseries.interpolation import create_interpolator
from stockfeed.timeseries.reconcile import merge, replace_bar

logger = logging.getLogger(__name__)


def cash_series(instrument: Instrument, start: date, end: date) -> Series:
    """Unit-price bar for every business day in ``[start, end]``."""
    return Series(
        instrument=instrument,
        bars=tuple(
            Bar(date=day, close=1.0, source=Provenance.CASH.value)
            for day in business_days_between(start, end)
        ),
    )


class AcquisitionOrchestrator:
    """Top-level entry point producing a clean, ordered series per instrument.

    Provider and cache failures never escape ``acquire``: they are logged and
    the call degrades to whatever data is left. Only when neither the cache
    nor any feed has a bar in the requested window does ``acquire`` return
    None.

    Parameters
    ----------
    cache : SeriesStore | None
        Persisted series cache. None runs without a cache.
    feeds : Sequence[StockFeed]
        Remote feeds in priority order. An instrument's preferred feed is
        tried before the others.
    config : AcquisitionConfig | None
        Refresh toggle, cleaning default, interpolation method.
    cleaning : CleaningConfig | None
        Plausibility window for the cleaner.
    clock : Callable[[], date]
        Source of today's date.
    """

    def __init__(
        self,
        cache: SeriesStore | None,
        feeds: Sequence[StockFeed] = (),
        config: AcquisitionConfig | None = None,
        cleaning: CleaningConfig | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._cache = cache
        self._feeds = list(feeds)
        self._config = config or AcquisitionConfig()
        self._cleaner = Cleaner(cleaning, clock)
        self._interpolator = create_interpolator(self._config.interpolation)
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_config(
        cls,
        config: StockfeedConfig,
        clock: Callable[[], date] = date.today,
    ) -> AcquisitionOrchestrator:
        from stockfeed.feeds.factory import create_feeds, create_store

        return cls(
            cache=create_store(config),
            feeds=create_feeds(config),
            config=config.acquisition,
            cleaning=config.cleaning,
            clock=clock,
        )

    async def __aenter__(self) -> AcquisitionOrchestrator:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close HTTP clients held by the feeds."""
        for feed in self._feeds:
            closer = getattr(feed, "close", None)
            if closer is not None:
                await closer()

    # --- Public API ---

    async def acquire(
        self,
        instrument: Instrument,
        start: date,
        end: date,
        interpolate: bool = False,
        clean: bool | None = None,
    ) -> Series | None:
        """Series for ``instrument`` over ``[start, end]``, or None if no data exists.

        Both endpoints are first moved back onto business days. ``clean``
        defaults to the configured setting.
        """
        window = DateRange.normalized(start, end)

        if instrument.is_cash:
            return cash_series(instrument, window.start, window.end)

        async with self._lock_for(instrument):
            series = await self._load(instrument, window)

        if series is None:
            logger.warning("No data for %s", instrument.key)
            return None

        if self._config.clean if clean is None else clean:
            series = self._cleaner.clean(series)

        if interpolate:
            series = self._interpolator.interpolate(series, window.start, window.end)

        series = series.with_bars(
            b
            for b in series.bars
            if window.start <= b.date <= window.end and is_business_day(b.date)
        )
        if not series.bars:
            logger.warning("No data for %s in %s", instrument.key, window)
            return None
        return series

    async def acquire_years(
        self,
        instrument: Instrument,
        years: int,
        interpolate: bool = False,
        clean: bool | None = None,
    ) -> Series | None:
        """Series covering the last ``years`` years up to today."""
        today = self._clock()
        return await self.acquire(
            instrument, years_before(today, years), today, interpolate, clean
        )

    async def import_bars(self, instrument: Instrument, bars: Iterable[Bar]) -> int:
        """Merge manually supplied bars into the cache. Returns bars added.

        Cached bars win over imported ones for the same date. Storage errors
        propagate to the caller.
        """
        if self._cache is None:
            raise StorageError(
                "No cache configured for import",
                context={"operation": "import", "instrument": instrument.key},
            )
        incoming = Series.from_bars(instrument, bars)
        async with self._lock_for(instrument):
            cached = await self._cache.read_series(instrument)
            base = cached if cached is not None else Series(instrument=instrument)
            merged = merge(base, incoming)
            await self._cache.write_series(instrument, merged)
        added = len(merged) - len(base)
        logger.info("Imported %d new bars for %s", added, instrument.key)
        return added

    # --- Pipeline steps ---

    def _lock_for(self, instrument: Instrument) -> asyncio.Lock:
        return self._locks.setdefault(instrument.key, asyncio.Lock())

    async def _load(self, instrument: Instrument, window: DateRange) -> Series | None:
        """Cache read, gap refresh, merge and write-back."""
        cached = await self._read_cache(instrument)

        feeds = self._refresh_candidates(instrument)
        if not feeds:
            return cached

        if cached is not None:
            missing = find_missing(
                cached, window.start, previous_business_day(window.end)
            )
            wanted = covering_range(missing)
            if wanted is None:
                logger.debug("Cache covers %s for %s", window, instrument.key)
                return cached
            logger.info(
                "%s missing %d business days; refreshing %s..%s",
                instrument.key,
                len(missing),
                wanted.start,
                wanted.end,
            )
        else:
            wanted = window

        result, feed = await self._fetch_first(instrument, wanted, feeds)
        if not result.ok or feed is None:
            return cached

        base = cached if cached is not None else Series(instrument=instrument)
        merged = merge(base, result.series)
        await self._write_cache(instrument, merged)
        return await self._top_up(instrument, merged, feed)

    def _refresh_candidates(self, instrument: Instrument) -> list[StockFeed]:
        """Available feeds, preferred feed first. Empty when refresh is off."""
        if not self._config.refresh:
            return []

        ordered = sorted(self._feeds, key=lambda f: f.name != instrument.source)
        candidates: list[StockFeed] = []
        for feed in ordered:
            try:
                available = feed.is_available()
            except Exception as e:
                logger.warning("%s availability check failed: %s", feed.name, e)
                available = False
            if available:
                candidates.append(feed)
            else:
                logger.info("%s feed is not available", feed.name)
        return candidates

    async def _fetch_first(
        self,
        instrument: Instrument,
        wanted: DateRange,
        feeds: Sequence[StockFeed],
    ) -> tuple[ProviderResult, StockFeed | None]:
        """Ask each feed in turn; the first non-empty answer wins."""
        last = ProviderResult(source="none", error="no feed answered")
        for feed in feeds:
            try:
                series = await feed.fetch(instrument, wanted.start, wanted.end)
            except ProviderUnavailableError as e:
                logger.info("Skipping %s for %s: %s", feed.name, instrument.key, e)
                last = ProviderResult(source=feed.name, error=str(e))
                continue
            except Exception as e:
                logger.warning(
                    "%s fetch failed for %s: %s", feed.name, instrument.key, e
                )
                logger.debug("Fetch failure detail", exc_info=True)
                last = ProviderResult(source=feed.name, error=str(e))
                continue

            result = ProviderResult(source=feed.name, series=series)
            if result.ok:
                logger.info(
                    "%s returned %d bars for %s", feed.name, len(series), instrument.key
                )
                return result, feed
            logger.info("%s has no data for %s", feed.name, instrument.key)
            last = result
        return last, None

    async def _read_cache(self, instrument: Instrument) -> Series | None:
        if self._cache is None or not self._cache.is_available():
            return None
        try:
            return await self._cache.read_series(instrument)
        except Exception as e:
            logger.error("Cache read failed for %s: %s", instrument.key, e)
            logger.debug("Cache read failure detail", exc_info=True)
            return None

    async def _write_cache(self, instrument: Instrument, series: Series) -> None:
        if self._cache is None or not self._cache.is_available():
            return
        try:
            await self._cache.write_series(instrument, series)
        except Exception as e:
            logger.error("Cache write failed for %s: %s", instrument.key, e)
            logger.debug("Cache write failure detail", exc_info=True)

    async def _top_up(
        self, instrument: Instrument, series: Series, feed: StockFeed
    ) -> Series:
        """Add or replace the latest bar with a live quote. Not persisted."""
        if not series.bars:
            return series
        try:
            quote = await feed.fetch_latest_quote(instrument)
        except Exception as e:
            logger.warning(
                "Failed to populate quote for %s from %s: %s",
                instrument.key,
                feed.name,
                e,
            )
            return series

        if quote is None or quote.close <= 0:
            return series
        if quote.date < series.bars[-1].date:
            logger.debug("Ignoring stale quote %s for %s", quote.date, instrument.key)
            return series
        return replace_bar(series, quote)
