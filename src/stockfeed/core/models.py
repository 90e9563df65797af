"""Pydantic data models: the system's type contracts."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from enum import StrEnum
from typing import Any

import pandas as pd
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# --- Type Aliases ---

Ticker = str
InstrumentKey = str
FeedName = str

# --- Enumerations ---


class Exchange(StrEnum):
    """Exchanges an instrument can be listed on."""

    LONDON = "London"
    NYSE = "NYSE"
    NASDAQ = "NASDAQ"
    XETRA = "Xetra"
    NA = "NA"


class AssetType(StrEnum):
    """Broad asset classes."""

    EQUITY = "equity"
    ETF = "etf"
    FUND = "fund"
    BOND = "bond"
    INDEX = "index"
    FX = "fx"
    CASH = "cash"


class Provenance(StrEnum):
    """Origins of bars that were not delivered by a real provider."""

    FLAT_LINE = "flat_line"
    LINEAR = "linear"
    CASH = "cash"


_SYNTHETIC_SOURCES = frozenset(p.value for p in Provenance)


# --- Instruments ---


class Instrument(BaseModel):
    """Immutable identity of a tradable instrument.

    Used only as a lookup key. ``source`` names the preferred price feed.
    """

    model_config = ConfigDict(frozen=True)

    code: Ticker
    exchange: Exchange = Exchange.NA
    asset_type: AssetType = AssetType.EQUITY
    source: FeedName = "yahoo"
    name: str | None = None
    isin: str | None = None
    currency: str | None = None

    @field_validator("code")
    @classmethod
    def code_not_blank(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("code must not be blank")
        return v

    @property
    def key(self) -> InstrumentKey:
        """Cache key, unique per exchange listing."""
        return f"{self.exchange.value}:{self.code}"

    @property
    def is_cash(self) -> bool:
        return self.asset_type == AssetType.CASH


CASH = Instrument(
    code="CASH",
    exchange=Exchange.NA,
    asset_type=AssetType.CASH,
    source="manual",
    name="Cash",
)


# --- Price Models ---


class Bar(BaseModel):
    """One trading day's OHLCV summary.

    ``open``, ``high`` and ``low`` default to ``close`` when a provider omits
    them; ``volume`` defaults to zero. ``source`` records provenance.
    """

    model_config = ConfigDict(frozen=True)

    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int = 0
    source: str = "unknown"

    @model_validator(mode="before")
    @classmethod
    def default_to_close(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        close = data.get("close")
        for field in ("open", "high", "low"):
            if data.get(field) is None:
                data[field] = close
        if data.get("volume") is None:
            data["volume"] = 0
        return data

    @field_validator("volume")
    @classmethod
    def volume_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"volume must be >= 0, got {v}")
        return v

    @property
    def is_synthetic(self) -> bool:
        """True for interpolated or manufactured bars."""
        return self.source in _SYNTHETIC_SOURCES


class Series(BaseModel):
    """Bars for one instrument, strictly ascending by date, one per date."""

    model_config = ConfigDict(frozen=True)

    instrument: Instrument
    bars: tuple[Bar, ...] = ()

    @model_validator(mode="after")
    def strictly_ascending(self) -> Series:
        for prev, cur in zip(self.bars, self.bars[1:]):
            if cur.date <= prev.date:
                raise ValueError(
                    f"bars must be strictly ascending by date: "
                    f"{cur.date} follows {prev.date}"
                )
        return self

    @classmethod
    def from_bars(cls, instrument: Instrument, bars: Iterable[Bar]) -> Series:
        """Build a series from unordered bars, keeping the first bar seen per date."""
        by_date: dict[date, Bar] = {}
        for bar in bars:
            by_date.setdefault(bar.date, bar)
        return cls(
            instrument=instrument,
            bars=tuple(sorted(by_date.values(), key=lambda b: b.date)),
        )

    def with_bars(self, bars: Iterable[Bar]) -> Series:
        """Return a new series for the same instrument."""
        return Series(instrument=self.instrument, bars=tuple(bars))

    def __len__(self) -> int:
        return len(self.bars)

    @property
    def dates(self) -> list[date]:
        return [b.date for b in self.bars]

    @property
    def first(self) -> Bar | None:
        return self.bars[0] if self.bars else None

    @property
    def last(self) -> Bar | None:
        return self.bars[-1] if self.bars else None

    def get(self, day: date) -> Bar | None:
        for bar in self.bars:
            if bar.date == day:
                return bar
        return None

    def between(self, start: date, end: date) -> Series:
        """Bars with ``start <= date <= end``."""
        return self.with_bars(b for b in self.bars if start <= b.date <= end)

    def to_frame(self) -> pd.DataFrame:
        """Return the bars as a DataFrame indexed by date."""
        columns = ["open", "high", "low", "close", "volume", "source"]
        if not self.bars:
            return pd.DataFrame(columns=columns)
        frame = pd.DataFrame(
            [b.model_dump(exclude={"date"}) for b in self.bars],
            index=pd.to_datetime([b.date for b in self.bars]),
            columns=columns,
        )
        frame.index.name = "date"
        return frame


class DateRange(BaseModel):
    """Inclusive date range."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def end_not_before_start(self) -> DateRange:
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) must not be before start ({self.start})")
        return self

    @classmethod
    def normalized(cls, start: date, end: date) -> DateRange:
        """Build a range whose endpoints are moved back onto business days."""
        from stockfeed.timeseries.calendar import normalize

        return cls(start=normalize(start), end=normalize(end))


class ProviderResult(BaseModel):
    """Outcome of asking one feed for data.

    ``series`` is None when the feed had nothing, never an empty series.
    """

    model_config = ConfigDict(frozen=True)

    source: FeedName
    series: Series | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.series is not None and len(self.series) > 0
