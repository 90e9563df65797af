"""Shared pytest fixtures for stockfeed."""

from datetime import date

import pytest

from stockfeed.core.models import (
    AssetType,
    Bar,
    Exchange,
    Instrument,
    Series,
)


@pytest.fixture
def instrument() -> Instrument:
    return Instrument(
        code="XDND",
        exchange=Exchange.LONDON,
        asset_type=AssetType.ETF,
        source="yahoo",
        name="Xtrackers MSCI North America High Dividend",
    )


@pytest.fixture
def make_bar():
    """Factory for Bar with overridable defaults."""

    def _make(day: date, close: float = 100.0, **overrides) -> Bar:
        defaults = dict(
            date=day,
            open=close,
            high=close,
            low=close,
            close=close,
            volume=1000,
            source="test",
        )
        defaults.update(overrides)
        return Bar(**defaults)

    return _make


@pytest.fixture
def make_series(instrument, make_bar):
    """Factory building a series from ``(date, close)`` pairs."""

    def _make(points, inst: Instrument | None = None, **bar_overrides) -> Series:
        return Series(
            instrument=inst or instrument,
            bars=tuple(make_bar(d, c, **bar_overrides) for d, c in points),
        )

    return _make


@pytest.fixture
def week_series(make_series) -> Series:
    """Mon 2017-04-03 .. Fri 2017-04-07 with Wednesday missing."""
    return make_series(
        [
            (date(2017, 4, 3), 100.0),
            (date(2017, 4, 4), 101.0),
            (date(2017, 4, 6), 103.0),
            (date(2017, 4, 7), 104.0),
        ]
    )
