"""Gap filling for sorted series.

Two strategies share the same boundary handling: days before the first
real bar and after the last one are flat-line extended. They differ only
in how an interior run of missing days is filled.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, timedelta
from typing import Protocol, runtime_checkable

import numpy as np

from stockfeed.core.models import Bar, Provenance, Series
from stockfeed.timeseries.calendar import business_days_between, business_days_spanned

_ONE_DAY = timedelta(days=1)


@runtime_checkable
class TimeSeriesInterpolator(Protocol):
    """Fills missing business days in ``[start, end]``.

    Existing bars are returned untouched; only synthetic bars are added.
    """

    def interpolate(self, series: Series, start: date, end: date) -> Series: ...


def _synthetic(day: date, price: float, provenance: Provenance) -> Bar:
    return Bar(
        date=day,
        open=price,
        high=price,
        low=price,
        close=price,
        volume=0,
        source=provenance.value,
    )


class FlatLineInterpolator:
    """Carries the most recent known close forward across every gap."""

    def interpolate(self, series: Series, start: date, end: date) -> Series:
        if not series.bars:
            return series

        def within(days) -> list[date]:
            return [d for d in days if start <= d <= end]

        bars = series.bars
        out: list[Bar] = []

        first = bars[0]
        for day in within(business_days_between(start, first.date - _ONE_DAY)):
            out.append(_synthetic(day, first.close, Provenance.FLAT_LINE))

        for older, newer in zip(bars, bars[1:]):
            out.append(older)
            gap = within(business_days_between(older.date + _ONE_DAY, newer.date - _ONE_DAY))
            if gap:
                out.extend(self._fill_interior(older, newer, gap))
        out.append(bars[-1])

        last = bars[-1]
        for day in within(business_days_between(last.date + _ONE_DAY, end)):
            out.append(_synthetic(day, last.close, Provenance.FLAT_LINE))

        return series.with_bars(out)

    def _fill_interior(
        self, older: Bar, newer: Bar, gap: Sequence[date]
    ) -> list[Bar]:
        return [_synthetic(day, older.close, Provenance.FLAT_LINE) for day in gap]


class LinearInterpolator(FlatLineInterpolator):
    """Spaces closes evenly between the bars either side of an interior gap.

    The step is ``(newer.close - older.close) / n`` where ``n`` counts
    business-day steps from the older bar to the newer one.
    """

    def _fill_interior(
        self, older: Bar, newer: Bar, gap: Sequence[date]
    ) -> list[Bar]:
        steps = business_days_spanned(older.date, newer.date)
        closes = np.linspace(older.close, newer.close, steps + 1)[1:-1]
        by_day = dict(
            zip(business_days_between(older.date + _ONE_DAY, newer.date - _ONE_DAY), closes)
        )
        return [
            _synthetic(day, round(float(by_day[day]), 10), Provenance.LINEAR)
            for day in gap
        ]


_INTERPOLATORS: dict[str, type[FlatLineInterpolator]] = {
    "flat": FlatLineInterpolator,
    "linear": LinearInterpolator,
}


def create_interpolator(method: str) -> TimeSeriesInterpolator:
    """Instantiate the interpolator named in configuration."""
    try:
        return _INTERPOLATORS[method.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown interpolation method {method!r}; "
            f"expected one of {sorted(_INTERPOLATORS)}"
        ) from None
