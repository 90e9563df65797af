"""Removal of structurally invalid bars.

Cleaning only ever drops bars: it never reorders or synthesizes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import date

from stockfeed.core.config import CleaningConfig
from stockfeed.core.models import Bar, Series

logger = logging.getLogger(__name__)


def clean_bars(
    bars: Sequence[Bar],
    min_year: int,
    max_year: int,
) -> list[Bar]:
    """Drop bars with implausible years or that break strictly ascending order.

    A bar is kept only if its year lies in ``[min_year, max_year]`` and its
    date is after the last kept bar.
    """
    kept: list[Bar] = []
    bad_dates = 0
    out_of_order = 0
    for bar in bars:
        if not min_year <= bar.date.year <= max_year:
            bad_dates += 1
            continue
        if kept and bar.date <= kept[-1].date:
            out_of_order += 1
            continue
        kept.append(bar)

    if bad_dates or out_of_order:
        logger.warning(
            "Removed %d bars with implausible dates and %d out-of-order bars",
            bad_dates,
            out_of_order,
        )
    return kept


class Cleaner:
    """Applies the configured plausibility window to a series.

    Parameters
    ----------
    config : CleaningConfig | None
        Year bounds. Defaults are used if None.
    clock : Callable[[], date]
        Source of today's date; the upper bound is relative to it.
    """

    def __init__(
        self,
        config: CleaningConfig | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._config = config or CleaningConfig()
        self._clock = clock

    @property
    def max_year(self) -> int:
        return self._clock().year + self._config.max_year_ahead

    def clean(self, series: Series) -> Series:
        kept = clean_bars(series.bars, self._config.min_year, self.max_year)
        if len(kept) == len(series):
            return series
        return series.with_bars(kept)
