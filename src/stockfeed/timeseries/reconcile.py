"""Series reconciliation.

``merge`` is not commutative: on a date present in both series the base
bar is kept.
"""

from __future__ import annotations

import logging
import math
from datetime import date

from stockfeed.core.models import Bar, Series

logger = logging.getLogger(__name__)


def _usable(bar: Bar) -> bool:
    """Zero, negative and non-finite closes are corrupt points."""
    return math.isfinite(bar.close) and bar.close > 0


def merge(base: Series, incoming: Series) -> Series:
    """Merge ``incoming`` into ``base``, one bar per date, sorted ascending.

    Bars from ``incoming`` are only admitted for dates ``base`` does not
    have, and only when their close is a positive number.
    """
    by_date: dict[date, Bar] = {bar.date: bar for bar in base.bars}
    added = 0
    rejected = 0
    for bar in incoming.bars:
        if bar.date in by_date:
            continue
        if not _usable(bar):
            rejected += 1
            continue
        by_date[bar.date] = bar
        added += 1

    if rejected:
        logger.warning(
            "Dropped %d bars with invalid close while merging %s",
            rejected,
            base.instrument.key,
        )
    logger.debug("Merged %d new bars into %s", added, base.instrument.key)

    return base.with_bars(sorted(by_date.values(), key=lambda b: b.date))


def replace_bar(series: Series, bar: Bar) -> Series:
    """Insert ``bar``, replacing any bar already on the same date."""
    bars = [b for b in series.bars if b.date != bar.date]
    bars.append(bar)
    return series.with_bars(sorted(bars, key=lambda b: b.date))
