"""Gap detection: which business days in a range have no bar."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from stockfeed.core.models import DateRange, Series
from stockfeed.timeseries.calendar import business_days_between


def find_missing(series: Series | None, start: date, end: date) -> list[date]:
    """Business days in ``[start, end]`` with no bar in ``series``, ascending.

    An empty list means the range is fully covered. A missing series means
    every business day is missing.
    """
    present = set(series.dates) if series is not None else set()
    return [day for day in business_days_between(start, end) if day not in present]


def covering_range(missing: Sequence[date]) -> DateRange | None:
    """Smallest range containing every missing date, or None when nothing is missing."""
    if not missing:
        return None
    return DateRange(start=min(missing), end=max(missing))
