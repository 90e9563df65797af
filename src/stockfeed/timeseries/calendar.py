"""Business-day arithmetic.

Business days are Monday to Friday. Holidays are not modelled: a bank
holiday shows up as a gap and is handled like any other missing day.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta

_ONE_DAY = timedelta(days=1)
_SATURDAY = 5


def is_business_day(day: date) -> bool:
    return day.weekday() < _SATURDAY


def normalize(day: date) -> date:
    """Return ``day`` itself, or the closest earlier business day for weekends."""
    if not is_business_day(day):
        return previous_business_day(day)
    return day


def previous_business_day(day: date) -> date:
    """The business day strictly before ``day``."""
    return normalize(day - _ONE_DAY)


def next_business_day(day: date) -> date:
    """The business day strictly after ``day``."""
    nxt = day + _ONE_DAY
    while not is_business_day(nxt):
        nxt += _ONE_DAY
    return nxt


class BusinessDays:
    """Lazy, restartable sequence of business days from ``start`` to ``end`` inclusive.

    Each call to ``iter()`` starts again from ``start``.
    """

    def __init__(self, start: date, end: date) -> None:
        self.start = start
        self.end = end

    def __iter__(self) -> Iterator[date]:
        day = self.start if is_business_day(self.start) else next_business_day(self.start)
        while day <= self.end:
            yield day
            day = next_business_day(day)

    def __len__(self) -> int:
        if self.end < self.start:
            return 0
        full_weeks, rest = divmod((self.end - self.start).days + 1, 7)
        count = full_weeks * 5
        for offset in range(rest):
            if is_business_day(self.start + timedelta(days=full_weeks * 7 + offset)):
                count += 1
        return count

    def __contains__(self, day: object) -> bool:
        return (
            isinstance(day, date)
            and self.start <= day <= self.end
            and is_business_day(day)
        )

    def __repr__(self) -> str:
        return f"BusinessDays({self.start.isoformat()}, {self.end.isoformat()})"


def business_days_between(start: date, end: date) -> BusinessDays:
    """Business days from ``start`` to ``end`` inclusive. Empty when ``end < start``."""
    return BusinessDays(start, end)


def business_days_spanned(older: date, newer: date) -> int:
    """Number of business-day steps from ``older`` to ``newer``.

    Adjacent business days (e.g. Friday to Monday) are one step apart.
    """
    if newer <= older:
        return 0
    return len(BusinessDays(older + _ONE_DAY, newer))


def years_before(day: date, years: int) -> date:
    """Same calendar day ``years`` earlier; 29 February falls back to the 28th."""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, day=28)
