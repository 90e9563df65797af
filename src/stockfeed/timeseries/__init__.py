"""Time-series primitives: calendar, gaps, merging, cleaning, interpolation, export."""

from stockfeed.timeseries.calendar import (
    BusinessDays,
    business_days_between,
    business_days_spanned,
    is_business_day,
    normalize,
    previous_business_day,
    years_before,
)
from stockfeed.timeseries.cleaner import Cleaner, clean_bars
from stockfeed.timeseries.export import export_filename, series_to_csv, write_series_csv
from stockfeed.timeseries.gaps import covering_range, find_missing
from stockfeed.timeseries.interpolation import (
    FlatLineInterpolator,
    LinearInterpolator,
    TimeSeriesInterpolator,
    create_interpolator,
)
from stockfeed.timeseries.reconcile import merge, replace_bar

__all__ = [
    "BusinessDays",
    "Cleaner",
    "FlatLineInterpolator",
    "LinearInterpolator",
    "TimeSeriesInterpolator",
    "business_days_between",
    "business_days_spanned",
    "clean_bars",
    "covering_range",
    "create_interpolator",
    "export_filename",
    "find_missing",
    "is_business_day",
    "merge",
    "normalize",
    "previous_business_day",
    "replace_bar",
    "series_to_csv",
    "write_series_csv",
    "years_before",
]
