"""Tests for stockfeed.timeseries.interpolation."""

from datetime import date

import pytest

from stockfeed.core.models import Provenance, Series
from stockfeed.timeseries.calendar import business_days_between
from stockfeed.timeseries.interpolation import (
    FlatLineInterpolator,
    LinearInterpolator,
    TimeSeriesInterpolator,
    create_interpolator,
)


class TestFlatLineInterpolator:
    def test_single_point_extends_over_range(self, make_series):
        series = make_series([(date(2017, 4, 3), 1.0)])
        start, end = date(2017, 3, 27), date(2017, 4, 14)
        filled = FlatLineInterpolator().interpolate(series, start, end)

        expected_days = list(business_days_between(start, end))
        assert filled.dates == expected_days
        assert len(filled) == 15
        assert all(b.close == 1.0 for b in filled.bars)
        assert all(b.open == b.high == b.low == 1.0 for b in filled.bars)

    def test_interior_gap_carries_previous_close(self, week_series):
        filled = FlatLineInterpolator().interpolate(
            week_series, date(2017, 4, 3), date(2017, 4, 7)
        )
        bar = filled.get(date(2017, 4, 5))
        assert bar.close == 101.0
        assert bar.volume == 0
        assert bar.source == Provenance.FLAT_LINE.value
        assert bar.is_synthetic

    def test_leading_gap_uses_first_close(self, week_series):
        filled = FlatLineInterpolator().interpolate(
            week_series, date(2017, 3, 30), date(2017, 4, 7)
        )
        assert filled.get(date(2017, 3, 30)).close == 100.0
        assert filled.get(date(2017, 3, 31)).close == 100.0

    def test_trailing_gap_uses_last_close(self, week_series):
        filled = FlatLineInterpolator().interpolate(
            week_series, date(2017, 4, 3), date(2017, 4, 11)
        )
        assert filled.get(date(2017, 4, 10)).close == 104.0
        assert filled.get(date(2017, 4, 11)).close == 104.0

    def test_preserves_original_bars(self, week_series):
        filled = FlatLineInterpolator().interpolate(
            week_series, date(2017, 3, 30), date(2017, 4, 11)
        )
        for bar in week_series.bars:
            assert filled.get(bar.date) == bar

    def test_fills_exactly_missing_days(self, week_series):
        start, end = date(2017, 3, 30), date(2017, 4, 11)
        filled = FlatLineInterpolator().interpolate(week_series, start, end)
        synthetic = [b.date for b in filled.bars if b.is_synthetic]
        assert synthetic == [
            date(2017, 3, 30),
            date(2017, 3, 31),
            date(2017, 4, 5),
            date(2017, 4, 10),
            date(2017, 4, 11),
        ]

    def test_empty_series_unchanged(self, instrument):
        empty = Series(instrument=instrument)
        assert FlatLineInterpolator().interpolate(empty, date(2017, 4, 3), date(2017, 4, 7)) == empty

    def test_nothing_synthesized_outside_range(self, make_series):
        series = make_series([(date(2017, 4, 3), 1.0), (date(2017, 4, 14), 2.0)])
        filled = FlatLineInterpolator().interpolate(series, date(2017, 4, 12), date(2017, 4, 14))
        assert filled.dates == [
            date(2017, 4, 3),
            date(2017, 4, 12),
            date(2017, 4, 13),
            date(2017, 4, 14),
        ]


class TestLinearInterpolator:
    def test_first_step_over_two_weekends(self, make_series):
        # Mon 2017-04-03 -> Thu 2017-04-13 is 8 business-day steps
        series = make_series([(date(2017, 4, 3), 100.0), (date(2017, 4, 13), 110.0)])
        filled = LinearInterpolator().interpolate(series, date(2017, 4, 3), date(2017, 4, 13))
        assert filled.get(date(2017, 4, 4)).close == pytest.approx(101.25)
        assert filled.get(date(2017, 4, 12)).close == pytest.approx(108.75)
        assert len(filled) == 9

    def test_descending_run(self, make_series):
        series = make_series([(date(2017, 4, 3), 105.0), (date(2017, 4, 7), 102.0)])
        filled = LinearInterpolator().interpolate(series, date(2017, 4, 3), date(2017, 4, 7))
        closes = [b.close for b in filled.bars]
        assert closes == pytest.approx([105.0, 104.25, 103.5, 102.75, 102.0])

    def test_synthetic_bars_tagged_linear(self, week_series):
        filled = LinearInterpolator().interpolate(week_series, date(2017, 4, 3), date(2017, 4, 7))
        bar = filled.get(date(2017, 4, 5))
        assert bar.close == pytest.approx(102.0)
        assert bar.source == Provenance.LINEAR.value
        assert bar.open == bar.high == bar.low == bar.close
        assert bar.volume == 0

    def test_boundaries_are_flat(self, week_series):
        filled = LinearInterpolator().interpolate(week_series, date(2017, 3, 31), date(2017, 4, 10))
        assert filled.first.close == 100.0
        assert filled.first.source == Provenance.FLAT_LINE.value
        assert filled.last.close == 104.0
        assert filled.last.source == Provenance.FLAT_LINE.value

    def test_partial_gap_inside_range_keeps_slope(self, make_series):
        series = make_series([(date(2017, 4, 3), 100.0), (date(2017, 4, 13), 110.0)])
        filled = LinearInterpolator().interpolate(series, date(2017, 4, 11), date(2017, 4, 13))
        assert filled.get(date(2017, 4, 11)).close == pytest.approx(107.5)
        assert filled.get(date(2017, 4, 4)) is None


class TestFactory:
    @pytest.mark.parametrize(
        "method, cls",
        [("flat", FlatLineInterpolator), ("linear", LinearInterpolator), ("LINEAR", LinearInterpolator)],
    )
    def test_known_methods(self, method, cls):
        interpolator = create_interpolator(method)
        assert type(interpolator) is cls
        assert isinstance(interpolator, TimeSeriesInterpolator)

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown interpolation method"):
            create_interpolator("spline")
