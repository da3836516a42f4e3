"""
Tests for least-squares trend estimation.
"""

from datetime import datetime, timedelta

import pytest

from drivetemp.metrics.trend import (
    classify_trend,
    compute_trend,
    hours_since_first,
    linear_regression_slope,
)
from drivetemp.models.readings import TemperatureReading
from drivetemp.models.stats import TrendDirection


def _readings(temperatures, step=timedelta(hours=1)):
    start = datetime(2025, 1, 15, 0, 0, 0)
    return [
        TemperatureReading(
            hostname="nas01",
            serial_number="WD-123",
            temperature=t,
            timestamp=start + step * i,
        )
        for i, t in enumerate(temperatures)
    ]


class TestLinearRegressionSlope:
    """Test linear_regression_slope()."""

    def test_perfect_line(self):
        xs = [0, 1, 2, 3, 4, 5]
        ys = [2 * x + 1 for x in xs]
        assert linear_regression_slope(xs, ys) == pytest.approx(2.0, abs=0.1)

    def test_constant_series(self):
        assert linear_regression_slope([0, 1, 2, 3], [40, 40, 40, 40]) == 0

    def test_identical_x_short_circuits(self):
        assert linear_regression_slope([1, 1, 1], [30, 40, 50]) == 0

    def test_single_point(self):
        assert linear_regression_slope([0], [40]) == 0

    def test_empty(self):
        assert linear_regression_slope([], []) == 0

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="length mismatch"):
            linear_regression_slope([0, 1], [1])


class TestClassifyTrend:
    """Test classify_trend() band edges."""

    @pytest.mark.parametrize(
        "slope,expected",
        [
            (0.5, TrendDirection.HEATING),
            (0.11, TrendDirection.HEATING),
            (0.1, TrendDirection.STABLE),
            (0.0, TrendDirection.STABLE),
            (-0.1, TrendDirection.STABLE),
            (-0.11, TrendDirection.COOLING),
        ],
    )
    def test_bands(self, slope, expected):
        assert classify_trend(slope, data_points=5) == expected

    def test_insufficient_data(self):
        assert classify_trend(3.0, data_points=1) == TrendDirection.INSUFFICIENT_DATA


class TestComputeTrend:
    """Test compute_trend() on readings."""

    def test_hours_since_first(self):
        readings = _readings([40, 41, 42], step=timedelta(minutes=30))
        assert hours_since_first(readings) == [0.0, 0.5, 1.0]

    def test_heating(self):
        slope, label = compute_trend(_readings([40, 41, 42, 43]))
        assert slope == pytest.approx(1.0)
        assert label == TrendDirection.HEATING

    def test_cooling(self):
        slope, label = compute_trend(_readings([50, 48, 46]))
        assert slope == pytest.approx(-2.0)
        assert label == TrendDirection.COOLING

    def test_rounded_to_four_decimals(self):
        slope, _ = compute_trend(_readings([40, 41, 40, 42, 41, 43, 41]))
        assert slope == round(slope, 4)

    def test_single_reading(self):
        assert compute_trend(_readings([40])) == (0.0, TrendDirection.INSUFFICIENT_DATA)
