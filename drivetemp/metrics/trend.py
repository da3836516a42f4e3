"""
Least-squares trend estimation for temperature series.

The trend of a reading window is the slope of the line
``temperature = a + b * hours`` fitted by ordinary least squares, where
``hours`` is the time elapsed since the first reading of the window.

Formula:
    b = (n·Σxy − Σx·Σy) / (n·Σx² − (Σx)²)

Classification uses a fixed ±0.1 °C/hour noise band.

Example:
    >>> linear_regression_slope([0, 1, 2, 3], [1, 3, 5, 7])
    2.0
    >>> classify_trend(0.05, data_points=10)
    'stable'
"""

from typing import List, Sequence, Tuple

from drivetemp.models.readings import TemperatureReading
from drivetemp.models.stats import TrendDirection

# °C/hour; slopes inside ±TREND_BAND are noise
TREND_BAND = 0.1


def linear_regression_slope(xs: Sequence[float], ys: Sequence[float]) -> float:
    """
    Ordinary least-squares slope of ys against xs.

    Returns 0 for fewer than two points or when every x is identical.

    Args:
        xs: Independent values.
        ys: Dependent values, same length as xs.

    Returns:
        float: The fitted slope.

    Raises:
        ValueError: If xs and ys differ in length.
    """
    if len(xs) != len(ys):
        raise ValueError(f"length mismatch: {len(xs)} x values, {len(ys)} y values")

    n = len(xs)
    if n < 2:
        return 0.0

    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_xx = sum(x * x for x in xs)

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return 0.0

    return (n * sum_xy - sum_x * sum_y) / denominator


def classify_trend(slope: float, data_points: int) -> str:
    """Label a slope as heating, cooling, stable or insufficient_data."""
    if data_points < 2:
        return TrendDirection.INSUFFICIENT_DATA
    if slope > TREND_BAND:
        return TrendDirection.HEATING
    if slope < -TREND_BAND:
        return TrendDirection.COOLING
    return TrendDirection.STABLE


def hours_since_first(readings: Sequence[TemperatureReading]) -> List[float]:
    """Elapsed hours of each reading relative to the first one."""
    if not readings:
        return []
    origin = readings[0].timestamp
    return [(r.timestamp - origin).total_seconds() / 3600.0 for r in readings]


def compute_trend(readings: Sequence[TemperatureReading]) -> Tuple[float, str]:
    """
    Slope (rounded to 4 decimals) and label for time-ordered readings.

    Example:
        >>> slope, label = compute_trend(readings)
    """
    hours = hours_since_first(readings)
    temperatures = [float(r.temperature) for r in readings]
    slope = round(linear_regression_slope(hours, temperatures), 4)
    return slope, classify_trend(slope, len(readings))
