"""
Temperature statistics for the monitor.

Components:
    trend: Least-squares slope and trend classification
    statistics: StatisticsEngine for per-drive queries
    fleet: FleetOverview for summary, distribution, trends, heatmap, dashboard
"""

from drivetemp.metrics.fleet import FleetOverview, bucket_distribution, summarize_current
from drivetemp.metrics.statistics import StatisticsEngine
from drivetemp.metrics.trend import classify_trend, compute_trend, linear_regression_slope

__all__: list[str] = [
    "FleetOverview",
    "StatisticsEngine",
    "bucket_distribution",
    "classify_trend",
    "compute_trend",
    "linear_regression_slope",
    "summarize_current",
]
