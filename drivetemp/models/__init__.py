"""
Shared Pydantic data models for the temperature monitor.

Modules:
    readings: Temperature samples, periods and aggregation intervals
    alerts: Alerts, spikes, filters and summaries
    stats: Statistics, time series, summary and dashboard results

Example:
    >>> from drivetemp.models import TemperatureReading, Period
    >>> from drivetemp.models import TemperatureAlert, AlertType
"""

# Reading models
from drivetemp.models.readings import (
    AggregationInterval,
    DriveInfo,
    Period,
    ReadingAggregate,
    TemperatureReading,
    TemperatureStatus,
    is_valid_temperature,
)

# Alert and spike models
from drivetemp.models.alerts import (
    AlertFilter,
    AlertSummary,
    AlertType,
    DriveAlertStatus,
    SpikeDirection,
    SpikeSummary,
    TemperatureAlert,
    TemperatureSpike,
)

# Statistics models
from drivetemp.models.stats import (
    CurrentTemperature,
    DashboardData,
    DistributionBucket,
    DriveTrend,
    HeatmapCell,
    HeatmapRow,
    OverviewStatus,
    TemperatureStats,
    TemperatureSummary,
    TemperatureThresholds,
    TimeSeriesData,
    TimeSeriesPoint,
    TrendDirection,
)

__all__: list[str] = [
    # Readings
    "AggregationInterval",
    "DriveInfo",
    "Period",
    "ReadingAggregate",
    "TemperatureReading",
    "TemperatureStatus",
    "is_valid_temperature",
    # Alerts
    "AlertFilter",
    "AlertSummary",
    "AlertType",
    "DriveAlertStatus",
    "SpikeDirection",
    "SpikeSummary",
    "TemperatureAlert",
    "TemperatureSpike",
    # Statistics
    "CurrentTemperature",
    "DashboardData",
    "DistributionBucket",
    "DriveTrend",
    "HeatmapCell",
    "HeatmapRow",
    "OverviewStatus",
    "TemperatureStats",
    "TemperatureSummary",
    "TemperatureThresholds",
    "TimeSeriesData",
    "TimeSeriesPoint",
    "TrendDirection",
]
