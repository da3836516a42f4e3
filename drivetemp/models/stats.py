"""
Statistics, summary and dashboard models.

These are the read-side result shapes returned by the statistics engine
and the fleet overview.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from drivetemp.models.alerts import TemperatureAlert, TemperatureSpike
from drivetemp.models.readings import AggregationInterval, Period, TemperatureStatus


class TrendDirection:
    """Trend labels derived from the regression slope."""

    HEATING = "heating"
    COOLING = "cooling"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class TemperatureThresholds(BaseModel):
    """
    Snapshot of runtime settings used by one evaluation.

    Read fresh from the settings provider every time; never cached.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    warning: int = Field(default=45, description="Warning threshold (°C)")
    critical: int = Field(default=55, description="Critical threshold (°C)")
    spike_threshold: int = Field(default=10, description="Spike magnitude threshold (°C)")
    spike_window_minutes: int = Field(default=30, description="Spike detection window")
    cooldown_minutes: int = Field(default=60, description="Alert cooldown window")
    alerts_enabled: bool = True
    recovery_enabled: bool = True
    temperature_retention_days: int = 90
    alert_retention_days: int = 365


class TemperatureStats(BaseModel):
    """Descriptive statistics and trend for one drive over a period."""

    model_config = {"frozen": True, "extra": "forbid"}

    hostname: str
    serial_number: str
    device_name: Optional[str] = None
    model: Optional[str] = None
    period: Period
    min_temp: int
    max_temp: int
    avg_temp: float
    current_temp: int
    std_dev: float
    variance: float
    data_points: int
    first_reading: datetime
    last_reading: datetime
    trend_slope: float = Field(..., description="°C per hour")
    trend: str


class CurrentTemperature(BaseModel):
    """Latest reading of a drive with its threshold status."""

    model_config = {"frozen": True, "extra": "forbid"}

    hostname: str
    serial_number: str
    device_name: Optional[str] = None
    model: Optional[str] = None
    temperature: int
    timestamp: datetime
    status: TemperatureStatus


class TimeSeriesPoint(BaseModel):
    """One aggregation bucket of a time series."""

    model_config = {"frozen": True, "extra": "forbid"}

    timestamp: datetime = Field(..., description="Bucket start")
    temperature: int = Field(..., description="Rounded bucket average")
    min_temp: int
    max_temp: int
    avg_temp: float
    count: int


class TimeSeriesData(BaseModel):
    """Bucketed temperature history for one drive."""

    model_config = {"frozen": True, "extra": "forbid"}

    hostname: str
    serial_number: str
    device_name: Optional[str] = None
    model: Optional[str] = None
    period: Period
    interval: AggregationInterval
    points: List[TimeSeriesPoint] = Field(default_factory=list)


class TemperatureSummary(BaseModel):
    """Fleet-wide snapshot of current temperatures."""

    model_config = {"frozen": True, "extra": "forbid"}

    total_drives: int = 0
    drives_normal: int = 0
    drives_warning: int = 0
    drives_critical: int = 0
    avg_temperature: float = 0.0
    min_temperature: int = 0
    max_temperature: int = 0
    hottest_drive: Optional[CurrentTemperature] = None
    coolest_drive: Optional[CurrentTemperature] = None
    drives: List[CurrentTemperature] = Field(default_factory=list)


class DistributionBucket(BaseModel):
    """Count of drives whose current temperature falls in a 5 °C range."""

    model_config = {"frozen": True, "extra": "forbid"}

    range_start: int
    range_end: int
    count: int


class DriveTrend(BaseModel):
    """Per-drive trend line for the trends view."""

    model_config = {"frozen": True, "extra": "forbid"}

    hostname: str
    serial_number: str
    device_name: Optional[str] = None
    model: Optional[str] = None
    current_temp: int
    avg_temp: float
    min_temp: int
    max_temp: int
    trend_slope: float
    trend: str
    data_points: int


class HeatmapCell(BaseModel):
    """One bucket of the heatmap with its threshold status."""

    model_config = {"frozen": True, "extra": "forbid"}

    timestamp: datetime
    temperature: int
    status: TemperatureStatus


class HeatmapRow(BaseModel):
    """Heatmap row for one drive."""

    model_config = {"frozen": True, "extra": "forbid"}

    hostname: str
    serial_number: str
    device_name: Optional[str] = None
    cells: List[HeatmapCell] = Field(default_factory=list)


class DashboardData(BaseModel):
    """Aggregated data for the temperature dashboard."""

    model_config = {"frozen": True, "extra": "forbid"}

    total_drives: int
    drives_normal: int
    drives_warning: int
    drives_critical: int
    avg_temperature: float
    min_temperature: int
    max_temperature: int
    hottest_drive: Optional[CurrentTemperature] = None
    coolest_drive: Optional[CurrentTemperature] = None
    thresholds: TemperatureThresholds
    active_alerts: int
    unacknowledged_spikes: int
    drives_by_status: Dict[str, List[CurrentTemperature]] = Field(default_factory=dict)
    recent_alerts: List[TemperatureAlert] = Field(default_factory=list)
    recent_spikes: List[TemperatureSpike] = Field(default_factory=list)


class OverviewStatus(BaseModel):
    """Compact status line for the main fleet overview."""

    model_config = {"frozen": True, "extra": "forbid"}

    total_drives: int
    drives_with_issues: int
    active_alerts: int
    avg_temperature: float
    max_temperature: int
    status: TemperatureStatus
