"""
Reading and time-window models for the temperature monitor.

This module defines the temperature sample, the lookback periods used by
read-side queries, and the aggregation intervals used to bucket a time
series.

Models:
    TemperatureStatus: Threshold classification (normal, warning, critical)
    Period: Lookback window for statistics (24h, 7d, 30d, all)
    AggregationInterval: Bucket width for time series (1h, 6h, 1d, 1w, 1m)
    TemperatureReading: A single persisted sample
    ReadingAggregate: Count/min/max/avg over a reading window
    DriveInfo: Optional device metadata for a drive
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

# Temperatures outside this range are sensor garbage, not readings
MIN_VALID_TEMPERATURE = -40
MAX_VALID_TEMPERATURE = 100


class TemperatureStatus(str, Enum):
    """Threshold classification of a temperature."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"

    @classmethod
    def classify(cls, temperature: int, warning: int, critical: int) -> "TemperatureStatus":
        """
        Classify a temperature against thresholds.

        Example:
            >>> TemperatureStatus.classify(50, warning=45, critical=55)
            <TemperatureStatus.WARNING: 'warning'>
        """
        if temperature >= critical:
            return cls.CRITICAL
        if temperature >= warning:
            return cls.WARNING
        return cls.NORMAL


class Period(str, Enum):
    """Lookback window for statistics queries."""

    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"
    ALL = "all"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Period":
        """
        Parse a period string, accepting short aliases.

        Unknown values fall back to 24h.

        Example:
            >>> Period.parse("1w")
            <Period.WEEK: '7d'>
            >>> Period.parse("bogus")
            <Period.DAY: '24h'>
        """
        if value is None:
            return cls.ALL
        normalized = value.strip().lower()
        aliases = {
            "24h": cls.DAY,
            "1d": cls.DAY,
            "7d": cls.WEEK,
            "1w": cls.WEEK,
            "30d": cls.MONTH,
            "1m": cls.MONTH,
            "all": cls.ALL,
            "": cls.ALL,
        }
        return aliases.get(normalized, cls.DAY)

    @property
    def duration(self) -> Optional[timedelta]:
        """Window length, or None for all time."""
        return _PERIOD_DURATIONS.get(self)

    def since(self, now: datetime) -> Optional[datetime]:
        """Start of the window ending at ``now``, or None for all time."""
        duration = self.duration
        if duration is None:
            return None
        return now - duration


_PERIOD_DURATIONS = {
    Period.DAY: timedelta(hours=24),
    Period.WEEK: timedelta(days=7),
    Period.MONTH: timedelta(days=30),
}

class AggregationInterval(str, Enum):
    """Bucket width for time series aggregation."""

    HOUR = "1h"
    SIX_HOURS = "6h"
    DAY = "1d"
    WEEK = "1w"
    MONTH = "1m"

    @classmethod
    def parse(cls, value: Optional[str]) -> "AggregationInterval":
        """
        Parse an interval string, accepting word aliases.

        Unknown values fall back to hourly buckets.

        Example:
            >>> AggregationInterval.parse("daily")
            <AggregationInterval.DAY: '1d'>
        """
        normalized = (value or "").strip().lower()
        aliases = {
            "1h": cls.HOUR,
            "hour": cls.HOUR,
            "hourly": cls.HOUR,
            "6h": cls.SIX_HOURS,
            "1d": cls.DAY,
            "day": cls.DAY,
            "daily": cls.DAY,
            "1w": cls.WEEK,
            "week": cls.WEEK,
            "weekly": cls.WEEK,
            "1m": cls.MONTH,
            "month": cls.MONTH,
            "monthly": cls.MONTH,
        }
        return aliases.get(normalized, cls.HOUR)

    def bucket_start(self, timestamp: datetime) -> datetime:
        """
        Truncate a timestamp to the start of its bucket.

        Weekly buckets start on Monday 00:00.

        Example:
            >>> AggregationInterval.SIX_HOURS.bucket_start(datetime(2025, 1, 1, 14, 30))
            datetime.datetime(2025, 1, 1, 12, 0)
        """
        hour_start = timestamp.replace(minute=0, second=0, microsecond=0)
        if self == AggregationInterval.HOUR:
            return hour_start
        if self == AggregationInterval.SIX_HOURS:
            return hour_start.replace(hour=(timestamp.hour // 6) * 6)

        day_start = hour_start.replace(hour=0)
        if self == AggregationInterval.DAY:
            return day_start
        if self == AggregationInterval.WEEK:
            return day_start - timedelta(days=day_start.weekday())
        return day_start.replace(day=1)


class TemperatureReading(BaseModel):
    """
    A single temperature sample for a drive.

    Readings are immutable once stored and unique per
    (hostname, serial_number, timestamp).
    """

    model_config = {"frozen": True, "extra": "forbid"}

    hostname: str = Field(..., description="Host that reported the sample", min_length=1)
    serial_number: str = Field(..., description="Drive serial number", min_length=1)
    temperature: int = Field(..., description="Temperature in degrees Celsius")
    timestamp: datetime = Field(..., description="Sample time (naive UTC)")


class ReadingAggregate(BaseModel):
    """Aggregate of the readings of one drive over a window."""

    model_config = {"frozen": True, "extra": "forbid"}

    count: int = Field(..., ge=0)
    min_temp: int
    max_temp: int
    avg_temp: float
    first_reading: datetime
    last_reading: datetime


class DriveInfo(BaseModel):
    """Best-effort device metadata for a drive."""

    model_config = {"frozen": True, "extra": "forbid"}

    device_name: Optional[str] = Field(default=None, description="Device node, e.g. /dev/sda")
    model: Optional[str] = Field(default=None, description="Drive model string")


def is_valid_temperature(temperature: int) -> bool:
    """Return True if the temperature is within the plausible sensor range."""
    return MIN_VALID_TEMPERATURE <= temperature <= MAX_VALID_TEMPERATURE
