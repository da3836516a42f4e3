"""
Per-drive temperature statistics.

This module provides the StatisticsEngine, which answers read-side queries
for a single drive: descriptive statistics with a trend estimate over a
lookback period, bucketed time series, the current temperature, and raw
readings over a time range.

Key Features:
    - Population variance via the sum of squared deviations from the mean
      (a second aggregate pass, not a single-pass estimator)
    - Least-squares trend in °C/hour, classified with a ±0.1 band
    - Current temperature is always the latest reading ever, independent
      of the window
    - Drive metadata looked up best-effort

Example:
    >>> engine = StatisticsEngine(store, settings)
    >>> stats = await engine.get_stats("nas01", "WD-123", Period.WEEK)
    >>> if stats is not None:
    ...     print(stats.avg_temp, stats.trend)
"""

import math
from datetime import datetime
from typing import List, Optional

import structlog

from drivetemp.config.settings import load_thresholds
from drivetemp.interfaces.drive_info import DriveInfoLookup, resolve_drive_info
from drivetemp.interfaces.settings_provider import SettingsProvider
from drivetemp.interfaces.temperature_store import TemperatureStore
from drivetemp.metrics.trend import compute_trend
from drivetemp.models.readings import (
    AggregationInterval,
    Period,
    TemperatureReading,
    TemperatureStatus,
)
from drivetemp.models.stats import (
    CurrentTemperature,
    TemperatureStats,
    TimeSeriesData,
)

logger = structlog.get_logger(__name__)


class StatisticsEngine:
    """
    Computes statistics for one drive from the reading store.

    Attributes:
        store: Reading store.
        settings: Runtime settings source, for status thresholds.
        drive_info: Optional metadata lookup.
    """

    def __init__(
        self,
        store: TemperatureStore,
        settings: SettingsProvider,
        drive_info: Optional[DriveInfoLookup] = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.drive_info = drive_info

    async def get_stats(
        self,
        hostname: str,
        serial_number: str,
        period: Period = Period.DAY,
        now: Optional[datetime] = None,
    ) -> Optional[TemperatureStats]:
        """
        Descriptive statistics and trend over a period.

        Args:
            hostname: Host name.
            serial_number: Drive serial.
            period: Lookback window.
            now: End of the window (defaults to utcnow).

        Returns:
            Optional[TemperatureStats]: None if the window holds no readings.
        """
        now = now or datetime.utcnow()
        since = period.since(now)

        aggregate = await self.store.aggregate_readings(hostname, serial_number, since)
        if aggregate is None:
            return None

        variance = await self.store.mean_squared_deviation(
            hostname, serial_number, aggregate.avg_temp, since
        )
        variance = max(variance or 0.0, 0.0)

        readings = await self.store.get_readings(hostname, serial_number, since)
        slope, trend = compute_trend(readings)

        latest = await self.store.get_latest_reading(hostname, serial_number)
        current = latest.temperature if latest is not None else readings[-1].temperature

        info = await resolve_drive_info(self.drive_info, hostname, serial_number)

        return TemperatureStats(
            hostname=hostname,
            serial_number=serial_number,
            device_name=info.device_name,
            model=info.model,
            period=period,
            min_temp=aggregate.min_temp,
            max_temp=aggregate.max_temp,
            avg_temp=round(aggregate.avg_temp, 2),
            current_temp=current,
            std_dev=round(math.sqrt(variance), 2),
            variance=round(variance, 2),
            data_points=aggregate.count,
            first_reading=aggregate.first_reading,
            last_reading=aggregate.last_reading,
            trend_slope=slope,
            trend=trend,
        )

    async def get_all_stats(
        self, period: Period = Period.DAY, now: Optional[datetime] = None
    ) -> List[TemperatureStats]:
        """Statistics for every drive with readings in the period."""
        now = now or datetime.utcnow()
        results = []
        for hostname, serial_number in await self.store.list_drives(period.since(now)):
            stats = await self.get_stats(hostname, serial_number, period, now)
            if stats is not None:
                results.append(stats)
        return results

    async def get_time_series(
        self,
        hostname: str,
        serial_number: str,
        period: Period = Period.DAY,
        interval: AggregationInterval = AggregationInterval.HOUR,
        now: Optional[datetime] = None,
    ) -> TimeSeriesData:
        """Readings of a period grouped into interval buckets."""
        now = now or datetime.utcnow()
        points = await self.store.aggregate_time_series(
            hostname, serial_number, interval, period.since(now)
        )
        info = await resolve_drive_info(self.drive_info, hostname, serial_number)

        return TimeSeriesData(
            hostname=hostname,
            serial_number=serial_number,
            device_name=info.device_name,
            model=info.model,
            period=period,
            interval=interval,
            points=points,
        )

    async def _to_current(
        self, reading: TemperatureReading, warning: int, critical: int
    ) -> CurrentTemperature:
        info = await resolve_drive_info(self.drive_info, reading.hostname, reading.serial_number)
        return CurrentTemperature(
            hostname=reading.hostname,
            serial_number=reading.serial_number,
            device_name=info.device_name,
            model=info.model,
            temperature=reading.temperature,
            timestamp=reading.timestamp,
            status=TemperatureStatus.classify(reading.temperature, warning, critical),
        )

    async def get_current(
        self, hostname: str, serial_number: str
    ) -> Optional[CurrentTemperature]:
        """Latest reading of a drive with its threshold status."""
        reading = await self.store.get_latest_reading(hostname, serial_number)
        if reading is None:
            return None
        thresholds = await load_thresholds(self.settings)
        return await self._to_current(reading, thresholds.warning, thresholds.critical)

    async def get_all_current(self) -> List[CurrentTemperature]:
        """Latest reading of every drive, ordered by hostname and serial."""
        readings = await self.store.get_latest_readings()
        if not readings:
            return []
        thresholds = await load_thresholds(self.settings)
        return [
            await self._to_current(reading, thresholds.warning, thresholds.critical)
            for reading in readings
        ]

    async def get_range(
        self,
        hostname: str,
        serial_number: str,
        start: datetime,
        end: datetime,
    ) -> List[TemperatureReading]:
        """
        Raw readings between two instants, inclusive, oldest first.

        Raises:
            ValueError: If start is after end.
        """
        if start > end:
            raise ValueError(f"range start {start} is after end {end}")
        return await self.store.get_readings(hostname, serial_number, start, end)
