"""
Fleet-wide temperature views.

This module builds the multi-drive read models on top of the
StatisticsEngine: the current-temperature summary, the 5 °C distribution,
per-drive trends, the heatmap, and the dashboard/overview payloads.

Example:
    >>> fleet = FleetOverview(statistics, store, settings)
    >>> summary = await fleet.get_summary()
    >>> print(summary.total_drives, summary.drives_critical)
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

import structlog

from drivetemp.config.settings import load_thresholds
from drivetemp.interfaces.settings_provider import SettingsProvider
from drivetemp.interfaces.temperature_store import TemperatureStore
from drivetemp.metrics.statistics import StatisticsEngine
from drivetemp.models.alerts import AlertFilter
from drivetemp.models.readings import AggregationInterval, Period, TemperatureStatus
from drivetemp.models.stats import (
    CurrentTemperature,
    DashboardData,
    DistributionBucket,
    DriveTrend,
    HeatmapCell,
    HeatmapRow,
    OverviewStatus,
    TemperatureSummary,
)

logger = structlog.get_logger(__name__)

DISTRIBUTION_BUCKET_SIZE = 5
RECENT_ITEMS_LIMIT = 5

_STATUS_RANK = {
    TemperatureStatus.NORMAL: 0,
    TemperatureStatus.WARNING: 1,
    TemperatureStatus.CRITICAL: 2,
}


def summarize_current(drives: List[CurrentTemperature]) -> TemperatureSummary:
    """
    Build a fleet summary from current temperatures.

    Ties for hottest/coolest resolve to the later drive in the list.
    """
    if not drives:
        return TemperatureSummary()

    counts = {status: 0 for status in TemperatureStatus}
    hottest = coolest = drives[0]
    for drive in drives:
        counts[drive.status] += 1
        if drive.temperature >= hottest.temperature:
            hottest = drive
        if drive.temperature <= coolest.temperature:
            coolest = drive

    temperatures = [d.temperature for d in drives]
    return TemperatureSummary(
        total_drives=len(drives),
        drives_normal=counts[TemperatureStatus.NORMAL],
        drives_warning=counts[TemperatureStatus.WARNING],
        drives_critical=counts[TemperatureStatus.CRITICAL],
        avg_temperature=round(sum(temperatures) / len(temperatures), 2),
        min_temperature=min(temperatures),
        max_temperature=max(temperatures),
        hottest_drive=hottest,
        coolest_drive=coolest,
        drives=drives,
    )


def bucket_distribution(temperatures: List[int]) -> List[DistributionBucket]:
    """
    Count temperatures per 5 °C range, lowest range first.

    Example:
        >>> [b.range_start for b in bucket_distribution([41, 44, 47])]
        [40, 45]
    """
    counts: Dict[int, int] = defaultdict(int)
    for temperature in temperatures:
        start = (temperature // DISTRIBUTION_BUCKET_SIZE) * DISTRIBUTION_BUCKET_SIZE
        counts[start] += 1

    return [
        DistributionBucket(
            range_start=start,
            range_end=start + DISTRIBUTION_BUCKET_SIZE - 1,
            count=counts[start],
        )
        for start in sorted(counts)
    ]


class FleetOverview:
    """
    Builds multi-drive read models.

    Attributes:
        statistics: Per-drive statistics engine.
        store: Temperature store (alert and spike counts).
        settings: Runtime settings source.
    """

    def __init__(
        self,
        statistics: StatisticsEngine,
        store: TemperatureStore,
        settings: SettingsProvider,
    ) -> None:
        self.statistics = statistics
        self.store = store
        self.settings = settings

    async def get_summary(self) -> TemperatureSummary:
        """Current-temperature summary for every drive."""
        return summarize_current(await self.statistics.get_all_current())

    async def get_distribution(self) -> List[DistributionBucket]:
        """Distribution of current temperatures in 5 °C buckets."""
        drives = await self.statistics.get_all_current()
        return bucket_distribution([d.temperature for d in drives])

    async def get_trends(
        self,
        period: Period = Period.DAY,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[DriveTrend]:
        """Per-drive trend for drives with readings in the period."""
        trends = []
        for stats in await self.statistics.get_all_stats(period, now):
            trends.append(
                DriveTrend(
                    hostname=stats.hostname,
                    serial_number=stats.serial_number,
                    device_name=stats.device_name,
                    model=stats.model,
                    current_temp=stats.current_temp,
                    avg_temp=stats.avg_temp,
                    min_temp=stats.min_temp,
                    max_temp=stats.max_temp,
                    trend_slope=stats.trend_slope,
                    trend=stats.trend,
                    data_points=stats.data_points,
                )
            )
            if limit is not None and len(trends) >= limit:
                break
        return trends

    async def get_heatmap(
        self,
        period: Period = Period.DAY,
        interval: AggregationInterval = AggregationInterval.HOUR,
        now: Optional[datetime] = None,
    ) -> List[HeatmapRow]:
        """Bucketed series per drive with a threshold status per cell."""
        now = now or datetime.utcnow()
        thresholds = await load_thresholds(self.settings)

        rows = []
        for hostname, serial_number in await self.store.list_drives(period.since(now)):
            series = await self.statistics.get_time_series(
                hostname, serial_number, period, interval, now
            )
            rows.append(
                HeatmapRow(
                    hostname=hostname,
                    serial_number=serial_number,
                    device_name=series.device_name,
                    cells=[
                        HeatmapCell(
                            timestamp=point.timestamp,
                            temperature=point.temperature,
                            status=TemperatureStatus.classify(
                                point.temperature, thresholds.warning, thresholds.critical
                            ),
                        )
                        for point in series.points
                    ],
                )
            )
        return rows

    async def get_dashboard(
        self, include_details: bool = False, now: Optional[datetime] = None
    ) -> DashboardData:
        """
        Aggregated dashboard payload.

        With ``include_details`` the drives are grouped by status and the
        most recent unacknowledged alerts and spikes are attached.
        """
        now = now or datetime.utcnow()
        thresholds = await load_thresholds(self.settings)
        summary = await self.get_summary()
        alert_summary = await self.store.summarize_alerts(now)
        unacknowledged_spikes = await self.store.count_spikes(acknowledged=False)

        drives_by_status: Dict[str, List[CurrentTemperature]] = {}
        recent_alerts = []
        recent_spikes = []
        if include_details:
            for status in TemperatureStatus:
                drives_by_status[status.value] = [
                    d for d in summary.drives if d.status == status
                ]
            recent_alerts = await self.store.get_alerts(
                AlertFilter(acknowledged=False, limit=RECENT_ITEMS_LIMIT)
            )
            recent_spikes = await self.store.get_spikes(
                unacknowledged_only=True, limit=RECENT_ITEMS_LIMIT
            )

        return DashboardData(
            total_drives=summary.total_drives,
            drives_normal=summary.drives_normal,
            drives_warning=summary.drives_warning,
            drives_critical=summary.drives_critical,
            avg_temperature=round(summary.avg_temperature, 1),
            min_temperature=summary.min_temperature,
            max_temperature=summary.max_temperature,
            hottest_drive=summary.hottest_drive,
            coolest_drive=summary.coolest_drive,
            thresholds=thresholds,
            active_alerts=alert_summary.unacknowledged,
            unacknowledged_spikes=unacknowledged_spikes,
            drives_by_status=drives_by_status,
            recent_alerts=recent_alerts,
            recent_spikes=recent_spikes,
        )

    async def get_overview(self, now: Optional[datetime] = None) -> OverviewStatus:
        """
        Compact fleet status.

        The status is the worst drive status, raised to warning when alerts
        are outstanding while every drive reads normal.
        """
        now = now or datetime.utcnow()
        summary = await self.get_summary()
        alert_summary = await self.store.summarize_alerts(now)

        status = TemperatureStatus.NORMAL
        for drive in summary.drives:
            if _STATUS_RANK[drive.status] > _STATUS_RANK[status]:
                status = drive.status
        if status == TemperatureStatus.NORMAL and alert_summary.unacknowledged > 0:
            status = TemperatureStatus.WARNING

        return OverviewStatus(
            total_drives=summary.total_drives,
            drives_with_issues=summary.drives_warning + summary.drives_critical,
            active_alerts=alert_summary.unacknowledged,
            avg_temperature=round(summary.avg_temperature, 1),
            max_temperature=summary.max_temperature,
            status=status,
        )
