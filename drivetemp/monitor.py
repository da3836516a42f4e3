"""
TemperatureMonitor: the engine's public surface.

Wires the statistics, spike, alert and processor components to one store
and one settings provider, and exposes the operations the HTTP layer calls.
Period and interval arguments accept either the enum or its string form
(``"7d"``, ``"1w"``, ``"hourly"`` ...).

Example:
    >>> monitor = TemperatureMonitor(store, settings, drive_info=store)
    >>> await monitor.start()
    >>> await monitor.ingest("nas01", "WD-123", 47)
    >>> stats = await monitor.get_stats("nas01", "WD-123", "7d")
    >>> await monitor.stop()
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import structlog

from drivetemp.config.models import ProcessorConfig
from drivetemp.config.settings import load_thresholds
from drivetemp.detection.cooldown import CooldownCache
from drivetemp.detection.manager import AlertEngine
from drivetemp.detection.processor import AlertSink, TemperatureProcessor
from drivetemp.detection.spikes import SpikeDetector
from drivetemp.interfaces.drive_info import DriveInfoLookup
from drivetemp.interfaces.settings_provider import SettingsProvider
from drivetemp.interfaces.temperature_store import TemperatureStore
from drivetemp.metrics.fleet import FleetOverview
from drivetemp.metrics.statistics import StatisticsEngine
from drivetemp.models.alerts import (
    AlertFilter,
    AlertSummary,
    DriveAlertStatus,
    SpikeSummary,
    TemperatureAlert,
    TemperatureSpike,
)
from drivetemp.models.readings import (
    AggregationInterval,
    Period,
    TemperatureReading,
    is_valid_temperature,
)
from drivetemp.models.stats import (
    CurrentTemperature,
    DashboardData,
    DistributionBucket,
    DriveTrend,
    HeatmapRow,
    OverviewStatus,
    TemperatureStats,
    TemperatureSummary,
    TemperatureThresholds,
    TimeSeriesData,
)

logger = structlog.get_logger(__name__)

PeriodArg = Union[Period, str, None]
IntervalArg = Union[AggregationInterval, str, None]


def _period(value: PeriodArg) -> Period:
    if value is None:
        return Period.DAY
    return Period.parse(value)


class TemperatureMonitor:
    """
    Facade over the temperature engine.

    Attributes:
        store: Reading, spike and alert store.
        settings: Runtime settings source.
        statistics: Per-drive statistics.
        fleet: Fleet-wide views.
        spikes: Spike detector.
        alerts: Alert engine.
        processor: Ingestion queue and background timers.
    """

    def __init__(
        self,
        store: TemperatureStore,
        settings: SettingsProvider,
        drive_info: Optional[DriveInfoLookup] = None,
        processor_config: Optional[ProcessorConfig] = None,
        alert_sink: Optional[AlertSink] = None,
        cooldowns: Optional[CooldownCache] = None,
    ) -> None:
        self.store = store
        self.settings = settings

        self.statistics = StatisticsEngine(store, settings, drive_info)
        self.fleet = FleetOverview(self.statistics, store, settings)
        self.spikes = SpikeDetector(store, settings)
        self.alerts = AlertEngine(store, settings, cooldowns, drive_info)
        self.processor = TemperatureProcessor(
            store,
            self.alerts,
            self.spikes,
            settings,
            config=processor_config,
            alert_sink=alert_sink,
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Start the background processor."""
        await self.processor.start()

    async def stop(self) -> None:
        """Stop the background processor."""
        await self.processor.stop()

    def get_status(self) -> Dict[str, Any]:
        """Processor running flag and queue depth/capacity."""
        return self.processor.get_status()

    # =========================================================================
    # INGESTION
    # =========================================================================

    async def ingest(
        self,
        hostname: str,
        serial_number: str,
        temperature: int,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """
        Submit a reading.

        Implausible temperatures are logged and rejected.

        Returns:
            bool: False if the reading was rejected.
        """
        if not is_valid_temperature(temperature):
            logger.warning(
                "reading_rejected",
                hostname=hostname,
                serial_number=serial_number,
                temperature=temperature,
            )
            return False

        await self.processor.enqueue(hostname, serial_number, temperature, timestamp)
        return True

    # =========================================================================
    # STATISTICS
    # =========================================================================

    async def get_stats(
        self, hostname: str, serial_number: str, period: PeriodArg = None
    ) -> Optional[TemperatureStats]:
        return await self.statistics.get_stats(hostname, serial_number, _period(period))

    async def get_all_stats(self, period: PeriodArg = None) -> List[TemperatureStats]:
        return await self.statistics.get_all_stats(_period(period))

    async def get_time_series(
        self,
        hostname: str,
        serial_number: str,
        period: PeriodArg = None,
        interval: IntervalArg = None,
    ) -> TimeSeriesData:
        return await self.statistics.get_time_series(
            hostname,
            serial_number,
            _period(period),
            AggregationInterval.parse(interval),
        )

    async def get_current(
        self, hostname: str, serial_number: str
    ) -> Optional[CurrentTemperature]:
        return await self.statistics.get_current(hostname, serial_number)

    async def get_all_current(self) -> List[CurrentTemperature]:
        return await self.statistics.get_all_current()

    async def get_range(
        self, hostname: str, serial_number: str, start: datetime, end: datetime
    ) -> List[TemperatureReading]:
        return await self.statistics.get_range(hostname, serial_number, start, end)

    async def get_summary(self) -> TemperatureSummary:
        return await self.fleet.get_summary()

    async def get_distribution(self) -> List[DistributionBucket]:
        return await self.fleet.get_distribution()

    async def get_trends(
        self, period: PeriodArg = None, limit: Optional[int] = None
    ) -> List[DriveTrend]:
        return await self.fleet.get_trends(_period(period), limit)

    async def get_heatmap(
        self, period: PeriodArg = None, interval: IntervalArg = None
    ) -> List[HeatmapRow]:
        return await self.fleet.get_heatmap(
            _period(period), AggregationInterval.parse(interval)
        )

    async def get_dashboard(self, include_details: bool = False) -> DashboardData:
        return await self.fleet.get_dashboard(include_details)

    async def get_overview(self) -> OverviewStatus:
        return await self.fleet.get_overview()

    async def get_thresholds(self) -> TemperatureThresholds:
        """Current settings snapshot with fallbacks applied."""
        return await load_thresholds(self.settings)

    # =========================================================================
    # ALERTS
    # =========================================================================

    async def get_alerts(
        self, alert_filter: Optional[AlertFilter] = None
    ) -> List[TemperatureAlert]:
        return await self.alerts.get_alerts(alert_filter)

    async def get_active_alerts(self) -> List[TemperatureAlert]:
        return await self.alerts.get_active_alerts()

    async def get_alert(self, alert_id: int) -> TemperatureAlert:
        return await self.alerts.get_alert(alert_id)

    async def acknowledge_alert(self, alert_id: int, acknowledged_by: str) -> TemperatureAlert:
        return await self.alerts.acknowledge_alert(alert_id, acknowledged_by)

    async def acknowledge_all_alerts(self, acknowledged_by: str) -> int:
        return await self.alerts.acknowledge_all_alerts(acknowledged_by)

    async def delete_alert(self, alert_id: int) -> None:
        await self.alerts.delete_alert(alert_id)

    async def get_alert_summary(self) -> AlertSummary:
        return await self.alerts.get_alert_summary()

    async def get_drive_alert_status(
        self, hostname: str, serial_number: str
    ) -> DriveAlertStatus:
        return await self.alerts.get_drive_alert_status(hostname, serial_number)

    async def test_alert(
        self, hostname: str, serial_number: str, temperature: int
    ) -> Optional[TemperatureAlert]:
        return await self.alerts.test_alert(hostname, serial_number, temperature)

    def reset_cooldowns(self) -> None:
        self.alerts.reset_cooldowns()

    # =========================================================================
    # SPIKES
    # =========================================================================

    async def get_spikes(
        self,
        hostname: Optional[str] = None,
        serial_number: Optional[str] = None,
        unacknowledged_only: bool = False,
        limit: int = 100,
    ) -> List[TemperatureSpike]:
        return await self.spikes.get_spikes(
            hostname, serial_number, unacknowledged_only, limit
        )

    async def get_spike(self, spike_id: int) -> TemperatureSpike:
        return await self.spikes.get_spike(spike_id)

    async def acknowledge_spike(self, spike_id: int, acknowledged_by: str) -> None:
        await self.spikes.acknowledge_spike(spike_id, acknowledged_by)

    async def delete_spike(self, spike_id: int) -> None:
        await self.spikes.delete_spike(spike_id)

    async def get_spike_summary(self) -> SpikeSummary:
        return await self.spikes.get_spike_summary()

    async def detect_spikes(self) -> List[TemperatureAlert]:
        """Run a fleet-wide spike sweep now and return the spike alerts."""
        return await self.processor.run_spike_detection()
