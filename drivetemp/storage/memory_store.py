"""
Process-local temperature store.

A table store for tests and single-process deployments. Rows are kept
the way a relational backend would keep them: plain dicts with timestamps
serialized as naive ``YYYY-MM-DD HH:MM:SS`` strings, parsed back through
the timestamp fallback chain on every read. Uniqueness constraints match
the PostgreSQL schema.

Key Features:
    - Same contract as PostgresTemperatureStore
    - Reading key (hostname, serial_number, timestamp) and spike key
      (hostname, serial_number, start_time, end_time) enforced
    - Thread-safe; every public method holds the lock for its whole body
    - Also serves drive metadata registered with register_drive_info()

Example:
    >>> store = MemoryTemperatureStore()
    >>> await store.insert_reading(reading)
    True
    >>> latest = await store.get_latest_reading("nas01", "WD-123")
"""

import math
import threading
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Set, Tuple

import structlog

from drivetemp.interfaces.drive_info import DriveInfoLookup
from drivetemp.interfaces.temperature_store import (
    AlertNotFoundError,
    DriveKey,
    SpikeNotFoundError,
    TemperatureStore,
)
from drivetemp.models.alerts import (
    AlertFilter,
    AlertSummary,
    AlertType,
    TemperatureAlert,
    TemperatureSpike,
)
from drivetemp.models.readings import (
    AggregationInterval,
    DriveInfo,
    ReadingAggregate,
    TemperatureReading,
)
from drivetemp.models.stats import TimeSeriesPoint
from drivetemp.storage.rows import alert_from_row, reading_from_row, spike_from_row
from drivetemp.storage.timestamps import format_timestamp, parse_timestamp

logger = structlog.get_logger(__name__)

Row = Dict[str, Any]

_STATE_ALERT_TYPES = {
    AlertType.WARNING.value,
    AlertType.CRITICAL.value,
    AlertType.RECOVERY.value,
}


def _optional_timestamp(value: Optional[datetime]) -> Optional[str]:
    return format_timestamp(value) if value is not None else None



class MemoryTemperatureStore(TemperatureStore, DriveInfoLookup):
    """
    In-memory implementation of the temperature store.

    Attributes:
        _readings: Reading rows in insertion order.
        _spikes: Spike rows keyed by id.
        _alerts: Alert rows keyed by id.
        _drive_info: Registered drive metadata.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._readings: List[Row] = []
        self._reading_keys: Set[Tuple[str, str, str]] = set()
        self._spikes: Dict[int, Row] = {}
        self._spike_keys: Set[Tuple[str, str, str, str]] = set()
        self._alerts: Dict[int, Row] = {}
        self._drive_info: Dict[DriveKey, DriveInfo] = {}
        self._next_spike_id = 1
        self._next_alert_id = 1

    # =========================================================================
    # READINGS
    # =========================================================================

    def _select_readings(
        self,
        hostname: Optional[str] = None,
        serial_number: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[TemperatureReading]:
        readings = []
        for row in self._readings:
            if hostname is not None and row["hostname"] != hostname:
                continue
            if serial_number is not None and row["serial_number"] != serial_number:
                continue
            reading = reading_from_row(row)
            if since is not None and reading.timestamp < since:
                continue
            if until is not None and reading.timestamp > until:
                continue
            readings.append(reading)
        readings.sort(key=lambda r: r.timestamp)
        return readings

    async def insert_reading(self, reading: TemperatureReading) -> bool:
        row = {
            "hostname": reading.hostname,
            "serial_number": reading.serial_number,
            "temperature": reading.temperature,
            "timestamp": format_timestamp(reading.timestamp),
        }
        key = (row["hostname"], row["serial_number"], row["timestamp"])
        with self._lock:
            if key in self._reading_keys:
                logger.debug(
                    "duplicate_reading_ignored",
                    hostname=reading.hostname,
                    serial_number=reading.serial_number,
                    timestamp=key[2],
                )
                return False
            self._reading_keys.add(key)
            self._readings.append(row)
        return True

    async def get_readings(
        self,
        hostname: str,
        serial_number: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[TemperatureReading]:
        with self._lock:
            return self._select_readings(hostname, serial_number, since, until)

    async def get_latest_reading(
        self, hostname: str, serial_number: str
    ) -> Optional[TemperatureReading]:
        with self._lock:
            readings = self._select_readings(hostname, serial_number)
        return readings[-1] if readings else None

    async def get_latest_readings(self) -> List[TemperatureReading]:
        latest: Dict[DriveKey, TemperatureReading] = {}
        with self._lock:
            for reading in self._select_readings():
                latest[(reading.hostname, reading.serial_number)] = reading
        return [latest[key] for key in sorted(latest)]

    async def list_drives(self, since: Optional[datetime] = None) -> List[DriveKey]:
        with self._lock:
            readings = self._select_readings(since=since)
        return sorted({(r.hostname, r.serial_number) for r in readings})

    async def aggregate_readings(
        self,
        hostname: str,
        serial_number: str,
        since: Optional[datetime] = None,
    ) -> Optional[ReadingAggregate]:
        with self._lock:
            readings = self._select_readings(hostname, serial_number, since)
        if not readings:
            return None

        temperatures = [r.temperature for r in readings]
        return ReadingAggregate(
            count=len(readings),
            min_temp=min(temperatures),
            max_temp=max(temperatures),
            avg_temp=sum(temperatures) / len(temperatures),
            first_reading=readings[0].timestamp,
            last_reading=readings[-1].timestamp,
        )

    async def mean_squared_deviation(
        self,
        hostname: str,
        serial_number: str,
        mean: float,
        since: Optional[datetime] = None,
    ) -> Optional[float]:
        with self._lock:
            readings = self._select_readings(hostname, serial_number, since)
        if not readings:
            return None
        return sum((r.temperature - mean) ** 2 for r in readings) / len(readings)

    async def aggregate_time_series(
        self,
        hostname: str,
        serial_number: str,
        interval: AggregationInterval,
        since: Optional[datetime] = None,
    ) -> List[TimeSeriesPoint]:
        with self._lock:
            readings = self._select_readings(hostname, serial_number, since)

        buckets: Dict[datetime, List[int]] = defaultdict(list)
        for reading in readings:
            buckets[interval.bucket_start(reading.timestamp)].append(reading.temperature)

        points = []
        for bucket in sorted(buckets):
            temperatures = buckets[bucket]
            avg = sum(temperatures) / len(temperatures)
            points.append(
                TimeSeriesPoint(
                    timestamp=bucket,
                    temperature=int(math.floor(avg + 0.5)),
                    min_temp=min(temperatures),
                    max_temp=max(temperatures),
                    avg_temp=round(avg, 2),
                    count=len(temperatures),
                )
            )
        return points

    async def delete_readings_before(self, cutoff: datetime) -> int:
        with self._lock:
            kept: List[Row] = []
            for row in self._readings:
                if parse_timestamp(row["timestamp"]) < cutoff:
                    self._reading_keys.discard(
                        (row["hostname"], row["serial_number"], row["timestamp"])
                    )
                else:
                    kept.append(row)
            deleted = len(self._readings) - len(kept)
            self._readings = kept
        return deleted

    # =========================================================================
    # SPIKES
    # =========================================================================

    @staticmethod
    def _spike_key(
        hostname: str, serial_number: str, start_time: datetime, end_time: datetime
    ) -> Tuple[str, str, str, str]:
        return (
            hostname,
            serial_number,
            format_timestamp(start_time),
            format_timestamp(end_time),
        )

    async def spike_exists(
        self,
        hostname: str,
        serial_number: str,
        start_time: datetime,
        end_time: datetime,
    ) -> bool:
        key = self._spike_key(hostname, serial_number, start_time, end_time)
        with self._lock:
            return key in self._spike_keys

    async def insert_spike(self, spike: TemperatureSpike) -> Optional[TemperatureSpike]:
        key = self._spike_key(
            spike.hostname, spike.serial_number, spike.start_time, spike.end_time
        )
        with self._lock:
            if key in self._spike_keys:
                return None
            spike_id = self._next_spike_id
            self._next_spike_id += 1
            row = {
                "id": spike_id,
                "hostname": spike.hostname,
                "serial_number": spike.serial_number,
                "start_time": key[2],
                "end_time": key[3],
                "start_temp": spike.start_temp,
                "end_temp": spike.end_temp,
                "magnitude": spike.magnitude,
                "rate_per_minute": spike.rate_per_minute,
                "direction": spike.direction.value,
                "acknowledged": spike.acknowledged,
                "acknowledged_by": spike.acknowledged_by,
                "acknowledged_at": _optional_timestamp(spike.acknowledged_at),
                "created_at": format_timestamp(spike.created_at),
            }
            self._spikes[spike_id] = row
            self._spike_keys.add(key)
            return spike_from_row(row)

    async def get_spikes(
        self,
        hostname: Optional[str] = None,
        serial_number: Optional[str] = None,
        unacknowledged_only: bool = False,
        limit: int = 100,
    ) -> List[TemperatureSpike]:
        with self._lock:
            spikes = [spike_from_row(row) for row in self._spikes.values()]
        spikes = [
            s
            for s in spikes
            if (hostname is None or s.hostname == hostname)
            and (serial_number is None or s.serial_number == serial_number)
            and not (unacknowledged_only and s.acknowledged)
        ]
        spikes.sort(key=lambda s: (s.start_time, s.id or 0), reverse=True)
        return spikes[:limit]

    async def get_spike(self, spike_id: int) -> Optional[TemperatureSpike]:
        with self._lock:
            row = self._spikes.get(spike_id)
            return spike_from_row(row) if row is not None else None

    async def acknowledge_spike(
        self, spike_id: int, acknowledged_by: str, acknowledged_at: datetime
    ) -> TemperatureSpike:
        with self._lock:
            row = self._spikes.get(spike_id)
            if row is None:
                raise SpikeNotFoundError(spike_id)
            row["acknowledged"] = True
            row["acknowledged_by"] = acknowledged_by
            row["acknowledged_at"] = format_timestamp(acknowledged_at)
            return spike_from_row(row)

    async def delete_spike(self, spike_id: int) -> None:
        with self._lock:
            row = self._spikes.pop(spike_id, None)
            if row is None:
                raise SpikeNotFoundError(spike_id)
            self._spike_keys.discard(
                (row["hostname"], row["serial_number"], row["start_time"], row["end_time"])
            )

    async def count_spikes(
        self,
        acknowledged: Optional[bool] = None,
        since: Optional[datetime] = None,
    ) -> int:
        with self._lock:
            spikes = [spike_from_row(row) for row in self._spikes.values()]
        return sum(
            1
            for s in spikes
            if (acknowledged is None or s.acknowledged == acknowledged)
            and (since is None or s.start_time >= since)
        )

    async def delete_spikes_before(self, cutoff: datetime) -> int:
        with self._lock:
            expired = [
                spike_id
                for spike_id, row in self._spikes.items()
                if parse_timestamp(row["created_at"]) < cutoff
            ]
            for spike_id in expired:
                row = self._spikes.pop(spike_id)
                self._spike_keys.discard(
                    (row["hostname"], row["serial_number"], row["start_time"], row["end_time"])
                )
        return len(expired)

    # =========================================================================
    # ALERTS
    # =========================================================================

    async def insert_alert(self, alert: TemperatureAlert) -> TemperatureAlert:
        with self._lock:
            alert_id = self._next_alert_id
            self._next_alert_id += 1
            row = {
                "id": alert_id,
                "hostname": alert.hostname,
                "serial_number": alert.serial_number,
                "alert_type": alert.alert_type.value,
                "temperature": alert.temperature,
                "threshold": alert.threshold,
                "message": alert.message,
                "acknowledged": alert.acknowledged,
                "acknowledged_by": alert.acknowledged_by,
                "acknowledged_at": _optional_timestamp(alert.acknowledged_at),
                "created_at": format_timestamp(alert.created_at),
            }
            self._alerts[alert_id] = row
            return alert_from_row(row)

    def _sorted_alerts(self) -> List[TemperatureAlert]:
        alerts = [alert_from_row(row) for row in self._alerts.values()]
        alerts.sort(key=lambda a: (a.created_at, a.id or 0), reverse=True)
        return alerts

    async def get_alerts(self, alert_filter: AlertFilter) -> List[TemperatureAlert]:
        with self._lock:
            alerts = self._sorted_alerts()
        f = alert_filter
        matched = [
            a
            for a in alerts
            if (f.hostname is None or a.hostname == f.hostname)
            and (f.serial_number is None or a.serial_number == f.serial_number)
            and (f.alert_type is None or a.alert_type == f.alert_type)
            and (f.acknowledged is None or a.acknowledged == f.acknowledged)
            and (f.since is None or a.created_at >= f.since)
        ]
        return matched[: f.limit]

    async def get_alert(self, alert_id: int) -> Optional[TemperatureAlert]:
        with self._lock:
            row = self._alerts.get(alert_id)
            return alert_from_row(row) if row is not None else None

    async def get_latest_state_alert(
        self, hostname: str, serial_number: str
    ) -> Optional[TemperatureAlert]:
        with self._lock:
            alerts = self._sorted_alerts()
        for alert in alerts:
            if (
                alert.hostname == hostname
                and alert.serial_number == serial_number
                and alert.alert_type.value in _STATE_ALERT_TYPES
            ):
                return alert
        return None

    async def acknowledge_alert(
        self, alert_id: int, acknowledged_by: str, acknowledged_at: datetime
    ) -> TemperatureAlert:
        with self._lock:
            row = self._alerts.get(alert_id)
            if row is None:
                raise AlertNotFoundError(alert_id)
            row["acknowledged"] = True
            row["acknowledged_by"] = acknowledged_by
            row["acknowledged_at"] = format_timestamp(acknowledged_at)
            return alert_from_row(row)

    async def acknowledge_all_alerts(
        self, acknowledged_by: str, acknowledged_at: datetime
    ) -> int:
        count = 0
        with self._lock:
            for row in self._alerts.values():
                if row["acknowledged"]:
                    continue
                row["acknowledged"] = True
                row["acknowledged_by"] = acknowledged_by
                row["acknowledged_at"] = format_timestamp(acknowledged_at)
                count += 1
        return count

    async def delete_alert(self, alert_id: int) -> None:
        with self._lock:
            if self._alerts.pop(alert_id, None) is None:
                raise AlertNotFoundError(alert_id)

    async def summarize_alerts(self, now: datetime) -> AlertSummary:
        with self._lock:
            alerts = self._sorted_alerts()

        by_type: Dict[str, int] = defaultdict(int)
        for alert in alerts:
            by_type[alert.alert_type.value] += 1
        unacknowledged = sum(1 for a in alerts if not a.acknowledged)

        return AlertSummary(
            total=len(alerts),
            unacknowledged=unacknowledged,
            acknowledged=len(alerts) - unacknowledged,
            by_type=dict(by_type),
            last_24h=sum(1 for a in alerts if a.created_at >= now - timedelta(hours=24)),
            last_7d=sum(1 for a in alerts if a.created_at >= now - timedelta(days=7)),
        )

    async def delete_alerts_before(self, cutoff: datetime) -> int:
        with self._lock:
            expired = [
                alert_id
                for alert_id, row in self._alerts.items()
                if parse_timestamp(row["created_at"]) < cutoff
            ]
            for alert_id in expired:
                del self._alerts[alert_id]
        return len(expired)

    # =========================================================================
    # DRIVE INFO
    # =========================================================================

    def register_drive_info(
        self,
        hostname: str,
        serial_number: str,
        device_name: Optional[str] = None,
        model: Optional[str] = None,
    ) -> None:
        """Record metadata returned by get_drive_info()."""
        with self._lock:
            self._drive_info[(hostname, serial_number)] = DriveInfo(
                device_name=device_name, model=model
            )

    async def get_drive_info(self, hostname: str, serial_number: str) -> Optional[DriveInfo]:
        with self._lock:
            return self._drive_info.get((hostname, serial_number))

    def __len__(self) -> int:
        """Return the number of stored readings."""
        with self._lock:
            return len(self._readings)
