"""
Abstract base class for temperature storage backends.

This module defines the TemperatureStore interface that every persistence
backend (PostgreSQL, in-memory) implements, plus the error hierarchy the
engine relies on. The store exposes the three tables the engine owns:

    - temperature_history: append-only readings, unique per
      (hostname, serial_number, timestamp)
    - temperature_spikes: detected spikes, unique per
      (hostname, serial_number, start_time, end_time)
    - temperature_alerts: raised alerts with acknowledgement tracking

All timestamps crossing this interface are naive UTC datetimes.

Example:
    >>> class MyStore(TemperatureStore):
    ...     async def insert_reading(self, reading: TemperatureReading) -> bool:
    ...         ...
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from drivetemp.models.alerts import (
    AlertFilter,
    AlertSummary,
    TemperatureAlert,
    TemperatureSpike,
)
from drivetemp.models.readings import (
    AggregationInterval,
    ReadingAggregate,
    TemperatureReading,
)
from drivetemp.models.stats import TimeSeriesPoint


class TemperatureStoreError(Exception):
    """Base exception for temperature store errors."""

    pass


class StoreConnectionError(TemperatureStoreError):
    """Raised when the store is unreachable or not connected."""

    pass


class StoreOperationError(TemperatureStoreError):
    """Raised when a store operation fails."""

    pass


class RecordNotFoundError(TemperatureStoreError):
    """
    Raised when an acknowledge/delete targets a record that does not exist.

    Attributes:
        record_id: Identifier that was looked up.
    """

    record_kind = "record"

    def __init__(self, record_id: int) -> None:
        self.record_id = record_id
        super().__init__(f"{self.record_kind} {record_id} not found")


class AlertNotFoundError(RecordNotFoundError):
    """Raised when an alert id does not exist."""

    record_kind = "alert"


class SpikeNotFoundError(RecordNotFoundError):
    """Raised when a spike id does not exist."""

    record_kind = "spike"


DriveKey = Tuple[str, str]


class TemperatureStore(ABC):
    """
    Persistence contract for readings, spikes and alerts.

    Implementations must be safe for concurrent use by the processor's
    consumer task and its periodic tasks.
    """

    # =========================================================================
    # READINGS
    # =========================================================================

    @abstractmethod
    async def insert_reading(self, reading: TemperatureReading) -> bool:
        """
        Append a reading.

        Returns:
            bool: False if a reading with the same key already existed.
        """

    @abstractmethod
    async def get_readings(
        self,
        hostname: str,
        serial_number: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[TemperatureReading]:
        """Readings of one drive in [since, until], oldest first."""

    @abstractmethod
    async def get_latest_reading(
        self, hostname: str, serial_number: str
    ) -> Optional[TemperatureReading]:
        """Most recent reading of a drive, ignoring any window."""

    @abstractmethod
    async def get_latest_readings(self) -> List[TemperatureReading]:
        """Most recent reading of every drive, ordered by hostname, serial."""

    @abstractmethod
    async def list_drives(self, since: Optional[datetime] = None) -> List[DriveKey]:
        """Distinct (hostname, serial_number) pairs with readings since ``since``."""

    @abstractmethod
    async def aggregate_readings(
        self,
        hostname: str,
        serial_number: str,
        since: Optional[datetime] = None,
    ) -> Optional[ReadingAggregate]:
        """Count/min/max/avg/first/last over the window, None if empty."""

    @abstractmethod
    async def mean_squared_deviation(
        self,
        hostname: str,
        serial_number: str,
        mean: float,
        since: Optional[datetime] = None,
    ) -> Optional[float]:
        """Average of (temperature - mean)^2 over the window, None if empty."""

    @abstractmethod
    async def aggregate_time_series(
        self,
        hostname: str,
        serial_number: str,
        interval: AggregationInterval,
        since: Optional[datetime] = None,
    ) -> List[TimeSeriesPoint]:
        """Readings grouped into interval buckets, oldest bucket first."""

    @abstractmethod
    async def delete_readings_before(self, cutoff: datetime) -> int:
        """Delete readings strictly older than ``cutoff``; return the count."""

    # =========================================================================
    # SPIKES
    # =========================================================================

    @abstractmethod
    async def spike_exists(
        self,
        hostname: str,
        serial_number: str,
        start_time: datetime,
        end_time: datetime,
    ) -> bool:
        """Check whether a spike with this exact key is already recorded."""

    @abstractmethod
    async def insert_spike(self, spike: TemperatureSpike) -> Optional[TemperatureSpike]:
        """Record a spike; None if its key already existed."""

    @abstractmethod
    async def get_spikes(
        self,
        hostname: Optional[str] = None,
        serial_number: Optional[str] = None,
        unacknowledged_only: bool = False,
        limit: int = 100,
    ) -> List[TemperatureSpike]:
        """Spikes newest start first."""

    @abstractmethod
    async def get_spike(self, spike_id: int) -> Optional[TemperatureSpike]:
        """Spike by id, None if absent."""

    @abstractmethod
    async def acknowledge_spike(
        self, spike_id: int, acknowledged_by: str, acknowledged_at: datetime
    ) -> TemperatureSpike:
        """Mark a spike acknowledged. Raises SpikeNotFoundError."""

    @abstractmethod
    async def delete_spike(self, spike_id: int) -> None:
        """Delete a spike. Raises SpikeNotFoundError."""

    @abstractmethod
    async def count_spikes(
        self,
        acknowledged: Optional[bool] = None,
        since: Optional[datetime] = None,
    ) -> int:
        """Count spikes, optionally by acknowledgement and start time."""

    @abstractmethod
    async def delete_spikes_before(self, cutoff: datetime) -> int:
        """Delete spikes created strictly before ``cutoff``; return the count."""

    # =========================================================================
    # ALERTS
    # =========================================================================

    @abstractmethod
    async def insert_alert(self, alert: TemperatureAlert) -> TemperatureAlert:
        """Persist an alert and return it with its assigned id."""

    @abstractmethod
    async def get_alerts(self, alert_filter: AlertFilter) -> List[TemperatureAlert]:
        """Alerts matching the filter, newest first."""

    @abstractmethod
    async def get_alert(self, alert_id: int) -> Optional[TemperatureAlert]:
        """Alert by id, None if absent."""

    @abstractmethod
    async def get_latest_state_alert(
        self, hostname: str, serial_number: str
    ) -> Optional[TemperatureAlert]:
        """Newest warning, critical or recovery alert of a drive."""

    @abstractmethod
    async def acknowledge_alert(
        self, alert_id: int, acknowledged_by: str, acknowledged_at: datetime
    ) -> TemperatureAlert:
        """Mark an alert acknowledged. Raises AlertNotFoundError."""

    @abstractmethod
    async def acknowledge_all_alerts(
        self, acknowledged_by: str, acknowledged_at: datetime
    ) -> int:
        """Acknowledge every unacknowledged alert; return the count."""

    @abstractmethod
    async def delete_alert(self, alert_id: int) -> None:
        """Delete an alert. Raises AlertNotFoundError."""

    @abstractmethod
    async def summarize_alerts(self, now: datetime) -> AlertSummary:
        """Totals, per-type counts and 24h/7d counts relative to ``now``."""

    @abstractmethod
    async def delete_alerts_before(self, cutoff: datetime) -> int:
        """Delete alerts created strictly before ``cutoff``; return the count."""
