"""
Temperature spike detection.

A spike is a rapid temperature change of at least the configured magnitude
inside the trailing detection window. Detection walks the time-ordered
readings once while tracking the running minimum and maximum; when the
current reading is far enough from either extremum a spike is reported
from the extremum to the current reading, and both extrema restart at the
current reading so one event is not reported twice.

Key Features:
    - Single pass over the window, at most one spike per reading
    - Rate in °C/minute with a one-minute floor on elapsed time
    - Idempotent recording: a spike with the same (host, serial, start, end)
      is never stored twice, so overlapping scans are harmless
    - Fleet sweep isolates per-drive failures

Example:
    >>> detector = SpikeDetector(store, settings)
    >>> new_spikes = await detector.detect_spikes("nas01", "WD-123", 30, 10)
    >>> for spike in new_spikes:
    ...     print(spike.direction, spike.magnitude)
"""

from datetime import datetime, timedelta
from typing import List, Optional, Sequence

import structlog

from drivetemp.config.settings import load_thresholds
from drivetemp.interfaces.settings_provider import SettingsProvider
from drivetemp.interfaces.temperature_store import SpikeNotFoundError, TemperatureStore
from drivetemp.models.alerts import SpikeDirection, SpikeSummary, TemperatureSpike
from drivetemp.models.readings import TemperatureReading

logger = structlog.get_logger(__name__)


def _build_spike(
    start: TemperatureReading, end: TemperatureReading, now: Optional[datetime] = None
) -> TemperatureSpike:
    magnitude = abs(end.temperature - start.temperature)
    elapsed_minutes = (end.timestamp - start.timestamp).total_seconds() / 60.0
    direction = (
        SpikeDirection.HEATING
        if end.temperature > start.temperature
        else SpikeDirection.COOLING
    )
    return TemperatureSpike(
        hostname=end.hostname,
        serial_number=end.serial_number,
        start_time=start.timestamp,
        end_time=end.timestamp,
        start_temp=start.temperature,
        end_temp=end.temperature,
        magnitude=magnitude,
        rate_per_minute=round(magnitude / max(elapsed_minutes, 1.0), 2),
        direction=direction,
        created_at=now or datetime.utcnow(),
    )


def detect_spikes(
    readings: Sequence[TemperatureReading],
    threshold: int,
    now: Optional[datetime] = None,
) -> List[TemperatureSpike]:
    """
    Find spike candidates in time-ordered readings of one drive.

    A reading qualifies when its distance from the running minimum or the
    running maximum reaches ``threshold``; the spike starts at whichever
    extremum is further away, the minimum on a tie.

    Args:
        readings: Readings of a single drive, oldest first.
        threshold: Minimum absolute change in °C.
        now: Detection time recorded as the spikes' created_at.

    Returns:
        List[TemperatureSpike]: Unsaved candidates, oldest first.

    Example:
        >>> spikes = detect_spikes(ramp_35_to_50, threshold=10)
        >>> [(s.direction.value, s.magnitude >= 10) for s in spikes]
        [('heating', True)]
    """
    if len(readings) < 2:
        return []

    low = high = readings[0]
    candidates: List[TemperatureSpike] = []

    for current in readings[1:]:
        from_low = abs(current.temperature - low.temperature)
        from_high = abs(current.temperature - high.temperature)
        if max(from_low, from_high) >= threshold:
            extremum = low if from_low >= from_high else high
            candidates.append(_build_spike(extremum, current, now))
            low = high = current
            continue

        if current.temperature < low.temperature:
            low = current
        if current.temperature > high.temperature:
            high = current

    return candidates


class SpikeDetector:
    """
    Detects, records and manages temperature spikes.

    Attributes:
        store: Reading and spike store.
        settings: Runtime settings source for window and magnitude.
    """

    def __init__(self, store: TemperatureStore, settings: SettingsProvider) -> None:
        self.store = store
        self.settings = settings

    async def detect_spikes(
        self,
        hostname: str,
        serial_number: str,
        window_minutes: int,
        threshold: int,
        now: Optional[datetime] = None,
    ) -> List[TemperatureSpike]:
        """
        Detect and record new spikes in the trailing window of one drive.

        Candidates already recorded by an earlier scan are skipped.

        Returns:
            List[TemperatureSpike]: Newly stored spikes, oldest first.
        """
        now = now or datetime.utcnow()
        readings = await self.store.get_readings(
            hostname, serial_number, now - timedelta(minutes=window_minutes), now
        )

        recorded: List[TemperatureSpike] = []
        for candidate in detect_spikes(readings, threshold, now):
            if await self.store.spike_exists(
                hostname, serial_number, candidate.start_time, candidate.end_time
            ):
                continue
            stored = await self.store.insert_spike(candidate)
            if stored is None:
                continue
            recorded.append(stored)
            logger.info(
                "spike_recorded",
                hostname=hostname,
                serial_number=serial_number,
                direction=stored.direction.value,
                magnitude=stored.magnitude,
                rate_per_minute=stored.rate_per_minute,
            )

        return recorded

    async def detect_all_drives(self, now: Optional[datetime] = None) -> List[TemperatureSpike]:
        """
        Run spike detection for every drive with reading history.

        A failing drive is logged and counted; the sweep continues.

        Returns:
            List[TemperatureSpike]: Newly stored spikes across the fleet.
        """
        now = now or datetime.utcnow()
        thresholds = await load_thresholds(self.settings)
        drives = await self.store.list_drives()

        recorded: List[TemperatureSpike] = []
        failures = 0
        for hostname, serial_number in drives:
            try:
                recorded.extend(
                    await self.detect_spikes(
                        hostname,
                        serial_number,
                        thresholds.spike_window_minutes,
                        thresholds.spike_threshold,
                        now,
                    )
                )
            except Exception as e:
                failures += 1
                logger.error(
                    "spike_detection_failed",
                    hostname=hostname,
                    serial_number=serial_number,
                    error=str(e),
                )

        logger.info(
            "spike_sweep_completed",
            drives=len(drives),
            spikes=len(recorded),
            failures=failures,
        )
        return recorded

    async def get_spikes(
        self,
        hostname: Optional[str] = None,
        serial_number: Optional[str] = None,
        unacknowledged_only: bool = False,
        limit: int = 100,
    ) -> List[TemperatureSpike]:
        """Recorded spikes, newest start first."""
        return await self.store.get_spikes(
            hostname=hostname,
            serial_number=serial_number,
            unacknowledged_only=unacknowledged_only,
            limit=limit,
        )

    async def get_spike(self, spike_id: int) -> TemperatureSpike:
        """
        Fetch one spike.

        Raises:
            SpikeNotFoundError: If no spike has this id.
        """
        spike = await self.store.get_spike(spike_id)
        if spike is None:
            raise SpikeNotFoundError(spike_id)
        return spike

    async def acknowledge_spike(
        self, spike_id: int, acknowledged_by: str, now: Optional[datetime] = None
    ) -> None:
        """
        Mark a spike acknowledged.

        Raises:
            SpikeNotFoundError: If no spike has this id.
        """
        await self.store.acknowledge_spike(
            spike_id, acknowledged_by, now or datetime.utcnow()
        )
        logger.info("spike_acknowledged", spike_id=spike_id, acknowledged_by=acknowledged_by)

    async def delete_spike(self, spike_id: int) -> None:
        """
        Delete a spike.

        Raises:
            SpikeNotFoundError: If no spike has this id.
        """
        await self.store.delete_spike(spike_id)
        logger.info("spike_deleted", spike_id=spike_id)

    async def get_spike_summary(self, now: Optional[datetime] = None) -> SpikeSummary:
        """Spike counts overall, by acknowledgement and over the last day/week."""
        now = now or datetime.utcnow()
        total = await self.store.count_spikes()
        unacknowledged = await self.store.count_spikes(acknowledged=False)
        return SpikeSummary(
            total=total,
            unacknowledged=unacknowledged,
            acknowledged=total - unacknowledged,
            last_24h=await self.store.count_spikes(since=now - timedelta(hours=24)),
            last_7d=await self.store.count_spikes(since=now - timedelta(days=7)),
        )
