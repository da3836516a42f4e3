"""
Shared fixtures for the drivetemp test suite.

Every test runs against a fresh MemoryTemperatureStore and a
StaticSettingsProvider seeded with no values, so all thresholds fall back
to their defaults unless a test sets them.
"""

from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Sequence

import pytest

from drivetemp.config.settings import StaticSettingsProvider
from drivetemp.detection.cooldown import CooldownCache
from drivetemp.detection.manager import AlertEngine
from drivetemp.detection.spikes import SpikeDetector
from drivetemp.metrics.fleet import FleetOverview
from drivetemp.metrics.statistics import StatisticsEngine
from drivetemp.models.readings import TemperatureReading
from drivetemp.storage.memory_store import MemoryTemperatureStore

HOST = "nas01"
SERIAL = "WD-123"

SeedFn = Callable[..., Awaitable[List[TemperatureReading]]]


@pytest.fixture
def base_time() -> datetime:
    """Fixed reference time for deterministic tests."""
    return datetime(2025, 1, 15, 12, 0, 0)


@pytest.fixture
def store() -> MemoryTemperatureStore:
    """Empty in-memory store."""
    return MemoryTemperatureStore()


@pytest.fixture
def settings() -> StaticSettingsProvider:
    """Settings provider with every value at its default."""
    return StaticSettingsProvider({})


@pytest.fixture
def cooldowns() -> CooldownCache:
    return CooldownCache()


@pytest.fixture
def alert_engine(store, settings, cooldowns) -> AlertEngine:
    return AlertEngine(store, settings, cooldowns=cooldowns, drive_info=store)


@pytest.fixture
def spike_detector(store, settings) -> SpikeDetector:
    return SpikeDetector(store, settings)


@pytest.fixture
def statistics(store, settings) -> StatisticsEngine:
    return StatisticsEngine(store, settings, drive_info=store)


@pytest.fixture
def fleet(statistics, store, settings) -> FleetOverview:
    return FleetOverview(statistics, store, settings)


@pytest.fixture
def seed(store) -> SeedFn:
    """
    Insert readings for one drive, one per ``step`` starting at ``start``.

    Returns the readings in insertion order.
    """

    async def _seed(
        temperatures: Sequence[int],
        start: datetime,
        step: timedelta = timedelta(minutes=1),
        hostname: str = HOST,
        serial_number: str = SERIAL,
    ) -> List[TemperatureReading]:
        readings = []
        for index, temperature in enumerate(temperatures):
            reading = TemperatureReading(
                hostname=hostname,
                serial_number=serial_number,
                temperature=temperature,
                timestamp=start + step * index,
            )
            await store.insert_reading(reading)
            readings.append(reading)
        return readings

    return _seed
