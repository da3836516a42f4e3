"""
Tests for the per-drive StatisticsEngine.
"""

import math
from datetime import datetime, timedelta

import pytest

from drivetemp.models.readings import AggregationInterval, Period, TemperatureStatus
from drivetemp.models.stats import TrendDirection

HOST = "nas01"
SERIAL = "WD-123"


class TestGetStats:
    """Test StatisticsEngine.get_stats()."""

    @pytest.mark.asyncio
    async def test_no_readings_returns_none(self, statistics, base_time):
        assert await statistics.get_stats(HOST, SERIAL, Period.DAY, base_time) is None

    @pytest.mark.asyncio
    async def test_known_sample(self, statistics, seed, base_time):
        """Population stddev matches the closed form."""
        sample = [35, 36, 38, 40, 42, 44, 45, 43, 41, 39]
        await seed(sample, base_time - timedelta(hours=5), step=timedelta(minutes=10))

        stats = await statistics.get_stats(HOST, SERIAL, Period.DAY, base_time)

        mean = sum(sample) / len(sample)
        variance = sum((t - mean) ** 2 for t in sample) / len(sample)
        assert stats is not None
        assert stats.min_temp == 35
        assert stats.max_temp == 45
        assert stats.avg_temp == round(mean, 2)
        assert stats.variance == pytest.approx(round(variance, 2))
        assert stats.std_dev == pytest.approx(round(math.sqrt(variance), 2))
        assert stats.data_points == len(sample)
        assert stats.current_temp == 39

    @pytest.mark.asyncio
    async def test_single_reading(self, statistics, seed, base_time):
        await seed([41], base_time - timedelta(minutes=5))

        stats = await statistics.get_stats(HOST, SERIAL, Period.DAY, base_time)

        assert stats.std_dev == 0
        assert stats.trend == TrendDirection.INSUFFICIENT_DATA
        assert stats.trend_slope == 0

    @pytest.mark.asyncio
    async def test_trend_heating(self, statistics, seed, base_time):
        await seed([38, 40, 42, 44], base_time - timedelta(hours=4), step=timedelta(hours=1))

        stats = await statistics.get_stats(HOST, SERIAL, Period.DAY, base_time)

        assert stats.trend_slope == pytest.approx(2.0)
        assert stats.trend == TrendDirection.HEATING

    @pytest.mark.asyncio
    async def test_window_excludes_old_readings(self, statistics, seed, base_time):
        await seed([60], base_time - timedelta(days=3))
        await seed([40, 42], base_time - timedelta(hours=2))

        stats = await statistics.get_stats(HOST, SERIAL, Period.DAY, base_time)

        assert stats.max_temp == 42
        assert stats.data_points == 2

    @pytest.mark.asyncio
    async def test_all_period_includes_everything(self, statistics, seed, base_time):
        await seed([60], base_time - timedelta(days=300))
        await seed([40], base_time - timedelta(hours=2))

        stats = await statistics.get_stats(HOST, SERIAL, Period.ALL, base_time)

        assert stats.data_points == 2
        assert stats.max_temp == 60

    @pytest.mark.asyncio
    async def test_current_is_latest_reading(self, statistics, seed, base_time):
        """Current is the newest reading, not the window maximum."""
        await seed([40, 52], base_time - timedelta(hours=3))
        await seed([47], base_time - timedelta(hours=1))

        stats = await statistics.get_stats(HOST, SERIAL, Period.DAY, base_time)

        assert stats.current_temp == 47

    @pytest.mark.asyncio
    async def test_drive_info_attached(self, statistics, store, seed, base_time):
        store.register_drive_info(HOST, SERIAL, device_name="/dev/sda", model="WD Red")
        await seed([40], base_time - timedelta(minutes=1))

        stats = await statistics.get_stats(HOST, SERIAL, Period.DAY, base_time)

        assert stats.device_name == "/dev/sda"
        assert stats.model == "WD Red"

    @pytest.mark.asyncio
    async def test_drive_info_failure_is_ignored(self, statistics, store, seed, base_time, monkeypatch):
        async def broken(hostname, serial_number):
            raise RuntimeError("smart table missing")

        monkeypatch.setattr(store, "get_drive_info", broken)
        await seed([40], base_time - timedelta(minutes=1))

        stats = await statistics.get_stats(HOST, SERIAL, Period.DAY, base_time)

        assert stats is not None
        assert stats.device_name is None
        assert stats.model is None


class TestTimeSeries:
    """Test StatisticsEngine.get_time_series()."""

    @pytest.mark.asyncio
    async def test_hourly_buckets(self, statistics, seed, base_time):
        start = datetime(2025, 1, 15, 9, 10, 0)
        await seed([40, 41, 43], start, step=timedelta(minutes=15))
        await seed([44], datetime(2025, 1, 15, 10, 5, 0))

        series = await statistics.get_time_series(
            HOST, SERIAL, Period.DAY, AggregationInterval.HOUR, base_time
        )

        assert [p.timestamp for p in series.points] == [
            datetime(2025, 1, 15, 9),
            datetime(2025, 1, 15, 10),
        ]
        first = series.points[0]
        assert (first.min_temp, first.max_temp, first.count) == (40, 43, 3)
        assert first.avg_temp == pytest.approx(41.33)
        assert first.temperature == 41
        assert series.interval is AggregationInterval.HOUR

    @pytest.mark.asyncio
    async def test_empty_series(self, statistics, base_time):
        series = await statistics.get_time_series(HOST, SERIAL, Period.DAY, AggregationInterval.HOUR, base_time)
        assert series.points == []


class TestCurrentAndRange:
    """Test current temperature and raw range queries."""

    @pytest.mark.asyncio
    async def test_current_status_follows_settings(self, statistics, settings, seed, base_time):
        await seed([48], base_time)

        current = await statistics.get_current(HOST, SERIAL)
        assert current.status is TemperatureStatus.WARNING

        settings.set("temperature", "warning_threshold", 50)
        current = await statistics.get_current(HOST, SERIAL)
        assert current.status is TemperatureStatus.NORMAL

    @pytest.mark.asyncio
    async def test_current_missing(self, statistics):
        assert await statistics.get_current(HOST, SERIAL) is None

    @pytest.mark.asyncio
    async def test_all_current_ordered(self, statistics, seed, base_time):
        await seed([40], base_time, hostname="nas02", serial_number="B")
        await seed([41], base_time, hostname="nas01", serial_number="Z")
        await seed([42], base_time, hostname="nas01", serial_number="A")

        current = await statistics.get_all_current()

        assert [(c.hostname, c.serial_number) for c in current] == [
            ("nas01", "A"),
            ("nas01", "Z"),
            ("nas02", "B"),
        ]

    @pytest.mark.asyncio
    async def test_range_inclusive(self, statistics, seed, base_time):
        readings = await seed([40, 41, 42, 43], base_time)

        result = await statistics.get_range(
            HOST, SERIAL, readings[1].timestamp, readings[2].timestamp
        )

        assert [r.temperature for r in result] == [41, 42]

    @pytest.mark.asyncio
    async def test_range_inverted_raises(self, statistics, base_time):
        with pytest.raises(ValueError):
            await statistics.get_range(HOST, SERIAL, base_time, base_time - timedelta(hours=1))
