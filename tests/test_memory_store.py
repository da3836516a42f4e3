"""
Tests for MemoryTemperatureStore.

Covers uniqueness constraints, ordering, aggregation buckets,
acknowledgement and retention deletes.
"""

from datetime import timedelta

import pytest

from drivetemp.interfaces.temperature_store import AlertNotFoundError, SpikeNotFoundError
from drivetemp.models.alerts import (
    AlertFilter,
    AlertType,
    SpikeDirection,
    TemperatureAlert,
    TemperatureSpike,
)
from drivetemp.models.readings import AggregationInterval, TemperatureReading


def make_alert(alert_type, created_at, hostname="nas01", serial_number="WD-123", temperature=50):
    return TemperatureAlert(
        hostname=hostname,
        serial_number=serial_number,
        alert_type=alert_type,
        temperature=temperature,
        threshold=45,
        message="test",
        created_at=created_at,
    )


def make_spike(start_time, minutes=10, start_temp=35, end_temp=47):
    return TemperatureSpike(
        hostname="nas01",
        serial_number="WD-123",
        start_time=start_time,
        end_time=start_time + timedelta(minutes=minutes),
        start_temp=start_temp,
        end_temp=end_temp,
        magnitude=abs(end_temp - start_temp),
        rate_per_minute=1.2,
        direction=SpikeDirection.HEATING if end_temp > start_temp else SpikeDirection.COOLING,
        created_at=start_time + timedelta(minutes=minutes),
    )


class TestReadings:
    """Test reading storage."""

    @pytest.mark.asyncio
    async def test_duplicate_reading_ignored(self, store, base_time):
        reading = TemperatureReading(
            hostname="nas01", serial_number="WD-123", temperature=40, timestamp=base_time
        )

        assert await store.insert_reading(reading) is True
        assert await store.insert_reading(reading.model_copy(update={"temperature": 41})) is False
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_subsecond_readings_collide(self, store, base_time):
        first = TemperatureReading(
            hostname="nas01", serial_number="WD-123", temperature=40, timestamp=base_time
        )
        second = first.model_copy(
            update={"timestamp": base_time + timedelta(milliseconds=400)}
        )

        await store.insert_reading(first)

        assert await store.insert_reading(second) is False

    @pytest.mark.asyncio
    async def test_readings_sorted_and_bounded(self, store, base_time):
        for offset, temperature in ((2, 42), (0, 40), (1, 41)):
            await store.insert_reading(
                TemperatureReading(
                    hostname="nas01",
                    serial_number="WD-123",
                    temperature=temperature,
                    timestamp=base_time + timedelta(minutes=offset),
                )
            )

        readings = await store.get_readings(
            "nas01", "WD-123", since=base_time, until=base_time + timedelta(minutes=1)
        )

        assert [r.temperature for r in readings] == [40, 41]

    @pytest.mark.asyncio
    async def test_latest_readings_per_drive(self, store, seed, base_time):
        await seed([40, 41], base_time)
        await seed([30, 33], base_time, serial_number="ST-9")

        latest = await store.get_latest_readings()

        assert [(r.serial_number, r.temperature) for r in latest] == [
            ("ST-9", 33),
            ("WD-123", 41),
        ]
        assert await store.list_drives() == [("nas01", "ST-9"), ("nas01", "WD-123")]

    @pytest.mark.asyncio
    async def test_aggregate_time_series_hourly(self, store, seed, base_time):
        await seed([40, 43], base_time, step=timedelta(minutes=20))
        await seed([50], base_time + timedelta(hours=1))

        points = await store.aggregate_time_series(
            "nas01", "WD-123", AggregationInterval.HOUR
        )

        assert [p.timestamp for p in points] == [base_time, base_time + timedelta(hours=1)]
        assert points[0].avg_temp == 41.5
        assert points[0].temperature == 42
        assert (points[0].min_temp, points[0].max_temp, points[0].count) == (40, 43, 2)

    @pytest.mark.asyncio
    async def test_delete_readings_before_keeps_cutoff(self, store, seed, base_time):
        await seed([40, 41, 42], base_time)

        deleted = await store.delete_readings_before(base_time + timedelta(minutes=1))

        assert deleted == 1
        assert [r.temperature for r in await store.get_readings("nas01", "WD-123")] == [41, 42]


class TestSpikes:
    """Test spike storage."""

    @pytest.mark.asyncio
    async def test_spike_key_unique(self, store, base_time):
        spike = make_spike(base_time)

        stored = await store.insert_spike(spike)

        assert stored is not None and stored.id == 1
        assert await store.insert_spike(spike) is None
        assert await store.spike_exists("nas01", "WD-123", spike.start_time, spike.end_time)

    @pytest.mark.asyncio
    async def test_acknowledge_and_delete(self, store, base_time):
        stored = await store.insert_spike(make_spike(base_time))

        acknowledged = await store.acknowledge_spike(stored.id, "ops", base_time)
        assert acknowledged.acknowledged_by == "ops"
        assert await store.count_spikes(acknowledged=False) == 0

        await store.delete_spike(stored.id)
        with pytest.raises(SpikeNotFoundError):
            await store.delete_spike(stored.id)

    @pytest.mark.asyncio
    async def test_get_spikes_newest_first(self, store, base_time):
        await store.insert_spike(make_spike(base_time))
        await store.insert_spike(make_spike(base_time + timedelta(hours=1)))

        spikes = await store.get_spikes(limit=1)

        assert spikes[0].start_time == base_time + timedelta(hours=1)


class TestAlerts:
    """Test alert storage."""

    @pytest.mark.asyncio
    async def test_filter_and_order(self, store, base_time):
        await store.insert_alert(make_alert(AlertType.WARNING, base_time))
        await store.insert_alert(make_alert(AlertType.CRITICAL, base_time + timedelta(minutes=5)))
        await store.insert_alert(
            make_alert(AlertType.WARNING, base_time, serial_number="ST-9")
        )

        alerts = await store.get_alerts(AlertFilter(serial_number="WD-123"))
        warnings = await store.get_alerts(AlertFilter(alert_type=AlertType.WARNING))

        assert [a.alert_type for a in alerts] == [AlertType.CRITICAL, AlertType.WARNING]
        assert len(warnings) == 2

    @pytest.mark.asyncio
    async def test_latest_state_alert_skips_spikes(self, store, base_time):
        await store.insert_alert(make_alert(AlertType.WARNING, base_time))
        await store.insert_alert(make_alert(AlertType.SPIKE, base_time + timedelta(minutes=1)))

        latest = await store.get_latest_state_alert("nas01", "WD-123")

        assert latest.alert_type == AlertType.WARNING

    @pytest.mark.asyncio
    async def test_acknowledge_all_counts_only_open(self, store, base_time):
        first = await store.insert_alert(make_alert(AlertType.WARNING, base_time))
        await store.insert_alert(make_alert(AlertType.CRITICAL, base_time))
        await store.acknowledge_alert(first.id, "ops", base_time)

        assert await store.acknowledge_all_alerts("ops", base_time) == 1

    @pytest.mark.asyncio
    async def test_missing_alert(self, store, base_time):
        assert await store.get_alert(99) is None
        with pytest.raises(AlertNotFoundError):
            await store.acknowledge_alert(99, "ops", base_time)

    @pytest.mark.asyncio
    async def test_summary(self, store, base_time):
        await store.insert_alert(make_alert(AlertType.WARNING, base_time - timedelta(days=3)))
        await store.insert_alert(make_alert(AlertType.CRITICAL, base_time - timedelta(hours=1)))

        summary = await store.summarize_alerts(base_time)

        assert summary.total == 2
        assert summary.by_type == {"warning": 1, "critical": 1}
        assert (summary.last_24h, summary.last_7d) == (1, 2)

    @pytest.mark.asyncio
    async def test_drive_info(self, store):
        store.register_drive_info("nas01", "WD-123", device_name="/dev/sda", model="WD Red")

        info = await store.get_drive_info("nas01", "WD-123")

        assert info.device_name == "/dev/sda"
        assert await store.get_drive_info("nas01", "other") is None
