"""
Tests for fleet-wide views: summary, distribution, trends, heatmap,
dashboard and overview.
"""

from datetime import datetime, timedelta

import pytest

from drivetemp.metrics.fleet import bucket_distribution
from drivetemp.models.readings import AggregationInterval, Period, TemperatureStatus
from drivetemp.models.stats import TrendDirection


class TestBucketDistribution:
    """Test bucket_distribution()."""

    def test_buckets(self):
        buckets = bucket_distribution([41, 44, 45, 47, 52, -3])

        assert [(b.range_start, b.range_end, b.count) for b in buckets] == [
            (-5, -1, 1),
            (40, 44, 2),
            (45, 49, 2),
            (50, 54, 1),
        ]

    def test_empty(self):
        assert bucket_distribution([]) == []


class TestSummary:
    """Test FleetOverview.get_summary()."""

    @pytest.mark.asyncio
    async def test_empty_fleet(self, fleet):
        summary = await fleet.get_summary()

        assert summary.total_drives == 0
        assert summary.hottest_drive is None

    @pytest.mark.asyncio
    async def test_counts_and_extremes(self, fleet, seed, base_time):
        await seed([40], base_time, hostname="h1", serial_number="a")
        await seed([50], base_time, hostname="h1", serial_number="b")
        await seed([58], base_time, hostname="h2", serial_number="c")
        await seed([33], base_time, hostname="h2", serial_number="d")

        summary = await fleet.get_summary()

        assert summary.total_drives == 4
        assert (summary.drives_normal, summary.drives_warning, summary.drives_critical) == (2, 1, 1)
        assert summary.avg_temperature == 45.25
        assert (summary.min_temperature, summary.max_temperature) == (33, 58)
        assert summary.hottest_drive.serial_number == "c"
        assert summary.coolest_drive.serial_number == "d"

    @pytest.mark.asyncio
    async def test_ties_resolve_to_later_drive(self, fleet, seed, base_time):
        await seed([40], base_time, hostname="h1", serial_number="a")
        await seed([40], base_time, hostname="h1", serial_number="b")

        summary = await fleet.get_summary()

        assert summary.hottest_drive.serial_number == "b"
        assert summary.coolest_drive.serial_number == "b"

    @pytest.mark.asyncio
    async def test_distribution(self, fleet, seed, base_time):
        await seed([41], base_time, serial_number="a")
        await seed([43], base_time, serial_number="b")
        await seed([47], base_time, serial_number="c")

        buckets = await fleet.get_distribution()

        assert [(b.range_start, b.count) for b in buckets] == [(40, 2), (45, 1)]


class TestTrendsAndHeatmap:
    """Test per-drive trends and heatmap rows."""

    @pytest.mark.asyncio
    async def test_trends(self, fleet, seed, base_time):
        await seed([38, 40, 42], base_time - timedelta(hours=3), step=timedelta(hours=1), serial_number="a")
        await seed([40, 40, 40], base_time - timedelta(hours=3), step=timedelta(hours=1), serial_number="b")
        await seed([50], base_time - timedelta(days=5), serial_number="old")

        trends = await fleet.get_trends(Period.DAY, now=base_time)

        assert [(t.serial_number, t.trend) for t in trends] == [
            ("a", TrendDirection.HEATING),
            ("b", TrendDirection.STABLE),
        ]

    @pytest.mark.asyncio
    async def test_trends_limit(self, fleet, seed, base_time):
        for serial in ("a", "b", "c"):
            await seed([40], base_time, serial_number=serial)

        assert len(await fleet.get_trends(Period.ALL, limit=2, now=base_time)) == 2

    @pytest.mark.asyncio
    async def test_heatmap(self, fleet, seed, base_time):
        await seed([40, 50], datetime(2025, 1, 15, 9, 30), step=timedelta(hours=1))

        rows = await fleet.get_heatmap(Period.DAY, AggregationInterval.HOUR, now=base_time)

        assert len(rows) == 1
        assert [(c.timestamp.hour, c.status) for c in rows[0].cells] == [
            (9, TemperatureStatus.NORMAL),
            (10, TemperatureStatus.WARNING),
        ]


class TestDashboardAndOverview:
    """Test dashboard and overview payloads."""

    @pytest.mark.asyncio
    async def test_dashboard_counts(self, fleet, alert_engine, seed, base_time):
        await seed([57], base_time, serial_number="hot")
        await seed([40], base_time, serial_number="cool")
        await alert_engine.check_temperature_and_alert("nas01", "hot", 57, base_time)

        dashboard = await fleet.get_dashboard(now=base_time)

        assert dashboard.total_drives == 2
        assert dashboard.drives_critical == 1
        assert dashboard.active_alerts == 1
        assert dashboard.unacknowledged_spikes == 0
        assert dashboard.avg_temperature == 48.5
        assert dashboard.thresholds.warning == 45
        assert dashboard.drives_by_status == {}
        assert dashboard.recent_alerts == []

    @pytest.mark.asyncio
    async def test_dashboard_details(self, fleet, alert_engine, seed, base_time):
        await seed([57], base_time, serial_number="hot")
        await seed([40], base_time, serial_number="cool")
        await alert_engine.check_temperature_and_alert("nas01", "hot", 57, base_time)

        dashboard = await fleet.get_dashboard(include_details=True, now=base_time)

        assert [d.serial_number for d in dashboard.drives_by_status["critical"]] == ["hot"]
        assert [d.serial_number for d in dashboard.drives_by_status["normal"]] == ["cool"]
        assert dashboard.drives_by_status["warning"] == []
        assert len(dashboard.recent_alerts) == 1

    @pytest.mark.asyncio
    async def test_overview_worst_status(self, fleet, seed, base_time):
        await seed([40], base_time, serial_number="a")
        await seed([50], base_time, serial_number="b")

        overview = await fleet.get_overview(now=base_time)

        assert overview.status is TemperatureStatus.WARNING
        assert overview.drives_with_issues == 1
        assert overview.max_temperature == 50
        assert overview.avg_temperature == 45.0

    @pytest.mark.asyncio
    async def test_overview_escalates_on_active_alerts(self, fleet, alert_engine, seed, base_time):
        await seed([40], base_time, serial_number="a")
        await alert_engine.check_temperature_and_alert("nas01", "b", 50, base_time)

        overview = await fleet.get_overview(now=base_time)

        assert overview.status is TemperatureStatus.WARNING
        assert overview.active_alerts == 1
        assert overview.drives_with_issues == 0

    @pytest.mark.asyncio
    async def test_overview_all_normal(self, fleet, seed, base_time):
        await seed([40], base_time, serial_number="a")

        overview = await fleet.get_overview(now=base_time)

        assert overview.status is TemperatureStatus.NORMAL
