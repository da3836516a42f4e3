"""
Tests for the PostgreSQL and Redis clients with mocked connections.

No database or Redis server is needed; asyncpg pools and redis.asyncio
clients are replaced with mocks.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from asyncpg.exceptions import PostgresError
from redis.exceptions import ConnectionError as RedisConnectionError

from drivetemp.config.models import PostgresConnectionConfig, RedisConnectionConfig
from drivetemp.interfaces.temperature_store import (
    AlertNotFoundError,
    StoreConnectionError,
    StoreOperationError,
)
from drivetemp.models.alerts import AlertType, TemperatureAlert
from drivetemp.models.readings import TemperatureReading
from drivetemp.storage.postgres_client import PostgresTemperatureStore, _affected_rows
from drivetemp.storage.postgres_settings import PostgresSettingsProvider
from drivetemp.storage.redis_client import (
    RedisClient,
    RedisConnectionException,
    RedisOperationError,
)

DB_URL = "postgresql://drivetemp:secret@db:5432/drivetemp"


def connected_store(conn):
    """PostgresTemperatureStore wired to a mocked pool handing out ``conn``."""
    store = PostgresTemperatureStore(PostgresConnectionConfig(url=DB_URL))
    store.RETRY_DELAY = 0
    pool = MagicMock()
    pool.acquire.return_value.__aenter__ = AsyncMock(return_value=conn)
    pool.acquire.return_value.__aexit__ = AsyncMock(return_value=False)
    store._pool = pool
    store._connected = True
    return store


@pytest.fixture
def conn():
    return AsyncMock()


@pytest.fixture
def alert():
    return TemperatureAlert(
        id=7,
        hostname="nas01",
        serial_number="WD-123",
        alert_type=AlertType.CRITICAL,
        temperature=58,
        threshold=55,
        message="Temperature 58°C exceeds critical threshold (55°C)",
        created_at=datetime(2025, 1, 15, 12, 0),
    )


class TestPostgresHelpers:
    """Test module-level helpers."""

    @pytest.mark.parametrize(
        "status,expected",
        [("INSERT 0 1", 1), ("DELETE 3", 3), ("UPDATE 0", 0), ("", 0), (None, 0)],
    )
    def test_affected_rows(self, status, expected):
        assert _affected_rows(status) == expected

    def test_sanitize_url_hides_password(self):
        store = PostgresTemperatureStore(PostgresConnectionConfig(url=DB_URL))

        assert store._sanitize_url(DB_URL) == "postgresql://drivetemp:***@db:5432/drivetemp"


class TestPostgresTemperatureStore:
    """Test PostgresTemperatureStore against a mocked pool."""

    @pytest.mark.asyncio
    async def test_not_connected(self):
        store = PostgresTemperatureStore(PostgresConnectionConfig(url=DB_URL))

        with pytest.raises(StoreConnectionError):
            await store.get_alert(1)

    @pytest.mark.asyncio
    async def test_insert_reading_conflict(self, conn):
        conn.execute.return_value = "INSERT 0 0"
        store = connected_store(conn)

        inserted = await store.insert_reading(
            TemperatureReading(
                hostname="nas01",
                serial_number="WD-123",
                temperature=41,
                timestamp=datetime(2025, 1, 15, 12, 0),
            )
        )

        assert inserted is False
        assert "ON CONFLICT" in conn.execute.call_args.args[0]

    @pytest.mark.asyncio
    async def test_row_timestamps_parsed(self, conn):
        conn.fetch.return_value = [
            {
                "hostname": "nas01",
                "serial_number": "WD-123",
                "temperature": 41,
                "timestamp": "2025-01-15T14:00:00+02:00",
            }
        ]
        store = connected_store(conn)

        readings = await store.get_readings("nas01", "WD-123")

        assert readings[0].timestamp == datetime(2025, 1, 15, 12, 0)

    @pytest.mark.asyncio
    async def test_retry_then_fail(self, conn):
        conn.fetchrow.side_effect = PostgresError("deadlock detected")
        store = connected_store(conn)

        with pytest.raises(StoreOperationError):
            await store.get_alert(1)
        assert conn.fetchrow.await_count == store.MAX_RETRIES

    @pytest.mark.asyncio
    async def test_retry_recovers(self, conn, alert):
        row = {
            **alert.model_dump(exclude={"device_name", "model"}),
            "alert_type": "critical",
        }
        conn.fetchrow.side_effect = [PostgresError("serialization failure"), row]
        store = connected_store(conn)

        fetched = await store.get_alert(7)

        assert fetched.alert_type == AlertType.CRITICAL
        assert fetched.threshold == 55

    @pytest.mark.asyncio
    async def test_delete_missing_alert(self, conn):
        conn.execute.return_value = "DELETE 0"
        store = connected_store(conn)

        with pytest.raises(AlertNotFoundError):
            await store.delete_alert(42)

    @pytest.mark.asyncio
    async def test_drive_info_falls_back_to_drives_table(self, conn):
        conn.fetchrow.side_effect = [None, {"device": "/dev/sdb", "model": "ST4000"}]
        store = connected_store(conn)

        info = await store.get_drive_info("nas01", "ST-9")

        assert (info.device_name, info.model) == ("/dev/sdb", "ST4000")


class TestPostgresSettingsProvider:
    """Test PostgresSettingsProvider value conversion."""

    @pytest.mark.asyncio
    async def test_integer_setting(self):
        store = MagicMock()
        store.get_setting_value = AsyncMock(return_value="50")

        provider = PostgresSettingsProvider(store)

        assert await provider.get_int("temperature", "warning_threshold") == (50, True)

    @pytest.mark.asyncio
    async def test_non_integer_not_found(self):
        store = MagicMock()
        store.get_setting_value = AsyncMock(return_value="fifty")

        provider = PostgresSettingsProvider(store)

        assert (await provider.get_int("temperature", "warning_threshold"))[1] is False

    @pytest.mark.asyncio
    async def test_boolean_setting(self):
        store = MagicMock()
        store.get_setting_value = AsyncMock(side_effect=["false", None])

        provider = PostgresSettingsProvider(store)

        assert await provider.get_bool("alerts", "enabled") == (False, True)
        assert (await provider.get_bool("alerts", "recovery_enabled"))[1] is False


class TestRedisClient:
    """Test RedisClient alert publishing."""

    @pytest.mark.asyncio
    async def test_publish_requires_connection(self, alert):
        client = RedisClient(RedisConnectionConfig())

        with pytest.raises(RedisConnectionException):
            await client.publish_alert(alert)

    @pytest.mark.asyncio
    async def test_publish_alert(self, alert):
        client = RedisClient(RedisConnectionConfig(), alerts_channel="alerts:test")
        client._client = AsyncMock()
        client._client.publish.return_value = 2
        client._connected = True

        delivered = await client.publish_alert(alert)

        assert delivered == 2
        channel, payload = client._client.publish.call_args.args
        assert channel == "alerts:test"
        assert TemperatureAlert.model_validate_json(payload).id == 7

    @pytest.mark.asyncio
    async def test_publish_error_wrapped(self, alert):
        client = RedisClient(RedisConnectionConfig())
        client._client = AsyncMock()
        client._client.publish.side_effect = RedisConnectionError("connection reset")
        client._connected = True

        with pytest.raises(RedisOperationError):
            await client.publish_alert(alert)

    @pytest.mark.asyncio
    async def test_ping_without_client(self):
        assert await RedisClient(RedisConnectionConfig()).ping() is False
