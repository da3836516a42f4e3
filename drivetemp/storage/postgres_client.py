"""
Async PostgreSQL client for temperature history, spikes and alerts.

This module provides the PostgreSQL implementation of TemperatureStore.
Schema creation is handled outside this package; the client expects:

Key Tables:
    - temperature_history(hostname, serial_number, temperature, timestamp)
      UNIQUE (hostname, serial_number, timestamp)
    - temperature_spikes(id SERIAL, hostname, serial_number, start_time,
      end_time, start_temp, end_temp, magnitude, rate_per_minute, direction,
      acknowledged, acknowledged_by, acknowledged_at, created_at)
      UNIQUE (hostname, serial_number, start_time, end_time)
    - temperature_alerts(id SERIAL, hostname, serial_number, alert_type,
      temperature, threshold, message, acknowledged, acknowledged_by,
      acknowledged_at, created_at)
    - settings(category, key, value TEXT)
    - smart_results / drives: read-only, for drive metadata

Timestamps are naive UTC. Values read back go through the timestamp
fallback chain so TEXT columns written by older agents also load.

Example:
    >>> from drivetemp.config.models import PostgresConnectionConfig
    >>> from drivetemp.storage.postgres_client import PostgresTemperatureStore
    >>>
    >>> store = PostgresTemperatureStore(PostgresConnectionConfig(url="postgresql://..."))
    >>> await store.connect()
    >>> await store.insert_reading(reading)
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Dict, List, Optional

import asyncpg
import structlog
from asyncpg import Connection, Pool, Record
from asyncpg.exceptions import (
    ConnectionDoesNotExistError,
    InterfaceError,
    PostgresError,
    TooManyConnectionsError,
)

from drivetemp.config.models import PostgresConnectionConfig
from drivetemp.interfaces.drive_info import DriveInfoLookup
from drivetemp.interfaces.temperature_store import (
    AlertNotFoundError,
    DriveKey,
    SpikeNotFoundError,
    StoreConnectionError,
    StoreOperationError,
    TemperatureStore,
)
from drivetemp.models.alerts import AlertFilter, AlertSummary, TemperatureAlert, TemperatureSpike
from drivetemp.models.readings import (
    AggregationInterval,
    DriveInfo,
    ReadingAggregate,
    TemperatureReading,
)
from drivetemp.models.stats import TimeSeriesPoint
from drivetemp.storage.rows import alert_from_row, reading_from_row, spike_from_row
from drivetemp.storage.timestamps import parse_timestamp

logger = structlog.get_logger(__name__)


# Bucket expressions per aggregation interval; never built from user input
_BUCKET_EXPRESSIONS: Dict[AggregationInterval, str] = {
    AggregationInterval.HOUR: "date_trunc('hour', timestamp)",
    AggregationInterval.SIX_HOURS: (
        "date_trunc('day', timestamp)"
        " + floor(extract(hour from timestamp) / 6) * interval '6 hours'"
    ),
    AggregationInterval.DAY: "date_trunc('day', timestamp)",
    AggregationInterval.WEEK: "date_trunc('week', timestamp)",
    AggregationInterval.MONTH: "date_trunc('month', timestamp)",
}

_SPIKE_COLUMNS = """
    id, hostname, serial_number, start_time, end_time, start_temp, end_temp,
    magnitude, rate_per_minute, direction, acknowledged, acknowledged_by,
    acknowledged_at, created_at
"""

_ALERT_COLUMNS = """
    id, hostname, serial_number, alert_type, temperature, threshold, message,
    acknowledged, acknowledged_by, acknowledged_at, created_at
"""


def _affected_rows(status: str) -> int:
    """Row count from an asyncpg command status such as 'DELETE 3'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0



class PostgresTemperatureStore(TemperatureStore, DriveInfoLookup):
    """
    Async PostgreSQL implementation of the temperature store.

    Attributes:
        config: PostgreSQL connection configuration.
        _pool: Connection pool for efficient connection reuse.
        _connected: Whether the client is connected.

    Example:
        >>> store = PostgresTemperatureStore(config)
        >>> await store.connect()
        >>> try:
        ...     await store.insert_reading(reading)
        ... finally:
        ...     await store.disconnect()
    """

    # Maximum retries for transient errors
    MAX_RETRIES = 3

    # Retry delay in seconds, multiplied by the attempt number
    RETRY_DELAY = 0.5

    def __init__(self, config: PostgresConnectionConfig) -> None:
        self.config = config
        self._pool: Optional[Pool] = None
        self._connected: bool = False

        logger.info(
            "postgres_store_initialized",
            url=self._sanitize_url(config.url),
            pool_size=config.pool_size,
        )

    def _sanitize_url(self, url: str) -> str:
        """Sanitize URL for logging (remove password)."""
        if "@" in url:
            parts = url.split("@")
            if ":" in parts[0]:
                user_part = parts[0].rsplit(":", 1)[0]
                return f"{user_part}:***@{parts[1]}"
        return url

    @property
    def is_connected(self) -> bool:
        """Check if the client is connected to PostgreSQL."""
        return self._connected and self._pool is not None

    async def connect(self) -> None:
        """
        Establish connection pool to PostgreSQL.

        Raises:
            StoreConnectionError: If connection fails.
        """
        if self._connected:
            logger.warning("postgres_already_connected")
            return

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.config.url,
                min_size=1,
                max_size=self.config.pool_size + self.config.max_overflow,
                command_timeout=self.config.pool_timeout,
                init=self._init_connection,
            )

            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")

            self._connected = True
            logger.info("postgres_connected", url=self._sanitize_url(self.config.url))

        except (PostgresError, OSError, asyncio.TimeoutError) as e:
            self._connected = False
            logger.error(
                "postgres_connection_failed",
                url=self._sanitize_url(self.config.url),
                error=str(e),
            )
            raise StoreConnectionError(f"Failed to connect to PostgreSQL: {e}") from e

    async def _init_connection(self, conn: Connection) -> None:
        # Naive timestamps are UTC
        await conn.execute("SET timezone = 'UTC'")

    async def disconnect(self) -> None:
        """Close the connection pool. Safe to call multiple times."""
        if self._pool is not None:
            try:
                await self._pool.close()
            except Exception as e:
                logger.warning("postgres_close_error", error=str(e))
            finally:
                self._pool = None

        self._connected = False
        logger.info("postgres_disconnected")

    async def ping(self) -> bool:
        """Return True if PostgreSQL answers a trivial query."""
        if not self._pool:
            return False

        try:
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as e:
            logger.warning("postgres_ping_failed", error=str(e))
            return False

    @asynccontextmanager
    async def _acquire_connection(self) -> AsyncIterator[Connection]:
        """
        Acquire a connection from the pool with error handling.

        Raises:
            StoreConnectionError: If not connected or pool exhausted.
        """
        if not self._connected or self._pool is None:
            raise StoreConnectionError("PostgreSQL store is not connected")

        try:
            async with self._pool.acquire() as conn:
                yield conn
        except TooManyConnectionsError as e:
            logger.error("postgres_pool_exhausted", error=str(e))
            raise StoreConnectionError(f"Connection pool exhausted: {e}") from e
        except (ConnectionDoesNotExistError, InterfaceError) as e:
            logger.error("postgres_connection_lost", error=str(e))
            self._connected = False
            raise StoreConnectionError(f"Connection lost: {e}") from e

    async def _execute_with_retry(self, operation: str, func: Any, *args: Any) -> Any:
        """
        Execute a database operation with retry logic for transient errors.

        Raises:
            StoreOperationError: If all retries fail.
        """
        last_error: Optional[Exception] = None

        for attempt in range(self.MAX_RETRIES):
            try:
                return await func(*args)
            except (PostgresError, ConnectionDoesNotExistError, InterfaceError) as e:
                last_error = e
                if attempt < self.MAX_RETRIES - 1:
                    logger.warning(
                        "postgres_operation_retry",
                        operation=operation,
                        attempt=attempt + 1,
                        max_retries=self.MAX_RETRIES,
                        error=str(e),
                    )
                    await asyncio.sleep(self.RETRY_DELAY * (attempt + 1))
                else:
                    logger.error(
                        "postgres_operation_failed",
                        operation=operation,
                        error=str(e),
                    )

        raise StoreOperationError(
            f"Operation '{operation}' failed after {self.MAX_RETRIES} attempts: {last_error}"
        )

    async def _fetch(self, operation: str, query: str, *params: Any) -> List[Record]:
        async def _run() -> List[Record]:
            async with self._acquire_connection() as conn:
                return await conn.fetch(query, *params)

        return await self._execute_with_retry(operation, _run)

    async def _fetchrow(self, operation: str, query: str, *params: Any) -> Optional[Record]:
        async def _run() -> Optional[Record]:
            async with self._acquire_connection() as conn:
                return await conn.fetchrow(query, *params)

        return await self._execute_with_retry(operation, _run)

    async def _execute(self, operation: str, query: str, *params: Any) -> str:
        async def _run() -> str:
            async with self._acquire_connection() as conn:
                return await conn.execute(query, *params)

        return await self._execute_with_retry(operation, _run)

    # =========================================================================
    # READINGS
    # =========================================================================

    async def insert_reading(self, reading: TemperatureReading) -> bool:
        status = await self._execute(
            "insert_reading",
            """
            INSERT INTO temperature_history (hostname, serial_number, temperature, timestamp)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (hostname, serial_number, timestamp) DO NOTHING
            """,
            reading.hostname,
            reading.serial_number,
            reading.temperature,
            reading.timestamp,
        )
        return _affected_rows(status) > 0

    async def get_readings(
        self,
        hostname: str,
        serial_number: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[TemperatureReading]:
        conditions = ["hostname = $1", "serial_number = $2"]
        params: List[Any] = [hostname, serial_number]

        if since is not None:
            params.append(since)
            conditions.append(f"timestamp >= ${len(params)}")
        if until is not None:
            params.append(until)
            conditions.append(f"timestamp <= ${len(params)}")

        rows = await self._fetch(
            "get_readings",
            f"""
            SELECT hostname, serial_number, temperature, timestamp
            FROM temperature_history
            WHERE {' AND '.join(conditions)}
            ORDER BY timestamp ASC
            """,
            *params,
        )
        return [reading_from_row(row) for row in rows]

    async def get_latest_reading(
        self, hostname: str, serial_number: str
    ) -> Optional[TemperatureReading]:
        row = await self._fetchrow(
            "get_latest_reading",
            """
            SELECT hostname, serial_number, temperature, timestamp
            FROM temperature_history
            WHERE hostname = $1 AND serial_number = $2
            ORDER BY timestamp DESC
            LIMIT 1
            """,
            hostname,
            serial_number,
        )
        return reading_from_row(row) if row is not None else None

    async def get_latest_readings(self) -> List[TemperatureReading]:
        rows = await self._fetch(
            "get_latest_readings",
            """
            SELECT DISTINCT ON (hostname, serial_number)
                hostname, serial_number, temperature, timestamp
            FROM temperature_history
            ORDER BY hostname, serial_number, timestamp DESC
            """,
        )
        return [reading_from_row(row) for row in rows]

    async def list_drives(self, since: Optional[datetime] = None) -> List[DriveKey]:
        rows = await self._fetch(
            "list_drives",
            """
            SELECT DISTINCT hostname, serial_number
            FROM temperature_history
            WHERE $1::timestamp IS NULL OR timestamp >= $1::timestamp
            ORDER BY hostname, serial_number
            """,
            since,
        )
        return [(row["hostname"], row["serial_number"]) for row in rows]

    async def aggregate_readings(
        self,
        hostname: str,
        serial_number: str,
        since: Optional[datetime] = None,
    ) -> Optional[ReadingAggregate]:
        row = await self._fetchrow(
            "aggregate_readings",
            """
            SELECT COUNT(*) AS count,
                   MIN(temperature) AS min_temp,
                   MAX(temperature) AS max_temp,
                   AVG(temperature)::double precision AS avg_temp,
                   MIN(timestamp) AS first_reading,
                   MAX(timestamp) AS last_reading
            FROM temperature_history
            WHERE hostname = $1 AND serial_number = $2
              AND ($3::timestamp IS NULL OR timestamp >= $3::timestamp)
            """,
            hostname,
            serial_number,
            since,
        )
        if row is None or row["count"] == 0:
            return None

        return ReadingAggregate(
            count=row["count"],
            min_temp=row["min_temp"],
            max_temp=row["max_temp"],
            avg_temp=row["avg_temp"],
            first_reading=parse_timestamp(row["first_reading"]),
            last_reading=parse_timestamp(row["last_reading"]),
        )

    async def mean_squared_deviation(
        self,
        hostname: str,
        serial_number: str,
        mean: float,
        since: Optional[datetime] = None,
    ) -> Optional[float]:
        row = await self._fetchrow(
            "mean_squared_deviation",
            """
            SELECT AVG((temperature - $3::double precision)
                       * (temperature - $3::double precision)) AS msd
            FROM temperature_history
            WHERE hostname = $1 AND serial_number = $2
              AND ($4::timestamp IS NULL OR timestamp >= $4::timestamp)
            """,
            hostname,
            serial_number,
            mean,
            since,
        )
        if row is None or row["msd"] is None:
            return None
        return float(row["msd"])

    async def aggregate_time_series(
        self,
        hostname: str,
        serial_number: str,
        interval: AggregationInterval,
        since: Optional[datetime] = None,
    ) -> List[TimeSeriesPoint]:
        bucket = _BUCKET_EXPRESSIONS[interval]
        rows = await self._fetch(
            "aggregate_time_series",
            f"""
            SELECT {bucket} AS bucket,
                   MIN(temperature) AS min_temp,
                   MAX(temperature) AS max_temp,
                   AVG(temperature)::double precision AS avg_temp,
                   ROUND(AVG(temperature))::int AS temperature,
                   COUNT(*) AS count
            FROM temperature_history
            WHERE hostname = $1 AND serial_number = $2
              AND ($3::timestamp IS NULL OR timestamp >= $3::timestamp)
            GROUP BY bucket
            ORDER BY bucket ASC
            """,
            hostname,
            serial_number,
            since,
        )
        return [
            TimeSeriesPoint(
                timestamp=parse_timestamp(row["bucket"]),
                temperature=row["temperature"],
                min_temp=row["min_temp"],
                max_temp=row["max_temp"],
                avg_temp=round(row["avg_temp"], 2),
                count=row["count"],
            )
            for row in rows
        ]

    async def delete_readings_before(self, cutoff: datetime) -> int:
        status = await self._execute(
            "delete_readings_before",
            "DELETE FROM temperature_history WHERE timestamp < $1",
            cutoff,
        )
        return _affected_rows(status)

    # =========================================================================
    # SPIKES
    # =========================================================================

    async def spike_exists(
        self,
        hostname: str,
        serial_number: str,
        start_time: datetime,
        end_time: datetime,
    ) -> bool:
        row = await self._fetchrow(
            "spike_exists",
            """
            SELECT 1 FROM temperature_spikes
            WHERE hostname = $1 AND serial_number = $2
              AND start_time = $3 AND end_time = $4
            """,
            hostname,
            serial_number,
            start_time,
            end_time,
        )
        return row is not None

    async def insert_spike(self, spike: TemperatureSpike) -> Optional[TemperatureSpike]:
        row = await self._fetchrow(
            "insert_spike",
            f"""
            INSERT INTO temperature_spikes (
                hostname, serial_number, start_time, end_time, start_temp, end_temp,
                magnitude, rate_per_minute, direction, acknowledged, created_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, FALSE, $10)
            ON CONFLICT (hostname, serial_number, start_time, end_time) DO NOTHING
            RETURNING {_SPIKE_COLUMNS}
            """,
            spike.hostname,
            spike.serial_number,
            spike.start_time,
            spike.end_time,
            spike.start_temp,
            spike.end_temp,
            spike.magnitude,
            spike.rate_per_minute,
            spike.direction.value,
            spike.created_at,
        )
        return spike_from_row(row) if row is not None else None

    async def get_spikes(
        self,
        hostname: Optional[str] = None,
        serial_number: Optional[str] = None,
        unacknowledged_only: bool = False,
        limit: int = 100,
    ) -> List[TemperatureSpike]:
        conditions: List[str] = []
        params: List[Any] = []

        if hostname is not None:
            params.append(hostname)
            conditions.append(f"hostname = ${len(params)}")
        if serial_number is not None:
            params.append(serial_number)
            conditions.append(f"serial_number = ${len(params)}")
        if unacknowledged_only:
            conditions.append("NOT acknowledged")

        params.append(limit)
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        rows = await self._fetch(
            "get_spikes",
            f"""
            SELECT {_SPIKE_COLUMNS}
            FROM temperature_spikes
            {where}
            ORDER BY start_time DESC, id DESC
            LIMIT ${len(params)}
            """,
            *params,
        )
        return [spike_from_row(row) for row in rows]

    async def get_spike(self, spike_id: int) -> Optional[TemperatureSpike]:
        row = await self._fetchrow(
            "get_spike",
            f"SELECT {_SPIKE_COLUMNS} FROM temperature_spikes WHERE id = $1",
            spike_id,
        )
        return spike_from_row(row) if row is not None else None

    async def acknowledge_spike(
        self, spike_id: int, acknowledged_by: str, acknowledged_at: datetime
    ) -> TemperatureSpike:
        row = await self._fetchrow(
            "acknowledge_spike",
            f"""
            UPDATE temperature_spikes
            SET acknowledged = TRUE, acknowledged_by = $2, acknowledged_at = $3
            WHERE id = $1
            RETURNING {_SPIKE_COLUMNS}
            """,
            spike_id,
            acknowledged_by,
            acknowledged_at,
        )
        if row is None:
            raise SpikeNotFoundError(spike_id)
        return spike_from_row(row)

    async def delete_spike(self, spike_id: int) -> None:
        status = await self._execute(
            "delete_spike",
            "DELETE FROM temperature_spikes WHERE id = $1",
            spike_id,
        )
        if _affected_rows(status) == 0:
            raise SpikeNotFoundError(spike_id)

    async def count_spikes(
        self,
        acknowledged: Optional[bool] = None,
        since: Optional[datetime] = None,
    ) -> int:
        row = await self._fetchrow(
            "count_spikes",
            """
            SELECT COUNT(*) AS count FROM temperature_spikes
            WHERE ($1::boolean IS NULL OR acknowledged = $1::boolean)
              AND ($2::timestamp IS NULL OR start_time >= $2::timestamp)
            """,
            acknowledged,
            since,
        )
        return int(row["count"]) if row is not None else 0

    async def delete_spikes_before(self, cutoff: datetime) -> int:
        status = await self._execute(
            "delete_spikes_before",
            "DELETE FROM temperature_spikes WHERE created_at < $1",
            cutoff,
        )
        return _affected_rows(status)

    # =========================================================================
    # ALERTS
    # =========================================================================

    async def insert_alert(self, alert: TemperatureAlert) -> TemperatureAlert:
        row = await self._fetchrow(
            "insert_alert",
            f"""
            INSERT INTO temperature_alerts (
                hostname, serial_number, alert_type, temperature, threshold,
                message, acknowledged, created_at
            ) VALUES ($1, $2, $3, $4, $5, $6, FALSE, $7)
            RETURNING {_ALERT_COLUMNS}
            """,
            alert.hostname,
            alert.serial_number,
            alert.alert_type.value,
            alert.temperature,
            alert.threshold,
            alert.message,
            alert.created_at,
        )
        if row is None:
            raise StoreOperationError("insert_alert returned no row")

        logger.debug(
            "alert_inserted",
            alert_id=row["id"],
            alert_type=alert.alert_type.value,
            hostname=alert.hostname,
            serial_number=alert.serial_number,
        )
        return alert_from_row(row)

    async def get_alerts(self, alert_filter: AlertFilter) -> List[TemperatureAlert]:
        conditions: List[str] = []
        params: List[Any] = []

        if alert_filter.hostname is not None:
            params.append(alert_filter.hostname)
            conditions.append(f"hostname = ${len(params)}")
        if alert_filter.serial_number is not None:
            params.append(alert_filter.serial_number)
            conditions.append(f"serial_number = ${len(params)}")
        if alert_filter.alert_type is not None:
            params.append(alert_filter.alert_type.value)
            conditions.append(f"alert_type = ${len(params)}")
        if alert_filter.acknowledged is not None:
            params.append(alert_filter.acknowledged)
            conditions.append(f"acknowledged = ${len(params)}")
        if alert_filter.since is not None:
            params.append(alert_filter.since)
            conditions.append(f"created_at >= ${len(params)}")

        params.append(alert_filter.limit)
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        rows = await self._fetch(
            "get_alerts",
            f"""
            SELECT {_ALERT_COLUMNS}
            FROM temperature_alerts
            {where}
            ORDER BY created_at DESC, id DESC
            LIMIT ${len(params)}
            """,
            *params,
        )
        return [alert_from_row(row) for row in rows]

    async def get_alert(self, alert_id: int) -> Optional[TemperatureAlert]:
        row = await self._fetchrow(
            "get_alert",
            f"SELECT {_ALERT_COLUMNS} FROM temperature_alerts WHERE id = $1",
            alert_id,
        )
        return alert_from_row(row) if row is not None else None

    async def get_latest_state_alert(
        self, hostname: str, serial_number: str
    ) -> Optional[TemperatureAlert]:
        row = await self._fetchrow(
            "get_latest_state_alert",
            f"""
            SELECT {_ALERT_COLUMNS}
            FROM temperature_alerts
            WHERE hostname = $1 AND serial_number = $2
              AND alert_type IN ('warning', 'critical', 'recovery')
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            hostname,
            serial_number,
        )
        return alert_from_row(row) if row is not None else None

    async def acknowledge_alert(
        self, alert_id: int, acknowledged_by: str, acknowledged_at: datetime
    ) -> TemperatureAlert:
        row = await self._fetchrow(
            "acknowledge_alert",
            f"""
            UPDATE temperature_alerts
            SET acknowledged = TRUE, acknowledged_by = $2, acknowledged_at = $3
            WHERE id = $1
            RETURNING {_ALERT_COLUMNS}
            """,
            alert_id,
            acknowledged_by,
            acknowledged_at,
        )
        if row is None:
            raise AlertNotFoundError(alert_id)
        return alert_from_row(row)

    async def acknowledge_all_alerts(
        self, acknowledged_by: str, acknowledged_at: datetime
    ) -> int:
        status = await self._execute(
            "acknowledge_all_alerts",
            """
            UPDATE temperature_alerts
            SET acknowledged = TRUE, acknowledged_by = $1, acknowledged_at = $2
            WHERE NOT acknowledged
            """,
            acknowledged_by,
            acknowledged_at,
        )
        return _affected_rows(status)

    async def delete_alert(self, alert_id: int) -> None:
        status = await self._execute(
            "delete_alert",
            "DELETE FROM temperature_alerts WHERE id = $1",
            alert_id,
        )
        if _affected_rows(status) == 0:
            raise AlertNotFoundError(alert_id)

    async def summarize_alerts(self, now: datetime) -> AlertSummary:
        totals = await self._fetchrow(
            "summarize_alerts",
            """
            SELECT COUNT(*) AS total,
                   COUNT(*) FILTER (WHERE NOT acknowledged) AS unacknowledged,
                   COUNT(*) FILTER (WHERE created_at >= $1) AS last_24h,
                   COUNT(*) FILTER (WHERE created_at >= $2) AS last_7d
            FROM temperature_alerts
            """,
            now - timedelta(hours=24),
            now - timedelta(days=7),
        )
        type_rows = await self._fetch(
            "summarize_alerts_by_type",
            """
            SELECT alert_type, COUNT(*) AS count
            FROM temperature_alerts
            GROUP BY alert_type
            """,
        )
        if totals is None:
            return AlertSummary()

        return AlertSummary(
            total=totals["total"],
            unacknowledged=totals["unacknowledged"],
            acknowledged=totals["total"] - totals["unacknowledged"],
            by_type={row["alert_type"]: row["count"] for row in type_rows},
            last_24h=totals["last_24h"],
            last_7d=totals["last_7d"],
        )

    async def delete_alerts_before(self, cutoff: datetime) -> int:
        status = await self._execute(
            "delete_alerts_before",
            "DELETE FROM temperature_alerts WHERE created_at < $1",
            cutoff,
        )
        return _affected_rows(status)

    # =========================================================================
    # DRIVE INFO AND SETTINGS
    # =========================================================================

    async def get_drive_info(self, hostname: str, serial_number: str) -> Optional[DriveInfo]:
        """Latest SMART result metadata, falling back to the drives table."""
        row = await self._fetchrow(
            "get_drive_info",
            """
            SELECT device_name, model FROM smart_results
            WHERE hostname = $1 AND serial_number = $2
            ORDER BY timestamp DESC
            LIMIT 1
            """,
            hostname,
            serial_number,
        )
        if row is not None:
            return DriveInfo(device_name=row["device_name"], model=row["model"])

        row = await self._fetchrow(
            "get_drive_info_fallback",
            """
            SELECT device, model FROM drives
            WHERE hostname = $1 AND serial_number = $2
            LIMIT 1
            """,
            hostname,
            serial_number,
        )
        if row is not None:
            return DriveInfo(device_name=row["device"], model=row["model"])
        return None

    async def get_setting_value(self, category: str, key: str) -> Optional[str]:
        """Raw text value from the settings table, None if absent."""
        row = await self._fetchrow(
            "get_setting_value",
            "SELECT value FROM settings WHERE category = $1 AND key = $2",
            category,
            key,
        )
        return row["value"] if row is not None else None
