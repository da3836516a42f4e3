"""
Async Redis client for reading intake and alert hand-off.

The engine does not deliver notifications itself. Alerts it raises are
published on a pub/sub channel for the notification dispatcher, and
readings from the ingest path arrive on another channel.

Pub/Sub channels:
    - ``updates:temperature``: incoming readings
      (``{"hostname", "serial_number", "temperature"}``)
    - ``updates:temperature_alerts``: raised alerts (TemperatureAlert JSON)

Example:
    >>> from drivetemp.config.models import RedisConnectionConfig
    >>> client = RedisClient(RedisConnectionConfig(url="redis://localhost:6379"))
    >>> await client.connect()
    >>> await client.publish_alert(alert)
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import structlog
from redis.asyncio import ConnectionPool, Redis
from redis.asyncio.client import PubSub
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from drivetemp.config.models import RedisConnectionConfig
from drivetemp.models.alerts import TemperatureAlert

logger = structlog.get_logger(__name__)


class RedisClientError(Exception):
    """Any failure of the reading or alert pub/sub traffic."""


class RedisConnectionException(RedisClientError):
    """Redis is unreachable or the client was never connected."""


class RedisOperationError(RedisClientError):
    """A publish or subscribe command failed."""


class RedisClient:
    """
    Async Redis client for the temperature engine's pub/sub traffic.

    Attributes:
        config: URL, db and pool limits.
        alerts_channel: Channel alerts are published on.
        _pool: Pool shared by publish and pub/sub connections.
        _client: Client bound to the pool, None until connected.
        _connected: Set after the first successful PING.
    """

    CHANNEL_READINGS = "updates:temperature"
    CHANNEL_ALERTS = "updates:temperature_alerts"

    def __init__(
        self,
        config: RedisConnectionConfig,
        alerts_channel: Optional[str] = None,
    ) -> None:
        self.config = config
        self.alerts_channel = alerts_channel or self.CHANNEL_ALERTS
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None  # type: ignore[type-arg]
        self._connected: bool = False

        logger.info(
            "redis_client_created",
            url=config.url,
            db=config.db,
            max_connections=config.max_connections,
        )

    @property
    def is_connected(self) -> bool:
        """Check if the client is connected to Redis."""
        return self._connected and self._client is not None

    async def connect(self) -> None:
        """
        Open the pool and verify it with a PING.

        Raises:
            RedisConnectionException: If Redis does not answer.
        """
        if self._connected:
            logger.warning("redis_connect_skipped", reason="already connected")
            return

        try:
            self._pool = ConnectionPool.from_url(
                self.config.url,
                db=self.config.db,
                max_connections=self.config.max_connections,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_timeout,
                decode_responses=True,
            )
            self._client = Redis(connection_pool=self._pool)

            await self._client.ping()
            self._connected = True

            logger.info("redis_connected", url=self.config.url, db=self.config.db)

        except (RedisConnectionError, RedisTimeoutError, OSError) as e:
            self._connected = False
            logger.error("redis_connection_failed", url=self.config.url, error=str(e))
            raise RedisConnectionException(
                f"Redis at {self.config.url} is unreachable: {e}"
            ) from e

    async def disconnect(self) -> None:
        """Close Redis connection and pool. Safe to call multiple times."""
        if self._client is not None:
            try:
                await self._client.aclose()
            except RedisError as e:
                logger.warning("redis_close_error", error=str(e))
            finally:
                self._client = None

        if self._pool is not None:
            try:
                await self._pool.aclose()
            except Exception as e:
                logger.warning("redis_pool_close_error", error=str(e))
            finally:
                self._pool = None

        self._connected = False
        logger.info("redis_disconnected")

    async def ping(self) -> bool:
        """Return True if Redis responds to PING."""
        if not self._client:
            return False

        try:
            await self._client.ping()
            return True
        except RedisError as e:
            logger.warning("redis_ping_failed", error=str(e))
            return False

    def _require_connection(self) -> Redis:  # type: ignore[type-arg]
        """
        Return the connected client.

        Raises:
            RedisConnectionException: Before connect() or after disconnect().
        """
        if not self._connected or self._client is None:
            raise RedisConnectionException("connect() has not been called")
        return self._client

    async def publish_alert(self, alert: TemperatureAlert) -> int:
        """
        Publish an alert for the notification dispatcher.

        Returns:
            int: How many subscribers got the alert; 0 means no dispatcher listens.

        Raises:
            RedisConnectionException: If not connected.
            RedisOperationError: If the publish fails.
        """
        client = self._require_connection()

        try:
            count = await client.publish(self.alerts_channel, alert.model_dump_json())

            logger.debug(
                "alert_published",
                alert_id=alert.id,
                alert_type=alert.alert_type.value,
                subscribers=count,
            )
            return int(count)

        except RedisError as e:
            logger.error("alert_publish_failed", alert_id=alert.id, error=str(e))
            raise RedisOperationError(f"Failed to publish alert: {e}") from e

    @asynccontextmanager
    async def subscribe(
        self, channels: List[str]
    ) -> AsyncIterator[AsyncIterator[Dict[str, Any]]]:
        """
        Listen on pub/sub channels for JSON messages.

        Yields an async iterator of ``{"channel", "data"}`` dicts with the
        JSON payload decoded. Undecodable messages are logged and skipped.

        Example:
            >>> async with client.subscribe(["updates:temperature"]) as messages:
            ...     async for message in messages:
            ...         print(message["data"])
        """
        client = self._require_connection()
        pubsub: PubSub = client.pubsub()

        try:
            await pubsub.subscribe(*channels)
            logger.info("pubsub_subscribed", channels=channels)

            async def message_iterator() -> AsyncIterator[Dict[str, Any]]:
                async for message in pubsub.listen():
                    if message["type"] != "message":
                        continue
                    try:
                        data = json.loads(message["data"])
                    except json.JSONDecodeError as e:
                        logger.warning(
                            "pubsub_message_not_json",
                            channel=message["channel"],
                            error=str(e),
                        )
                        continue
                    yield {"channel": message["channel"], "data": data}

            yield message_iterator()

        finally:
            await pubsub.unsubscribe(*channels)
            await pubsub.aclose()
            logger.info("pubsub_unsubscribed", channels=channels)
