"""
Temperature Engine Service entry point.

Responsibilities:
- Subscribing to Redis pub/sub for temperature readings
- Persisting readings and evaluating threshold/recovery alerts
- Sweeping all drives for temperature spikes every 15 minutes
- Deleting expired history once a day
- Publishing raised alerts for the notification dispatcher

Usage:
    python services/temperature-engine/main.py

Environment Variables:
    CONFIG_PATH: Directory with engine.yaml and settings.yaml (default: config)
    DATABASE_URL: Drive-health database DSN
    REDIS_URL: Pub/sub broker (default: redis://localhost:6379)
    LOG_LEVEL: Overrides engine.logging.level
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

# Run from a checkout without installing the package
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from drivetemp import __version__
from drivetemp.models.alerts import TemperatureAlert
from drivetemp.monitor import TemperatureMonitor
from drivetemp.services import ServiceRunner, setup_logging
from drivetemp.storage.redis_client import RedisClientError

logger = structlog.get_logger(__name__)


class TemperatureEngineService(ServiceRunner):
    """
    Temperature anomaly detection and alerting service.

    Attributes:
        monitor: Engine facade owning the processor and its timers.
    """

    def __init__(self, config_path: str = "config") -> None:
        """Initialize the temperature engine service."""
        super().__init__(config_path)
        self.monitor: Optional[TemperatureMonitor] = None

    @property
    def service_name(self) -> str:
        """Return service name."""
        return "temperature-engine"

    async def _initialize(self) -> None:
        """Build the monitor and start its processor."""
        if self.config is None or self.store is None or self.settings is None:
            raise RuntimeError("temperature engine used before setup")

        self.monitor = TemperatureMonitor(
            self.store,
            self.settings,
            drive_info=self.drive_info,
            processor_config=self.config.engine.processor,
            alert_sink=self._publish_alert,
        )
        await self.monitor.start()

        self.logger.info(
            "temperature_engine_initialized",
            storage_backend=self.config.engine.storage_backend.value,
            settings_source=self.config.engine.settings_source.value,
            readings_channel=self.config.engine.channels.readings,
        )

    async def _publish_alert(self, alert: TemperatureAlert) -> None:
        if self.redis_client is None:
            return
        try:
            await self.redis_client.publish_alert(alert)
        except RedisClientError as e:
            self.logger.error("alert_publish_error", alert_id=alert.id, error=str(e))

    async def _run(self) -> None:
        """Main service loop - consume readings from pub/sub."""
        if self.config is None or self.redis_client is None or self.monitor is None:
            raise RuntimeError("temperature engine used before setup")

        channel = self.config.engine.channels.readings
        try:
            async with self.redis_client.subscribe([channel]) as messages:
                async for message in messages:
                    if self.shutdown_event.is_set():
                        break

                    try:
                        await self._handle_reading(message["data"])
                    except Exception as e:
                        self.logger.error("reading_message_error", error=str(e))

        except asyncio.CancelledError:
            self.logger.debug("reading_subscription_cancelled")

    async def _handle_reading(self, data: Dict[str, Any]) -> None:
        if self.monitor is None:
            return

        try:
            hostname = str(data["hostname"])
            serial_number = str(data["serial_number"])
            temperature = int(data["temperature"])
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning("reading_message_invalid", data=data, error=str(e))
            return

        await self.monitor.ingest(hostname, serial_number, temperature)

    async def _cleanup(self) -> None:
        """Stop the processor."""
        if self.monitor is not None:
            self.logger.info("cleanup_state", **self.monitor.get_status())
            await self.monitor.stop()


async def main() -> None:
    """Main entry point."""
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    config_path = os.getenv("CONFIG_PATH", "config")

    logger.info(
        "temperature_engine_service_starting",
        version=__version__,
        config_path=config_path,
    )

    service = TemperatureEngineService(config_path=config_path)

    try:
        await service.run()
    except Exception as e:
        logger.error("service_failed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
