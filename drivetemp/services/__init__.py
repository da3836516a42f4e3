"""
Service runtime shared by the long-running entry points.

Provides structlog setup and the ServiceRunner base class, which loads the
configuration, connects the storage backends, installs signal handlers and
runs the service-specific loop until shutdown.

Subclasses override:
    - service_name: Name used in log context
    - _initialize(): Build components after connections are up
    - _run(): Main loop; should return once ``shutdown_event`` is set
    - _cleanup(): Service-specific teardown before disconnecting

Example:
    >>> class MyService(ServiceRunner):
    ...     @property
    ...     def service_name(self) -> str:
    ...         return "my-service"
    ...
    ...     async def _run(self) -> None:
    ...         await self.shutdown_event.wait()
    >>> await MyService("config").run()
"""

import asyncio
import logging
import signal
from typing import Any, Optional

import structlog

from drivetemp.config.loader import load_config
from drivetemp.config.models import AppConfig, LogFormat, SettingsSource, StorageBackend
from drivetemp.config.settings import StaticSettingsProvider
from drivetemp.interfaces.drive_info import DriveInfoLookup
from drivetemp.interfaces.settings_provider import SettingsProvider
from drivetemp.interfaces.temperature_store import TemperatureStore
from drivetemp.storage.memory_store import MemoryTemperatureStore
from drivetemp.storage.postgres_client import PostgresTemperatureStore
from drivetemp.storage.postgres_settings import PostgresSettingsProvider
from drivetemp.storage.redis_client import RedisClient

logger = structlog.get_logger(__name__)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """
    Configure structlog over the standard logging backend.

    Args:
        level: Log level name.
        fmt: ``json`` for JSON lines, ``text`` for the console renderer.
    """
    renderer: Any
    if fmt == LogFormat.TEXT.value:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )


class ServiceRunner:
    """
    Base class for long-running services.

    Attributes:
        config_path: Directory holding the YAML configuration.
        config: Loaded configuration (after ``run()`` starts).
        store: Temperature store for the configured backend.
        settings: Runtime settings provider for the configured source.
        drive_info: Drive metadata lookup (the store itself).
        postgres_client: PostgreSQL store when that backend is used.
        redis_client: Connected Redis client.
        shutdown_event: Set on SIGINT/SIGTERM or by ``request_shutdown()``.
    """

    def __init__(self, config_path: str = "config") -> None:
        self.config_path = config_path
        self.config: Optional[AppConfig] = None
        self.store: Optional[TemperatureStore] = None
        self.settings: Optional[SettingsProvider] = None
        self.drive_info: Optional[DriveInfoLookup] = None
        self.postgres_client: Optional[PostgresTemperatureStore] = None
        self.redis_client: Optional[RedisClient] = None
        self.shutdown_event = asyncio.Event()
        self.logger = structlog.get_logger(self.service_name)

    @property
    def service_name(self) -> str:
        """Return service name."""
        return "service"

    def request_shutdown(self) -> None:
        """Ask the service to stop."""
        if not self.shutdown_event.is_set():
            self.logger.info("shutdown_requested", service=self.service_name)
            self.shutdown_event.set()

    async def run(self) -> None:
        """
        Run the service until shutdown.

        Raises:
            Exception: Whatever setup or the main loop raised; connections
                are closed before it propagates.
        """
        try:
            await self._setup()
            await self._initialize()
            self._install_signal_handlers()

            self.logger.info("service_started", service=self.service_name)

            run_task = asyncio.create_task(self._run())
            stop_task = asyncio.create_task(self.shutdown_event.wait())
            await asyncio.wait({run_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)

            for task in (run_task, stop_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(run_task, stop_task, return_exceptions=True)

            if not run_task.cancelled() and run_task.exception() is not None:
                raise run_task.exception()  # type: ignore[misc]

        finally:
            try:
                await self._cleanup()
            finally:
                await self._teardown()
            self.logger.info("service_stopped", service=self.service_name)

    async def _setup(self) -> None:
        self.config = load_config(self.config_path)
        setup_logging(self.config.log_level.value, self.config.engine.logging.format.value)

        engine = self.config.engine
        if engine.storage_backend == StorageBackend.POSTGRES:
            self.postgres_client = PostgresTemperatureStore(self.config.postgres)
            await self.postgres_client.connect()
            self.store = self.postgres_client
            self.drive_info = self.postgres_client
        else:
            memory_store = MemoryTemperatureStore()
            self.store = memory_store
            self.drive_info = memory_store

        if engine.settings_source == SettingsSource.POSTGRES and self.postgres_client is not None:
            self.settings = PostgresSettingsProvider(self.postgres_client)
        else:
            if engine.settings_source == SettingsSource.POSTGRES:
                self.logger.warning("postgres_settings_unavailable", fallback="static")
            self.settings = StaticSettingsProvider(self.config.settings)

        self.redis_client = RedisClient(self.config.redis, alerts_channel=engine.channels.alerts)
        await self.redis_client.connect()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except (NotImplementedError, RuntimeError):
                self.logger.debug("signal_handler_unavailable", signal=sig.name)

    async def _teardown(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.disconnect()
        if self.postgres_client is not None:
            await self.postgres_client.disconnect()

    async def _initialize(self) -> None:
        """Build service components."""

    async def _run(self) -> None:
        """Main service loop."""
        await self.shutdown_event.wait()

    async def _cleanup(self) -> None:
        """Service-specific cleanup."""


__all__: list[str] = ["ServiceRunner", "setup_logging"]
