"""
Background processor: ingestion queue, detection sweep and retention cleanup.

The processor owns the only concurrency lifecycle of the engine. It runs
three asyncio tasks that share one stop event:

    - consumer: drains the ingestion queue one reading at a time
    - detection: runs the fleet-wide spike sweep on a fixed interval
    - cleanup: deletes expired rows shortly after start, then on an interval

Every processed reading is evaluated twice: once against the warning and
critical thresholds, then for spikes in the drive's trailing window. The
fleet sweep catches drives whose readings bypassed the processor.

Backpressure:
    ``enqueue()`` never blocks on a full queue and never drops a reading.
    When the queue is saturated the reading is evaluated inline, in the
    caller's task, before ``enqueue()`` returns. Readings on the queued path
    are evaluated in submission order; inline readings may overtake them.

Shutdown:
    ``stop()`` lets the consumer finish the reading it is evaluating, up to
    ``stop_timeout_seconds``, then cancels it. Readings still queued are
    discarded.

Example:
    >>> processor = TemperatureProcessor(store, alert_engine, spike_detector, settings)
    >>> await processor.start()
    >>> await processor.enqueue("nas01", "WD-123", 47)
    >>> processor.get_status()
    {'running': True, 'queue_length': 0, 'queue_capacity': 100}
    >>> await processor.stop()
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from drivetemp.config.models import ProcessorConfig
from drivetemp.config.settings import load_thresholds
from drivetemp.detection.manager import AlertEngine
from drivetemp.detection.spikes import SpikeDetector
from drivetemp.interfaces.settings_provider import SettingsProvider
from drivetemp.interfaces.temperature_store import TemperatureStore
from drivetemp.models.alerts import TemperatureAlert, TemperatureSpike
from drivetemp.models.readings import TemperatureReading

logger = structlog.get_logger(__name__)

AlertSink = Callable[[TemperatureAlert], Awaitable[Any]]


class TemperatureProcessor:
    """
    Drives alert evaluation, spike sweeps and retention cleanup.

    Attributes:
        store: Reading, spike and alert store.
        alert_engine: Evaluates readings and creates alerts.
        spike_detector: Per-drive and fleet-wide spike detection.
        settings: Runtime settings source (spike and retention settings).
        config: Queue capacity, timer intervals and stop grace period.
        alert_sink: Optional coroutine receiving every raised alert.
    """

    def __init__(
        self,
        store: TemperatureStore,
        alert_engine: AlertEngine,
        spike_detector: SpikeDetector,
        settings: SettingsProvider,
        config: Optional[ProcessorConfig] = None,
        alert_sink: Optional[AlertSink] = None,
    ) -> None:
        self.store = store
        self.alert_engine = alert_engine
        self.spike_detector = spike_detector
        self.settings = settings
        self.config = config or ProcessorConfig()
        self.alert_sink = alert_sink

        self._queue: "asyncio.Queue[TemperatureReading]" = asyncio.Queue(
            maxsize=self.config.queue_capacity
        )
        self._stop_event = asyncio.Event()
        self._consumer: Optional[asyncio.Task] = None
        self._tasks: List[asyncio.Task] = []
        self._processing = False
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if the background tasks are running."""
        return self._running

    async def start(self) -> None:
        """Start the consumer, detection and cleanup tasks. No-op if running."""
        if self._running:
            logger.warning("processor_already_running")
            return

        self._stop_event = asyncio.Event()
        self._consumer = asyncio.create_task(self._consume(), name="temperature-consumer")
        self._tasks = [
            self._consumer,
            asyncio.create_task(
                self._periodic(
                    "spike_detection",
                    self.config.detection_interval_seconds,
                    self.config.detection_interval_seconds,
                    self.run_spike_detection,
                ),
                name="spike-detection",
            ),
            asyncio.create_task(
                self._periodic(
                    "retention_cleanup",
                    self.config.cleanup_interval_seconds,
                    self.config.initial_cleanup_delay_seconds,
                    self.run_cleanup,
                ),
                name="retention-cleanup",
            ),
        ]
        self._running = True

        logger.info(
            "processor_started",
            queue_capacity=self.config.queue_capacity,
            detection_interval_seconds=self.config.detection_interval_seconds,
            cleanup_interval_seconds=self.config.cleanup_interval_seconds,
        )

    async def stop(self) -> None:
        """
        Stop every task and discard readings still queued.

        A reading already being evaluated is allowed to finish within
        ``stop_timeout_seconds``. Safe to call more than once and before
        ``start()``.
        """
        if not self._running:
            return

        self._stop_event.set()
        for task in self._tasks:
            if task is not self._consumer:
                task.cancel()

        consumer = self._consumer
        if consumer is not None and not consumer.done():
            if self._processing:
                await asyncio.wait({consumer}, timeout=self.config.stop_timeout_seconds)
                if not consumer.done():
                    logger.warning(
                        "consumer_stop_timeout",
                        stop_timeout_seconds=self.config.stop_timeout_seconds,
                    )
            consumer.cancel()

        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._consumer = None

        discarded = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            discarded += 1

        self._running = False
        logger.info("processor_stopped", discarded_readings=discarded)

    async def enqueue(
        self,
        hostname: str,
        serial_number: str,
        temperature: int,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """
        Submit a reading for evaluation.

        Returns:
            bool: True if the reading was queued, False if the queue was full
                and the reading was evaluated inline.
        """
        reading = TemperatureReading(
            hostname=hostname,
            serial_number=serial_number,
            temperature=temperature,
            timestamp=timestamp or datetime.utcnow(),
        )
        try:
            self._queue.put_nowait(reading)
            return True
        except asyncio.QueueFull:
            logger.warning(
                "queue_full_inline_evaluation",
                hostname=hostname,
                serial_number=serial_number,
                queue_capacity=self.config.queue_capacity,
            )

        await self.process_reading(reading)
        return False

    async def process_reading(self, reading: TemperatureReading) -> List[TemperatureAlert]:
        """
        Store a reading, then evaluate it for threshold, recovery and spike alerts.

        A failure to store the reading is logged; the evaluation still runs.
        Spike detection runs after the threshold check with the current spike
        settings. A spike detection failure is logged and does not affect the
        threshold alert already raised.

        Returns:
            List[TemperatureAlert]: Alerts raised for this reading.
        """
        try:
            await self.store.insert_reading(reading)
        except Exception as e:
            logger.error(
                "reading_persist_failed",
                hostname=reading.hostname,
                serial_number=reading.serial_number,
                error=str(e),
            )

        alerts: List[TemperatureAlert] = []
        alert = await self.alert_engine.check_temperature_and_alert(
            reading.hostname,
            reading.serial_number,
            reading.temperature,
            reading.timestamp,
        )
        if alert is not None:
            alerts.append(alert)
            await self._deliver(alert)

        try:
            thresholds = await load_thresholds(self.settings)
            spikes = await self.spike_detector.detect_spikes(
                reading.hostname,
                reading.serial_number,
                thresholds.spike_window_minutes,
                thresholds.spike_threshold,
                reading.timestamp,
            )
        except Exception as e:
            logger.error(
                "spike_detection_failed",
                hostname=reading.hostname,
                serial_number=reading.serial_number,
                error=str(e),
            )
            return alerts

        alerts.extend(await self._raise_spike_alerts(spikes, reading.timestamp))
        return alerts

    async def run_spike_detection(
        self, now: Optional[datetime] = None
    ) -> List[TemperatureAlert]:
        """
        Sweep every drive for spikes and raise a spike alert for each new one.

        Returns:
            List[TemperatureAlert]: Spike alerts raised by this sweep.
        """
        spikes = await self.spike_detector.detect_all_drives(now)
        return await self._raise_spike_alerts(spikes, now)

    async def run_cleanup(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Delete readings, spikes and alerts older than their retention windows.

        Readings and spikes use the temperature retention; alerts use the
        alert retention. Rows exactly at the cutoff are kept.

        Returns:
            Dict[str, int]: Deleted row counts by table.
        """
        now = now or datetime.utcnow()
        thresholds = await load_thresholds(self.settings)

        history_cutoff = now - timedelta(days=thresholds.temperature_retention_days)
        alert_cutoff = now - timedelta(days=thresholds.alert_retention_days)

        deleted = {
            "readings": await self.store.delete_readings_before(history_cutoff),
            "spikes": await self.store.delete_spikes_before(history_cutoff),
            "alerts": await self.store.delete_alerts_before(alert_cutoff),
        }

        logger.info(
            "retention_cleanup_completed",
            temperature_retention_days=thresholds.temperature_retention_days,
            alert_retention_days=thresholds.alert_retention_days,
            **deleted,
        )
        return deleted

    def get_status(self) -> Dict[str, Any]:
        """Running flag and queue depth/capacity."""
        return {
            "running": self._running,
            "queue_length": self._queue.qsize(),
            "queue_capacity": self.config.queue_capacity,
        }

    async def _raise_spike_alerts(
        self, spikes: List[TemperatureSpike], now: Optional[datetime]
    ) -> List[TemperatureAlert]:
        alerts: List[TemperatureAlert] = []
        for spike in spikes:
            try:
                alert = await self.alert_engine.create_spike_alert(spike, now)
            except Exception as e:
                logger.error(
                    "spike_alert_failed",
                    spike_id=spike.id,
                    hostname=spike.hostname,
                    serial_number=spike.serial_number,
                    error=str(e),
                )
                continue
            if alert is not None:
                alerts.append(alert)
                await self._deliver(alert)
        return alerts

    async def _deliver(self, alert: TemperatureAlert) -> None:
        if self.alert_sink is None:
            return
        try:
            await self.alert_sink(alert)
        except Exception as e:
            logger.error(
                "alert_delivery_failed",
                alert_id=alert.id,
                alert_type=alert.alert_type.value,
                error=str(e),
            )

    async def _consume(self) -> None:
        logger.debug("consumer_started")
        while not self._stop_event.is_set():
            reading = await self._queue.get()
            self._processing = True
            try:
                await self.process_reading(reading)
            except Exception as e:
                logger.error(
                    "reading_processing_failed",
                    hostname=reading.hostname,
                    serial_number=reading.serial_number,
                    error=str(e),
                )
            finally:
                self._processing = False
                self._queue.task_done()

    async def _periodic(
        self,
        name: str,
        interval: float,
        initial_delay: float,
        action: Callable[[], Awaitable[Any]],
    ) -> None:
        delay = initial_delay
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await action()
            except Exception as e:
                logger.error(f"{name}_failed", error=str(e))
            delay = interval
