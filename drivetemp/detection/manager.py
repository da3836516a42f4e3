"""
Alert engine for threshold, recovery and spike alerts.

This module provides the AlertEngine class, which turns temperature readings
into alerts. The drive state (normal, warning, critical) is derived fresh on
every evaluation from the reading and the current thresholds; only the time
of the last alert per (drive, alert type) is cached.

Key Features:
    - Critical is checked before warning; alerting can be disabled globally
    - Cooldown suppresses repeat alerts of the same type for a drive
    - One recovery alert when an outstanding warning/critical clears,
      decided under a per-drive claim, after which the drive's cooldown
      entries are dropped
    - Spike alerts from recorded spikes
    - Alert queries, acknowledgement and deletion

Example:
    >>> engine = AlertEngine(store, settings)
    >>> alert = await engine.check_temperature_and_alert("nas01", "WD-123", 57)
    >>> if alert:
    ...     print(alert.alert_type, alert.message)
"""

from datetime import datetime, timedelta
from typing import List, Optional

import structlog

from drivetemp.config.settings import load_thresholds
from drivetemp.detection.cooldown import CooldownCache, build_cooldown_key
from drivetemp.interfaces.drive_info import DriveInfoLookup, resolve_drive_info
from drivetemp.interfaces.settings_provider import SettingsProvider
from drivetemp.interfaces.temperature_store import AlertNotFoundError, TemperatureStore
from drivetemp.models.alerts import (
    AlertFilter,
    AlertSummary,
    AlertType,
    DriveAlertStatus,
    TemperatureAlert,
    TemperatureSpike,
)
from drivetemp.models.stats import TemperatureThresholds

logger = structlog.get_logger(__name__)

ACTIVE_ALERTS_LIMIT = 100

_STATUS_ORDER = (
    AlertType.CRITICAL,
    AlertType.WARNING,
    AlertType.SPIKE,
    AlertType.RECOVERY,
)


def format_duration(delta: timedelta) -> str:
    """
    Render a spike duration rounded to whole minutes.

    Example:
        >>> format_duration(timedelta(minutes=90, seconds=20))
        '1h30m'
        >>> format_duration(timedelta(seconds=40))
        '1m'
    """
    minutes = int((delta.total_seconds() + 30) // 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h{minutes}m"
    return f"{minutes}m"


def spike_alert_message(spike: TemperatureSpike) -> str:
    """Human-readable message for a spike alert."""
    return (
        f"Temperature spike detected: {spike.start_temp}°C → {spike.end_temp}°C "
        f"({spike.signed_change:+d}°C) in "
        f"{format_duration(spike.end_time - spike.start_time)}"
    )


class AlertEngine:
    """
    Evaluates readings against thresholds and manages alert records.

    Attributes:
        store: Alert store.
        settings: Runtime settings source, read on every evaluation.
        cooldowns: Last-alert cache shared by every evaluation path.
        drive_info: Optional metadata lookup used to decorate listings.
    """

    def __init__(
        self,
        store: TemperatureStore,
        settings: SettingsProvider,
        cooldowns: Optional[CooldownCache] = None,
        drive_info: Optional[DriveInfoLookup] = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.cooldowns = cooldowns if cooldowns is not None else CooldownCache()
        self.drive_info = drive_info

        logger.info("alert_engine_initialized")

    async def check_temperature_and_alert(
        self,
        hostname: str,
        serial_number: str,
        temperature: int,
        now: Optional[datetime] = None,
    ) -> Optional[TemperatureAlert]:
        """
        Evaluate one reading and raise an alert if the drive state calls for it.

        Args:
            hostname: Host name.
            serial_number: Drive serial.
            temperature: Reading in °C.
            now: Evaluation time (defaults to utcnow).

        Returns:
            Optional[TemperatureAlert]: The stored alert, or None when no alert
                is due (normal, suppressed or disabled).

        Raises:
            TemperatureStoreError: If the alert could not be stored.
        """
        now = now or datetime.utcnow()
        thresholds = await load_thresholds(self.settings)

        if not thresholds.alerts_enabled:
            return None

        for alert_type, threshold in (
            (AlertType.CRITICAL, thresholds.critical),
            (AlertType.WARNING, thresholds.warning),
        ):
            if temperature >= threshold:
                return await self._raise_threshold_alert(
                    hostname, serial_number, alert_type, temperature, threshold, thresholds, now
                )
        return await self._check_recovery(
            hostname, serial_number, temperature, thresholds, now
        )

    async def test_alert(
        self,
        hostname: str,
        serial_number: str,
        temperature: int,
        now: Optional[datetime] = None,
    ) -> Optional[TemperatureAlert]:
        """
        Evaluate a caller-supplied temperature through the production path.

        The disabled flag and cooldown apply exactly as for real readings.
        """
        logger.info(
            "test_alert_requested",
            hostname=hostname,
            serial_number=serial_number,
            temperature=temperature,
        )
        return await self.check_temperature_and_alert(
            hostname, serial_number, temperature, now
        )

    async def _raise_threshold_alert(
        self,
        hostname: str,
        serial_number: str,
        alert_type: AlertType,
        temperature: int,
        threshold: int,
        thresholds: TemperatureThresholds,
        now: datetime,
    ) -> Optional[TemperatureAlert]:
        key = build_cooldown_key(hostname, serial_number, alert_type)
        acquired, previous = self.cooldowns.try_acquire(
            key, now, timedelta(minutes=thresholds.cooldown_minutes)
        )
        if not acquired:
            logger.debug(
                "alert_suppressed",
                hostname=hostname,
                serial_number=serial_number,
                alert_type=alert_type.value,
                temperature=temperature,
                last_alert=previous.isoformat() if previous else None,
            )
            return None

        alert = TemperatureAlert(
            hostname=hostname,
            serial_number=serial_number,
            alert_type=alert_type,
            temperature=temperature,
            threshold=threshold,
            message=(
                f"Temperature {temperature}°C exceeds {alert_type.value} "
                f"threshold ({threshold}°C)"
            ),
            created_at=now,
        )
        try:
            stored = await self.store.insert_alert(alert)
        except BaseException:
            # CancelledError included
            self.cooldowns.release(key, now, previous)
            raise

        logger.info(
            "alert_created",
            alert_id=stored.id,
            hostname=hostname,
            serial_number=serial_number,
            alert_type=alert_type.value,
            temperature=temperature,
            threshold=threshold,
        )
        return stored

    async def _check_recovery(
        self,
        hostname: str,
        serial_number: str,
        temperature: int,
        thresholds: TemperatureThresholds,
        now: datetime,
    ) -> Optional[TemperatureAlert]:
        if not thresholds.recovery_enabled:
            return None

        if not self.cooldowns.try_claim_recovery(hostname, serial_number):
            logger.debug(
                "recovery_check_in_progress",
                hostname=hostname,
                serial_number=serial_number,
            )
            return None
        try:
            return await self._write_recovery(
                hostname, serial_number, temperature, thresholds, now
            )
        finally:
            self.cooldowns.release_recovery(hostname, serial_number)

    async def _write_recovery(
        self,
        hostname: str,
        serial_number: str,
        temperature: int,
        thresholds: TemperatureThresholds,
        now: datetime,
    ) -> Optional[TemperatureAlert]:
        latest = await self.store.get_latest_state_alert(hostname, serial_number)
        if latest is None or latest.acknowledged or not latest.alert_type.is_threshold:
            return None

        alert = TemperatureAlert(
            hostname=hostname,
            serial_number=serial_number,
            alert_type=AlertType.RECOVERY,
            temperature=temperature,
            threshold=thresholds.warning,
            message=(
                f"Temperature recovered to {temperature}°C "
                f"(below warning threshold {thresholds.warning}°C)"
            ),
            created_at=now,
        )
        stored = await self.store.insert_alert(alert)
        self.cooldowns.clear_drive(hostname, serial_number)

        logger.info(
            "recovery_alert_created",
            alert_id=stored.id,
            hostname=hostname,
            serial_number=serial_number,
            temperature=temperature,
            previous_alert_type=latest.alert_type.value,
        )
        return stored

    async def create_spike_alert(
        self, spike: TemperatureSpike, now: Optional[datetime] = None
    ) -> Optional[TemperatureAlert]:
        """
        Raise a spike alert for a recorded spike.

        Returns:
            Optional[TemperatureAlert]: The stored alert, or None if alerting
                is disabled.
        """
        thresholds = await load_thresholds(self.settings)
        if not thresholds.alerts_enabled:
            return None

        stored = await self.store.insert_alert(
            TemperatureAlert(
                hostname=spike.hostname,
                serial_number=spike.serial_number,
                alert_type=AlertType.SPIKE,
                temperature=spike.end_temp,
                message=spike_alert_message(spike),
                created_at=now or datetime.utcnow(),
            )
        )
        logger.info(
            "spike_alert_created",
            alert_id=stored.id,
            hostname=spike.hostname,
            serial_number=spike.serial_number,
            magnitude=spike.magnitude,
        )
        return stored

    async def _decorate(self, alerts: List[TemperatureAlert]) -> List[TemperatureAlert]:
        if self.drive_info is None:
            return alerts
        decorated = []
        for alert in alerts:
            info = await resolve_drive_info(
                self.drive_info, alert.hostname, alert.serial_number
            )
            decorated.append(
                alert.model_copy(
                    update={"device_name": info.device_name, "model": info.model}
                )
            )
        return decorated

    async def get_alerts(
        self, alert_filter: Optional[AlertFilter] = None
    ) -> List[TemperatureAlert]:
        """Alerts matching the filter, newest first."""
        alerts = await self.store.get_alerts(alert_filter or AlertFilter())
        return await self._decorate(alerts)

    async def get_active_alerts(self) -> List[TemperatureAlert]:
        """Newest unacknowledged alerts."""
        return await self.get_alerts(
            AlertFilter(acknowledged=False, limit=ACTIVE_ALERTS_LIMIT)
        )

    async def get_alert(self, alert_id: int) -> TemperatureAlert:
        """
        Fetch one alert.

        Raises:
            AlertNotFoundError: If no alert has this id.
        """
        alert = await self.store.get_alert(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return (await self._decorate([alert]))[0]

    async def acknowledge_alert(
        self, alert_id: int, acknowledged_by: str, now: Optional[datetime] = None
    ) -> TemperatureAlert:
        """
        Mark an alert acknowledged.

        Raises:
            AlertNotFoundError: If no alert has this id.
        """
        alert = await self.store.acknowledge_alert(
            alert_id, acknowledged_by, now or datetime.utcnow()
        )
        logger.info("alert_acknowledged", alert_id=alert_id, acknowledged_by=acknowledged_by)
        return alert

    async def acknowledge_all_alerts(
        self, acknowledged_by: str, now: Optional[datetime] = None
    ) -> int:
        """Acknowledge every outstanding alert and return how many changed."""
        count = await self.store.acknowledge_all_alerts(
            acknowledged_by, now or datetime.utcnow()
        )
        logger.info("alerts_acknowledged", count=count, acknowledged_by=acknowledged_by)
        return count

    async def delete_alert(self, alert_id: int) -> None:
        """
        Delete an alert.

        Raises:
            AlertNotFoundError: If no alert has this id.
        """
        await self.store.delete_alert(alert_id)
        logger.info("alert_deleted", alert_id=alert_id)

    async def get_alert_summary(self, now: Optional[datetime] = None) -> AlertSummary:
        """Alert counts overall, by type and over the last day/week."""
        return await self.store.summarize_alerts(now or datetime.utcnow())

    async def get_drive_alert_status(
        self, hostname: str, serial_number: str
    ) -> DriveAlertStatus:
        """
        Most severe outstanding alert of a drive.

        Severity runs critical, warning, spike, recovery; within a type the
        newest alert wins. A drive with nothing outstanding is ``normal``.
        """
        for alert_type in _STATUS_ORDER:
            alerts = await self.store.get_alerts(
                AlertFilter(
                    hostname=hostname,
                    serial_number=serial_number,
                    alert_type=alert_type,
                    acknowledged=False,
                    limit=1,
                )
            )
            if alerts:
                return DriveAlertStatus(
                    hostname=hostname,
                    serial_number=serial_number,
                    status=alert_type.value,
                    alert=alerts[0],
                )
        return DriveAlertStatus(hostname=hostname, serial_number=serial_number)

    def reset_cooldowns(self) -> None:
        """Forget every cooldown entry."""
        self.cooldowns.reset()


def create_alert_engine(
    store: TemperatureStore,
    settings: SettingsProvider,
    drive_info: Optional[DriveInfoLookup] = None,
) -> AlertEngine:
    """
    Factory function to create an AlertEngine with its own cooldown cache.

    Example:
        >>> engine = create_alert_engine(store, settings, drive_info=store)
    """
    return AlertEngine(
        store=store,
        settings=settings,
        cooldowns=CooldownCache(),
        drive_info=drive_info,
    )
