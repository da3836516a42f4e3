"""
Cooldown cache for alert suppression.

Remembers when an alert of a given type was last raised for a drive so
repeat alerts inside the cooldown window are suppressed. The cache is
process-local and starts empty, so after a restart at most one duplicate
alert per key can slip through inside a cooldown window.

The same lock also guards the per-drive recovery claim: only one
evaluation at a time may decide on and write a recovery alert for a drive.

Key Format:
    (hostname, serial_number, alert_type)

Example:
    >>> cache = CooldownCache()
    >>> key = build_cooldown_key("nas01", "WD-123", AlertType.CRITICAL)
    >>> now = datetime(2025, 1, 26, 12, 0, 0)
    >>> cache.try_acquire(key, now, timedelta(minutes=60))
    (True, None)
    >>> cache.try_acquire(key, now + timedelta(minutes=5), timedelta(minutes=60))[0]
    False
"""

import threading
from datetime import datetime, timedelta
from typing import Dict, Optional, Set, Tuple

import structlog

from drivetemp.models.alerts import AlertType

logger = structlog.get_logger(__name__)

CooldownKey = Tuple[str, str, str]


def build_cooldown_key(
    hostname: str, serial_number: str, alert_type: AlertType
) -> CooldownKey:
    """
    Build a cooldown key for a drive and alert type.

    Example:
        >>> build_cooldown_key("nas01", "WD-123", AlertType.WARNING)
        ('nas01', 'WD-123', 'warning')
    """
    return (hostname, serial_number, alert_type.value)


class CooldownCache:
    """
    Lock-protected map of cooldown key to last-alert time.

    The lock covers a single entry's read-modify-write and is never held
    while awaiting, so the cache can be shared by the queue consumer, the
    detection sweep and inline evaluations.

    Attributes:
        _last_alert: Mapping of cooldown key to the last alert time.
        _recovering: Drives with a recovery evaluation in flight.
        _lock: Guards both.
    """

    def __init__(self) -> None:
        self._last_alert: Dict[CooldownKey, datetime] = {}
        self._recovering: Set[Tuple[str, str]] = set()
        self._lock = threading.Lock()

        logger.debug("cooldown_cache_initialized")

    def try_acquire(
        self, key: CooldownKey, now: datetime, cooldown: timedelta
    ) -> Tuple[bool, Optional[datetime]]:
        """
        Reserve the key for a new alert unless it is cooling down.

        On success the entry is set to ``now`` before the alert is persisted.
        The previous value is returned so the caller can roll back with
        ``release()`` if persisting fails.

        Args:
            key: Cooldown key.
            now: Evaluation time.
            cooldown: Suppression window.

        Returns:
            Tuple[bool, Optional[datetime]]: Whether the key was acquired and
                the previous last-alert time.
        """
        with self._lock:
            previous = self._last_alert.get(key)
            if previous is not None and now - previous < cooldown:
                return False, previous
            self._last_alert[key] = now
            return True, previous

    def release(
        self, key: CooldownKey, acquired_at: datetime, previous: Optional[datetime]
    ) -> None:
        """
        Undo a reservation made by ``try_acquire()``.

        The entry is only restored if nobody re-acquired it in between.
        """
        with self._lock:
            if self._last_alert.get(key) != acquired_at:
                return
            if previous is None:
                del self._last_alert[key]
            else:
                self._last_alert[key] = previous

    def get(self, key: CooldownKey) -> Optional[datetime]:
        """Last alert time for a key, or None."""
        with self._lock:
            return self._last_alert.get(key)

    def try_claim_recovery(self, hostname: str, serial_number: str) -> bool:
        """
        Claim the recovery decision for a drive.

        Returns:
            bool: False if another evaluation of the drive holds the claim.
        """
        drive = (hostname, serial_number)
        with self._lock:
            if drive in self._recovering:
                return False
            self._recovering.add(drive)
            return True

    def release_recovery(self, hostname: str, serial_number: str) -> None:
        """Give up a claim taken with ``try_claim_recovery()``."""
        with self._lock:
            self._recovering.discard((hostname, serial_number))

    def clear_drive(self, hostname: str, serial_number: str) -> int:
        """
        Drop every cooldown entry of one drive.

        Returns:
            int: Number of entries removed.
        """
        with self._lock:
            keys = [
                k for k in self._last_alert if k[0] == hostname and k[1] == serial_number
            ]
            for key in keys:
                del self._last_alert[key]

        if keys:
            logger.debug(
                "cooldown_cleared",
                hostname=hostname,
                serial_number=serial_number,
                entries=len(keys),
            )
        return len(keys)

    def reset(self) -> None:
        """Drop every entry."""
        with self._lock:
            count = len(self._last_alert)
            self._last_alert.clear()

        logger.info("cooldown_cache_reset", entries=count)

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_alert)

    def __contains__(self, key: CooldownKey) -> bool:
        with self._lock:
            return key in self._last_alert
