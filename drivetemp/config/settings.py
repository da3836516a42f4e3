"""
Runtime settings: providers, fallbacks and threshold snapshots.

Thresholds and operational parameters can change at any time, so the
engine reads them through a SettingsProvider on every evaluation and never
caches the values. Each lookup has a hardcoded fallback used when the
setting is absent or the lookup fails.

Key Features:
    - StaticSettingsProvider: in-memory settings, mutable at runtime
    - load_thresholds(): fresh TemperatureThresholds snapshot with fallbacks
    - Lookup failures are logged and never propagate

Example:
    >>> provider = StaticSettingsProvider({"temperature": {"warning_threshold": 50}})
    >>> thresholds = await load_thresholds(provider)
    >>> thresholds.warning, thresholds.critical
    (50, 55)
"""

import threading
from typing import Any, Dict, Mapping, Optional, Tuple

import structlog

from drivetemp.interfaces.settings_provider import SettingsProvider
from drivetemp.models.stats import TemperatureThresholds

logger = structlog.get_logger(__name__)


# (category, key) -> fallback
DEFAULT_WARNING_THRESHOLD = ("temperature", "warning_threshold", 45)
DEFAULT_CRITICAL_THRESHOLD = ("temperature", "critical_threshold", 55)
DEFAULT_SPIKE_THRESHOLD = ("temperature", "spike_threshold", 10)
DEFAULT_SPIKE_WINDOW = ("temperature", "spike_window_minutes", 30)
DEFAULT_TEMPERATURE_RETENTION = ("temperature", "retention_days", 90)
DEFAULT_ALERTS_ENABLED = ("alerts", "enabled", True)
DEFAULT_COOLDOWN = ("alerts", "cooldown_minutes", 60)
DEFAULT_RECOVERY_ENABLED = ("alerts", "recovery_enabled", True)
DEFAULT_ALERT_RETENTION = ("system", "data_retention_days", 365)

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


def coerce_int(raw: Any) -> Optional[int]:
    """Convert a stored setting to int, None if it is not an integer."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            return None
    return None


def coerce_bool(raw: Any) -> Optional[bool]:
    """Convert a stored setting to bool, None if it is not a boolean."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int):
        return raw != 0
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    return None


class StaticSettingsProvider(SettingsProvider):
    """
    In-memory settings keyed by category, then key.

    Seeded from settings.yaml; ``set()`` changes a value at runtime and the
    next evaluation sees it.

    Example:
        >>> provider = StaticSettingsProvider()
        >>> provider.set("alerts", "enabled", False)
        >>> await provider.get_bool("alerts", "enabled")
        (False, True)
    """

    def __init__(self, values: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        self._lock = threading.Lock()
        self._values: Dict[str, Dict[str, Any]] = {
            category: dict(entries) for category, entries in (values or {}).items()
        }

    def set(self, category: str, key: str, value: Any) -> None:
        """Set or replace a setting."""
        with self._lock:
            self._values.setdefault(category, {})[key] = value

    def unset(self, category: str, key: str) -> None:
        """Remove a setting so lookups fall back to defaults."""
        with self._lock:
            self._values.get(category, {}).pop(key, None)

    def _raw(self, category: str, key: str) -> Any:
        with self._lock:
            return self._values.get(category, {}).get(key)

    async def get_int(self, category: str, key: str) -> Tuple[int, bool]:
        value = coerce_int(self._raw(category, key))
        if value is None:
            return 0, False
        return value, True

    async def get_bool(self, category: str, key: str) -> Tuple[bool, bool]:
        value = coerce_bool(self._raw(category, key))
        if value is None:
            return False, False
        return value, True


async def _int_setting(provider: SettingsProvider, category: str, key: str, default: int) -> int:
    try:
        value, found = await provider.get_int(category, key)
    except Exception as e:
        logger.warning(
            "setting_lookup_failed",
            category=category,
            key=key,
            fallback=default,
            error=str(e),
        )
        return default
    return value if found else default


async def _bool_setting(provider: SettingsProvider, category: str, key: str, default: bool) -> bool:
    try:
        value, found = await provider.get_bool(category, key)
    except Exception as e:
        logger.warning(
            "setting_lookup_failed",
            category=category,
            key=key,
            fallback=default,
            error=str(e),
        )
        return default
    return value if found else default


async def load_thresholds(provider: SettingsProvider) -> TemperatureThresholds:
    """
    Read a fresh snapshot of every runtime setting.

    Absent settings and failing lookups use the hardcoded fallbacks.

    Args:
        provider: The settings source.

    Returns:
        TemperatureThresholds: Current values.
    """
    return TemperatureThresholds(
        warning=await _int_setting(provider, *DEFAULT_WARNING_THRESHOLD),
        critical=await _int_setting(provider, *DEFAULT_CRITICAL_THRESHOLD),
        spike_threshold=await _int_setting(provider, *DEFAULT_SPIKE_THRESHOLD),
        spike_window_minutes=await _int_setting(provider, *DEFAULT_SPIKE_WINDOW),
        cooldown_minutes=await _int_setting(provider, *DEFAULT_COOLDOWN),
        alerts_enabled=await _bool_setting(provider, *DEFAULT_ALERTS_ENABLED),
        recovery_enabled=await _bool_setting(provider, *DEFAULT_RECOVERY_ENABLED),
        temperature_retention_days=await _int_setting(provider, *DEFAULT_TEMPERATURE_RETENTION),
        alert_retention_days=await _int_setting(provider, *DEFAULT_ALERT_RETENTION),
    )
