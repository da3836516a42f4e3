"""
Abstract interfaces for the temperature monitor.

This module defines the collaborator contracts the engine depends on.

Interfaces:
    TemperatureStore: Persistence of readings, spikes and alerts
    SettingsProvider: Runtime settings by (category, key)
    DriveInfoLookup: Best-effort device metadata

Example:
    >>> from drivetemp.interfaces import TemperatureStore, SettingsProvider
"""

from drivetemp.interfaces.drive_info import DriveInfoLookup, resolve_drive_info
from drivetemp.interfaces.settings_provider import SettingsProvider
from drivetemp.interfaces.temperature_store import (
    AlertNotFoundError,
    DriveKey,
    RecordNotFoundError,
    SpikeNotFoundError,
    StoreConnectionError,
    StoreOperationError,
    TemperatureStore,
    TemperatureStoreError,
)

__all__: list[str] = [
    "AlertNotFoundError",
    "DriveInfoLookup",
    "DriveKey",
    "RecordNotFoundError",
    "SettingsProvider",
    "SpikeNotFoundError",
    "StoreConnectionError",
    "StoreOperationError",
    "TemperatureStore",
    "TemperatureStoreError",
    "resolve_drive_info",
]
