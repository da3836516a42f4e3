"""
Settings provider backed by the PostgreSQL ``settings`` table.

Values are stored as text and converted on read; a value that does not
convert is reported as not found so the caller's fallback applies.
"""

from typing import Tuple

import structlog

from drivetemp.config.settings import coerce_bool, coerce_int
from drivetemp.interfaces.settings_provider import SettingsProvider
from drivetemp.storage.postgres_client import PostgresTemperatureStore

logger = structlog.get_logger(__name__)


class PostgresSettingsProvider(SettingsProvider):
    """
    Reads runtime settings through a connected PostgresTemperatureStore.

    Example:
        >>> provider = PostgresSettingsProvider(store)
        >>> await provider.get_int("temperature", "warning_threshold")
        (45, True)
    """

    def __init__(self, store: PostgresTemperatureStore) -> None:
        self.store = store

    async def get_int(self, category: str, key: str) -> Tuple[int, bool]:
        raw = await self.store.get_setting_value(category, key)
        value = coerce_int(raw)
        if value is None:
            if raw is not None:
                logger.warning("setting_not_an_integer", category=category, key=key, value=raw)
            return 0, False
        return value, True

    async def get_bool(self, category: str, key: str) -> Tuple[bool, bool]:
        raw = await self.store.get_setting_value(category, key)
        value = coerce_bool(raw)
        if value is None:
            if raw is not None:
                logger.warning("setting_not_a_boolean", category=category, key=key, value=raw)
            return False, False
        return value, True
