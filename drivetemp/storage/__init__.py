"""
Storage backends for the temperature monitor.

Components:
    postgres_client: PostgreSQL implementation of TemperatureStore
    postgres_settings: SettingsProvider over the settings table
    memory_store: Process-local TemperatureStore for tests and single hosts
    redis_client: Pub/sub for reading intake and alert hand-off
    rows: Row to model conversion shared by the stores
    timestamps: Stored timestamp parse/format chain
"""

from drivetemp.storage.memory_store import MemoryTemperatureStore
from drivetemp.storage.postgres_client import PostgresTemperatureStore
from drivetemp.storage.postgres_settings import PostgresSettingsProvider
from drivetemp.storage.redis_client import (
    RedisClient,
    RedisClientError,
    RedisConnectionException,
    RedisOperationError,
)
from drivetemp.storage.timestamps import format_timestamp, parse_timestamp

__all__: list[str] = [
    # Temperature stores
    "MemoryTemperatureStore",
    "PostgresTemperatureStore",
    "PostgresSettingsProvider",
    # Redis
    "RedisClient",
    "RedisClientError",
    "RedisConnectionException",
    "RedisOperationError",
    # Timestamps
    "format_timestamp",
    "parse_timestamp",
]
