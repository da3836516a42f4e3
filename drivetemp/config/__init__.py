"""
Configuration management for the temperature monitor.

This module loads the YAML configuration files and serves runtime
settings with hardcoded fallbacks.

Example:
    >>> from drivetemp.config import load_config, load_thresholds
    >>> config = load_config("config")
"""

from drivetemp.config.loader import ConfigLoadError, ConfigLoader, load_config
from drivetemp.config.models import (
    AppConfig,
    ChannelsConfig,
    EngineConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    PostgresConnectionConfig,
    ProcessorConfig,
    RedisConnectionConfig,
    SettingsSource,
    StorageBackend,
)
from drivetemp.config.settings import StaticSettingsProvider, load_thresholds

__all__: list[str] = [
    "AppConfig",
    "ChannelsConfig",
    "ConfigLoadError",
    "ConfigLoader",
    "EngineConfig",
    "LogFormat",
    "LoggingConfig",
    "LogLevel",
    "PostgresConnectionConfig",
    "ProcessorConfig",
    "RedisConnectionConfig",
    "SettingsSource",
    "StaticSettingsProvider",
    "StorageBackend",
    "load_config",
    "load_thresholds",
]
