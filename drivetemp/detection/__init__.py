"""
Anomaly detection and alerting.

Components:
    cooldown: CooldownCache suppressing repeat alerts per drive and type
    spikes: Spike detection algorithm and SpikeDetector
    manager: AlertEngine for threshold, recovery and spike alerts
    processor: TemperatureProcessor with the ingestion queue and timers
"""

from drivetemp.detection.cooldown import CooldownCache, build_cooldown_key
from drivetemp.detection.manager import AlertEngine, create_alert_engine, format_duration
from drivetemp.detection.processor import TemperatureProcessor
from drivetemp.detection.spikes import SpikeDetector, detect_spikes

__all__: list[str] = [
    "AlertEngine",
    "CooldownCache",
    "SpikeDetector",
    "TemperatureProcessor",
    "build_cooldown_key",
    "create_alert_engine",
    "detect_spikes",
    "format_duration",
]
