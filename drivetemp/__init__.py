"""
Drive Temperature Monitor.

The analytic and alerting core of a fleet drive-health monitor: it ingests
periodic temperature samples for storage devices, keeps statistical
summaries, detects temperature spikes, and raises warning/critical/recovery
alerts with cooldown suppression.

This package provides:
- Data models for readings, spikes, alerts and statistics
- Abstract interfaces for the store, settings and drive-info collaborators
- Configuration management
- PostgreSQL and in-memory storage backends, plus a Redis pub/sub client
- The statistics engine, spike detector, alert engine and processor
"""

__version__ = "0.1.0"
