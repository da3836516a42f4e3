"""
Row to model conversion shared by the stores.

Rows are anything indexable by column name: asyncpg records or the
memory store's dicts. Timestamp columns go through the fallback chain.
"""

from typing import Any, Mapping

from drivetemp.models.alerts import (
    AlertType,
    SpikeDirection,
    TemperatureAlert,
    TemperatureSpike,
)
from drivetemp.models.readings import TemperatureReading
from drivetemp.storage.timestamps import parse_timestamp


def _optional_parse(value: Any):
    return parse_timestamp(value) if value is not None else None


def reading_from_row(row: Mapping[str, Any]) -> TemperatureReading:
    return TemperatureReading(
        hostname=row["hostname"],
        serial_number=row["serial_number"],
        temperature=row["temperature"],
        timestamp=parse_timestamp(row["timestamp"]),
    )


def spike_from_row(row: Mapping[str, Any]) -> TemperatureSpike:
    return TemperatureSpike(
        id=row["id"],
        hostname=row["hostname"],
        serial_number=row["serial_number"],
        start_time=parse_timestamp(row["start_time"]),
        end_time=parse_timestamp(row["end_time"]),
        start_temp=row["start_temp"],
        end_temp=row["end_temp"],
        magnitude=row["magnitude"],
        # NUMERIC columns come back as Decimal
        rate_per_minute=float(row["rate_per_minute"]),
        direction=SpikeDirection(row["direction"]),
        acknowledged=row["acknowledged"],
        acknowledged_by=row["acknowledged_by"],
        acknowledged_at=_optional_parse(row["acknowledged_at"]),
        created_at=parse_timestamp(row["created_at"]),
    )


def alert_from_row(row: Mapping[str, Any]) -> TemperatureAlert:
    return TemperatureAlert(
        id=row["id"],
        hostname=row["hostname"],
        serial_number=row["serial_number"],
        alert_type=AlertType(row["alert_type"]),
        temperature=row["temperature"],
        threshold=row["threshold"],
        message=row["message"],
        acknowledged=row["acknowledged"],
        acknowledged_by=row["acknowledged_by"],
        acknowledged_at=_optional_parse(row["acknowledged_at"]),
        created_at=parse_timestamp(row["created_at"]),
    )
