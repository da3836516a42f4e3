"""
Alert and spike data models for the temperature monitor.

Models:
    AlertType: Alert kinds (warning, critical, spike, recovery)
    SpikeDirection: Direction of a spike (heating, cooling)
    TemperatureAlert: A raised alert with acknowledgement tracking
    TemperatureSpike: A detected rapid temperature change
    AlertFilter: Query filter for alert listings
    AlertSummary: Aggregate alert counts
    SpikeSummary: Aggregate spike counts
    DriveAlertStatus: Most severe outstanding alert for one drive
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class AlertType(str, Enum):
    """
    Alert kinds.

    Attributes:
        WARNING: Temperature reached the warning threshold.
        CRITICAL: Temperature reached the critical threshold.
        SPIKE: A confirmed temperature spike.
        RECOVERY: Temperature returned below warning after an alert.
    """

    WARNING = "warning"
    CRITICAL = "critical"
    SPIKE = "spike"
    RECOVERY = "recovery"

    @property
    def severity_rank(self) -> int:
        """Rank used to pick the most severe outstanding alert (higher wins)."""
        return {
            AlertType.CRITICAL: 3,
            AlertType.WARNING: 2,
            AlertType.SPIKE: 1,
            AlertType.RECOVERY: 0,
        }[self]

    @property
    def is_threshold(self) -> bool:
        """Check if this alert type comes from a threshold crossing."""
        return self in (AlertType.WARNING, AlertType.CRITICAL)


class SpikeDirection(str, Enum):
    """Direction of a temperature spike."""

    HEATING = "heating"
    COOLING = "cooling"


class TemperatureAlert(BaseModel):
    """
    A raised temperature alert.

    Alerts are created once and later mutated at most once by an
    acknowledgement. ``id`` is assigned by the store on insert.

    Example:
        >>> alert = TemperatureAlert(
        ...     hostname="nas01",
        ...     serial_number="WD-123",
        ...     alert_type=AlertType.CRITICAL,
        ...     temperature=57,
        ...     threshold=55,
        ...     message="Temperature 57°C exceeds critical threshold (55°C)",
        ...     created_at=datetime.utcnow(),
        ... )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    id: Optional[int] = Field(default=None, description="Store-assigned identifier")
    hostname: str = Field(..., min_length=1)
    serial_number: str = Field(..., min_length=1)
    alert_type: AlertType
    temperature: int = Field(..., description="Temperature at alert time")
    threshold: Optional[int] = Field(default=None, description="Threshold at alert time")
    message: str
    acknowledged: bool = False
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    device_name: Optional[str] = Field(default=None, description="Drive-info decoration")
    model: Optional[str] = Field(default=None, description="Drive-info decoration")


class TemperatureSpike(BaseModel):
    """
    A detected rapid temperature change.

    Unique per (hostname, serial_number, start_time, end_time) so repeated
    scans of overlapping windows record each event once.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    id: Optional[int] = None
    hostname: str = Field(..., min_length=1)
    serial_number: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    start_temp: int
    end_temp: int
    magnitude: int = Field(..., ge=0, description="Absolute temperature change")
    rate_per_minute: float = Field(..., ge=0, description="Magnitude per elapsed minute")
    direction: SpikeDirection
    acknowledged: bool = False
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def signed_change(self) -> int:
        """End minus start temperature."""
        return self.end_temp - self.start_temp


class AlertFilter(BaseModel):
    """Filter for alert listings. Results are newest first."""

    model_config = {"frozen": True, "extra": "forbid"}

    hostname: Optional[str] = None
    serial_number: Optional[str] = None
    alert_type: Optional[AlertType] = None
    acknowledged: Optional[bool] = None
    since: Optional[datetime] = None
    limit: int = Field(default=100, ge=1)


class AlertSummary(BaseModel):
    """Aggregate alert counts."""

    model_config = {"frozen": True, "extra": "forbid"}

    total: int = 0
    unacknowledged: int = 0
    acknowledged: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    last_24h: int = 0
    last_7d: int = 0


class SpikeSummary(BaseModel):
    """Aggregate spike counts."""

    model_config = {"frozen": True, "extra": "forbid"}

    total: int = 0
    unacknowledged: int = 0
    acknowledged: int = 0
    last_24h: int = 0
    last_7d: int = 0


class DriveAlertStatus(BaseModel):
    """Most severe unacknowledged alert for one drive, or ``normal``."""

    model_config = {"frozen": True, "extra": "forbid"}

    hostname: str
    serial_number: str
    status: str = "normal"
    alert: Optional[TemperatureAlert] = None
