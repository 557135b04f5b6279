"""Data models for step counting."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AccelerationSample(BaseModel):
    """Vertical acceleration (including gravity) at a point in time."""

    model_config = ConfigDict(frozen=True)

    z: float = Field(description="Z-axis acceleration in m/s², gravity included")
    timestamp_ms: int = Field(ge=0, description="Sample time in milliseconds")


class AccelerometerReading(BaseModel):
    """Accelerometer reading from Kafka."""

    schema_version: str
    timestamp: datetime
    device_id: str
    x: float
    y: float
    z: float
    accuracy: Optional[int] = None

    def to_sample(self) -> AccelerationSample:
        """Project onto the vertical axis; naive timestamps are UTC."""
        timestamp = self.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return AccelerationSample(z=self.z, timestamp_ms=int(timestamp.timestamp() * 1000))


class DetectorState(BaseModel):
    """Reference values carried between two samples by the step detector."""

    model_config = ConfigDict(frozen=True)

    last_z: float = 0.0
    last_step_timestamp_ms: Optional[int] = None
    primed: bool = False


class TrackingState(str, Enum):
    """Whether samples are currently forwarded to the step detector."""

    IDLE = "idle"
    RUNNING = "running"


class SensorAccess(str, Enum):
    """Resolution of sensor availability and permission for the session."""

    UNKNOWN = "unknown"
    PENDING = "pending"
    GRANTED = "granted"
    DENIED = "denied"
    UNSUPPORTED = "unsupported"


class PermissionState(str, Enum):
    """Outcome of a permission prompt."""

    GRANTED = "granted"
    DENIED = "denied"


class PedometerStatus(BaseModel):
    """Snapshot published to display collaborators after every transition."""

    state: TrackingState
    access: SensorAccess
    step_count: int = Field(ge=0)
    distance_km: float = Field(ge=0.0)
    distance_display: str
    duration_seconds: int = Field(ge=0)
    duration_display: str
    status_message: str
    start_label: str
    start_enabled: bool
    sensor_unsupported: bool = False
    awaiting_permission: bool = False
    permission_denied: bool = False
    last_error: Optional[str] = None


class SampleBatch(BaseModel):
    """Samples pushed to the service over HTTP."""

    samples: List[AccelerationSample] = Field(min_length=1)


class SampleIngestResult(BaseModel):
    """Result of pushing a sample batch."""

    accepted: int
    dropped: int
    status: PedometerStatus
