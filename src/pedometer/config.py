"""Configuration for the pedometer service."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with PEDOMETER_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="PEDOMETER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Service settings
    service_name: str = "pedometer"
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 8014
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Step detection settings
    acceleration_threshold: float = Field(
        default=1.25, gt=0, description="Minimum z-axis change (m/s²) for a step"
    )
    step_debounce_ms: int = Field(
        default=200, ge=0, description="Minimum time between two registered steps"
    )
    skip_first_sample: bool = Field(
        default=True,
        description="Only prime the reference value with the first sample after a reset",
    )

    # Session settings
    step_length_m: float = Field(default=0.76, gt=0, description="Average adult step length")
    tick_interval_seconds: float = Field(default=1.0, gt=0)

    # Sample source settings
    sample_source: Literal["push", "kafka"] = "push"
    sensor_supported: bool = True
    sensor_permission: Optional[Literal["granted", "denied"]] = Field(
        default=None,
        description="Scripted permission prompt outcome, None when no prompt is required",
    )
    permission_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Unanswered permission prompts fail after this long and may be retried",
    )

    # Kafka settings
    kafka_bootstrap_servers: str = "kafka:29092"
    kafka_consumer_group_id: str = "pedometer"
    kafka_input_topic: str = "device.sensor.accelerometer.raw"
    kafka_auto_offset_reset: str = "latest"
    device_id: Optional[str] = None


settings = Settings()
