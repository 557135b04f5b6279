"""Step detection algorithm for accelerometer data."""

from typing import Optional, Tuple

import structlog

from .config import Settings, settings as default_settings
from .models import AccelerationSample, DetectorState

logger = structlog.get_logger(__name__)


def process_sample(
    sample: AccelerationSample,
    state: DetectorState,
    threshold: float = 1.25,
    debounce_ms: int = 200,
    skip_first_sample: bool = True,
) -> Tuple[bool, DetectorState]:
    """Apply threshold and debounce logic to a single sample.

    A step is declared when the z-axis change since the previous sample
    exceeds ``threshold`` and more than ``debounce_ms`` elapsed since the
    last registered step. ``last_z`` always follows the sample.

    With ``skip_first_sample`` the first sample after a reset only primes
    ``last_z``, so its absolute value is never compared against zero.
    """
    if skip_first_sample and not state.primed:
        return False, DetectorState(
            last_z=sample.z,
            last_step_timestamp_ms=state.last_step_timestamp_ms,
            primed=True,
        )

    delta_z = sample.z - state.last_z
    debounced = (
        state.last_step_timestamp_ms is None
        or sample.timestamp_ms - state.last_step_timestamp_ms > debounce_ms
    )
    step_detected = abs(delta_z) > threshold and debounced

    return step_detected, DetectorState(
        last_z=sample.z,
        last_step_timestamp_ms=(
            sample.timestamp_ms if step_detected else state.last_step_timestamp_ms
        ),
        primed=True,
    )


class StepDetector:
    """Detects steps from vertical acceleration changes."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.threshold = settings.acceleration_threshold
        self.debounce_ms = settings.step_debounce_ms
        self.skip_first_sample = settings.skip_first_sample
        self.state = DetectorState()

    def add_sample(self, sample: AccelerationSample) -> bool:
        """Feed a sample and return True when it registers a step."""
        step_detected, self.state = process_sample(
            sample,
            self.state,
            threshold=self.threshold,
            debounce_ms=self.debounce_ms,
            skip_first_sample=self.skip_first_sample,
        )
        if step_detected:
            logger.debug(
                "Step detected", z=sample.z, timestamp_ms=sample.timestamp_ms
            )
        return step_detected

    def reset(self) -> None:
        self.state = DetectorState()
