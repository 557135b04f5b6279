"""Test configuration and fixtures for the pedometer service."""

from typing import Callable, List

import pytest

from pedometer.config import Settings
from pedometer.models import AccelerationSample
from pedometer.sources import PushSampleSource


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a ticker slow enough to never fire during a test."""
    return Settings(
        environment="test",
        log_level="DEBUG",
        log_format="console",
        tick_interval_seconds=3600,
    )


@pytest.fixture
def push_source() -> PushSampleSource:
    return PushSampleSource()


@pytest.fixture
def make_samples() -> Callable[[List[float], List[int]], List[AccelerationSample]]:
    """Build samples from parallel z and timestamp lists."""

    def _make(zs: List[float], timestamps: List[int]) -> List[AccelerationSample]:
        return [
            AccelerationSample(z=z, timestamp_ms=t) for z, t in zip(zs, timestamps)
        ]

    return _make
