"""Session counters and the duration ticker."""

import asyncio
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


def format_duration(total_seconds: int) -> str:
    """Format total seconds as HH:MM:SS."""
    hours, remainder = divmod(int(total_seconds), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_distance(distance_km: float) -> str:
    return f"{distance_km:.2f}"


class SessionCounters:
    """Step count and elapsed duration of a tracking session."""

    def __init__(self, step_length_m: float = 0.76):
        self.step_length_m = step_length_m
        self.step_count = 0
        self.duration_seconds = 0

    @property
    def distance_km(self) -> float:
        return self.step_count * self.step_length_m / 1000

    def record_step(self) -> int:
        self.step_count += 1
        return self.step_count

    def tick(self) -> int:
        self.duration_seconds += 1
        return self.duration_seconds

    def reset(self) -> None:
        self.step_count = 0
        self.duration_seconds = 0


class DurationTicker:
    """Invokes a callback at a fixed interval while started."""

    def __init__(self, callback: Callable[[], None], interval: float = 1.0):
        self.callback = callback
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking; does nothing when a ticker is already active."""
        if self.running:
            logger.warning("Duration ticker already running")
            return
        self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval)
                self.callback()
        except asyncio.CancelledError:
            logger.debug("Duration ticker cancelled")
            raise
