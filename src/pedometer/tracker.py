"""Tracking state machine gating samples into the step detector."""

import asyncio
from dataclasses import dataclass
from typing import Optional, Union

import structlog

from . import metrics
from .config import Settings, settings as default_settings
from .counters import DurationTicker, SessionCounters, format_distance, format_duration
from .errors import (
    PedometerError,
    PermissionDeniedError,
    PermissionRequestFailedError,
    SensorUnsupportedError,
)
from .models import (
    AccelerationSample,
    PedometerStatus,
    PermissionState,
    SensorAccess,
    TrackingState,
)
from .sources import MotionSampleSource
from .step_detector import StepDetector

logger = structlog.get_logger(__name__)

READY_MESSAGE = "Press 'Start' to begin tracking."
RUNNING_MESSAGE = "Tracking active. Start walking!"
RESET_MESSAGE = "Counter reset. Press 'Start' to begin tracking."


@dataclass(frozen=True)
class SampleReceived:
    sample: AccelerationSample
    session: int


@dataclass(frozen=True)
class TickElapsed:
    session: int


@dataclass(frozen=True)
class ControlRequested:
    command: str
    reply: asyncio.Future


TrackingEvent = Union[SampleReceived, TickElapsed, ControlRequested]


class TrackingStateMachine:
    """Owns the tracking session and applies events one at a time.

    Sensor callbacks, ticker callbacks and control commands are all turned
    into events on a single queue. One consumer task applies them in
    order, so counters and detector state are never mutated concurrently.
    Sample and tick events are stamped with the session generation and
    dropped once a stop or reset has moved the generation on.
    """

    COMMANDS = ("toggle", "start", "stop", "reset")

    def __init__(self, source: MotionSampleSource, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.source = source
        self.state = TrackingState.IDLE
        self.access = SensorAccess.UNKNOWN
        self.detector = StepDetector(self.settings)
        self.counters = SessionCounters(step_length_m=self.settings.step_length_m)
        self.ticker = DurationTicker(self._on_tick, interval=self.settings.tick_interval_seconds)
        self.status_message = READY_MESSAGE
        self.last_error: Optional[str] = None

        self._session = 0
        self._queue: asyncio.Queue = asyncio.Queue()
        self._consumer_task: Optional[asyncio.Task] = None
        self._current_event: Optional[TrackingEvent] = None

    @property
    def is_open(self) -> bool:
        return self._consumer_task is not None and not self._consumer_task.done()

    async def open(self) -> None:
        """Start the event consumer."""
        if self.is_open:
            return
        self._consumer_task = asyncio.create_task(self._consume())
        logger.info("Tracking state machine opened")

    async def close(self) -> None:
        """Stop tracking, the event consumer and the sample source.

        Control commands still in flight or queued fail with RuntimeError.
        """
        if self._consumer_task is not None:
            self._consumer_task.cancel()
            await asyncio.gather(self._consumer_task, return_exceptions=True)
            self._consumer_task = None

        self._abandon(self._current_event)
        self._current_event = None
        while not self._queue.empty():
            self._abandon(self._queue.get_nowait())
            self._queue.task_done()

        if self.access is SensorAccess.PENDING:
            self.access = SensorAccess.UNKNOWN
        if self.state is TrackingState.RUNNING:
            self._stop_tracking()
        self.ticker.stop()
        await self.source.close()
        logger.info("Tracking state machine closed")

    async def __aenter__(self) -> "TrackingStateMachine":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Control surface

    async def toggle(self) -> PedometerStatus:
        """Start when idle, stop when running."""
        return await self._submit("toggle")

    async def start(self) -> PedometerStatus:
        return await self._submit("start")

    async def stop(self) -> PedometerStatus:
        return await self._submit("stop")

    async def reset(self) -> PedometerStatus:
        """Stop if running, then zero counters and detector state."""
        return await self._submit("reset")

    async def join(self) -> None:
        """Wait until every queued event has been applied."""
        await self._queue.join()

    def status(self) -> PedometerStatus:
        distance_km = self.counters.distance_km
        if self.access is SensorAccess.DENIED:
            start_label = "Permission Denied"
        elif self.state is TrackingState.RUNNING:
            start_label = "Stop Tracking"
        else:
            start_label = "Start Tracking"

        return PedometerStatus(
            state=self.state,
            access=self.access,
            step_count=self.counters.step_count,
            distance_km=distance_km,
            distance_display=format_distance(distance_km),
            duration_seconds=self.counters.duration_seconds,
            duration_display=format_duration(self.counters.duration_seconds),
            status_message=self.status_message,
            start_label=start_label,
            start_enabled=self.access
            not in (SensorAccess.DENIED, SensorAccess.UNSUPPORTED, SensorAccess.PENDING),
            sensor_unsupported=self.access is SensorAccess.UNSUPPORTED,
            awaiting_permission=self.access is SensorAccess.PENDING,
            permission_denied=self.access is SensorAccess.DENIED,
            last_error=self.last_error,
        )

    # Event plumbing

    async def _submit(self, command: str) -> PedometerStatus:
        if command not in self.COMMANDS:
            raise ValueError(f"Unknown tracking command: {command}")
        if not self.is_open:
            raise RuntimeError("Tracking state machine is not open")

        reply = asyncio.get_running_loop().create_future()
        await self._queue.put(ControlRequested(command, reply))
        return await reply

    @staticmethod
    def _abandon(event: Optional[TrackingEvent]) -> None:
        if isinstance(event, ControlRequested) and not event.reply.done():
            event.reply.set_exception(
                RuntimeError(f"Tracking state machine closed before '{event.command}' completed")
            )

    def _on_sample(self, sample: AccelerationSample) -> None:
        self._queue.put_nowait(SampleReceived(sample, self._session))

    def _on_tick(self) -> None:
        self._queue.put_nowait(TickElapsed(self._session))

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            self._current_event = event
            try:
                await self.dispatch(event)
            except Exception as e:
                logger.error(
                    "Error applying tracking event",
                    event=type(event).__name__,
                    error=str(e),
                    exc_info=True,
                )
                if isinstance(event, ControlRequested) and not event.reply.done():
                    event.reply.set_exception(e)
            else:
                self._current_event = None
            finally:
                self._queue.task_done()

    async def dispatch(self, event: TrackingEvent) -> None:
        """Apply a single event to the session."""
        if isinstance(event, SampleReceived):
            self._handle_sample(event)
        elif isinstance(event, TickElapsed):
            self._handle_tick(event)
        elif isinstance(event, ControlRequested):
            metrics.commands_total.labels(command=event.command).inc()
            if event.command == "toggle":
                await self._handle_toggle()
            elif event.command == "start":
                await self._handle_start()
            elif event.command == "stop":
                self._handle_stop()
            elif event.command == "reset":
                self._handle_reset()
            if not event.reply.done():
                event.reply.set_result(self.status())

    # Handlers

    def _handle_sample(self, event: SampleReceived) -> None:
        if event.session != self._session or self.state is not TrackingState.RUNNING:
            return
        metrics.samples_processed_total.inc()
        if self.detector.add_sample(event.sample):
            step_count = self.counters.record_step()
            metrics.steps_total.inc()
            logger.debug("Step registered", step_count=step_count)

    def _handle_tick(self, event: TickElapsed) -> None:
        if event.session != self._session or self.state is not TrackingState.RUNNING:
            return
        self.counters.tick()

    async def _handle_toggle(self) -> None:
        if self.state is TrackingState.RUNNING:
            self._stop_tracking()
        else:
            await self._handle_start()

    async def _handle_start(self) -> None:
        if self.state is TrackingState.RUNNING:
            return

        try:
            await self._resolve_access()
        except PermissionRequestFailedError as e:
            logger.error("Error requesting motion permission", error=repr(e.__cause__))
            self._report(e)
            return
        except PedometerError as e:
            logger.warning("Motion sensor unavailable", error=e.code)
            self._report(e)
            return

        self.last_error = None
        self._start_tracking()

    def _handle_stop(self) -> None:
        if self.state is TrackingState.RUNNING:
            self._stop_tracking()

    def _handle_reset(self) -> None:
        if self.state is TrackingState.RUNNING:
            self._stop_tracking()
        self.ticker.stop()

        self._session += 1
        self.counters.reset()
        self.detector.reset()
        self.status_message = RESET_MESSAGE
        logger.info("Step counter reset")

    async def _resolve_access(self) -> None:
        """Make sure samples may be read, prompting for permission once."""
        if self.access is SensorAccess.GRANTED:
            return
        if self.access is SensorAccess.DENIED:
            raise PermissionDeniedError()
        if self.access is SensorAccess.UNSUPPORTED or not self.source.supported:
            self.access = SensorAccess.UNSUPPORTED
            raise SensorUnsupportedError()
        if not self.source.requires_permission:
            self.access = SensorAccess.GRANTED
            return

        self.access = SensorAccess.PENDING
        try:
            outcome = await asyncio.wait_for(
                self.source.request_permission(),
                timeout=self.settings.permission_timeout_seconds,
            )
        except Exception as e:
            self.access = SensorAccess.UNKNOWN
            raise PermissionRequestFailedError(str(e)) from e

        if outcome is PermissionState.GRANTED:
            self.access = SensorAccess.GRANTED
            logger.info("Motion permission granted")
            return

        self.access = SensorAccess.DENIED
        raise PermissionDeniedError()

    def _report(self, error: PedometerError) -> None:
        self.last_error = error.code
        self.status_message = error.message

    def _start_tracking(self) -> None:
        self.state = TrackingState.RUNNING
        self.source.subscribe(self._on_sample)
        self.ticker.start()
        self.status_message = RUNNING_MESSAGE
        metrics.tracking_running.set(1)
        logger.info("Tracking started", session=self._session)

    def _stop_tracking(self) -> None:
        self.source.unsubscribe()
        self.ticker.stop()
        self.state = TrackingState.IDLE
        self._session += 1
        self.status_message = f"Tracking paused. Total steps: {self.counters.step_count}."
        metrics.tracking_running.set(0)
        logger.info("Tracking stopped", step_count=self.counters.step_count)
