"""Motion sample sources feeding the tracking state machine."""

import asyncio
from abc import ABC
from typing import Any, Callable, Optional

import orjson
import structlog
from aiokafka import AIOKafkaConsumer
from pydantic import ValidationError

from .config import Settings
from .models import AccelerationSample, AccelerometerReading, PermissionState

logger = structlog.get_logger(__name__)

SampleCallback = Callable[[AccelerationSample], None]


class MotionSampleSource(ABC):
    """Base class for acceleration sample sources.

    A source delivers samples to at most one subscriber. Once
    ``unsubscribe`` returns no further sample reaches the old callback.
    """

    def __init__(self):
        self._callback: Optional[SampleCallback] = None

    @property
    def supported(self) -> bool:
        """Whether the platform offers motion samples at all."""
        return True

    @property
    def requires_permission(self) -> bool:
        """Whether ``request_permission`` must be awaited before subscribing."""
        return False

    async def request_permission(self) -> PermissionState:
        return PermissionState.GRANTED

    @property
    def subscribed(self) -> bool:
        return self._callback is not None

    def subscribe(self, callback: SampleCallback) -> None:
        self._callback = callback
        self._on_subscribe()
        logger.info("Subscribed to motion samples", source=type(self).__name__)

    def unsubscribe(self) -> None:
        if self._callback is None:
            return
        self._callback = None
        self._on_unsubscribe()
        logger.info("Unsubscribed from motion samples", source=type(self).__name__)

    async def close(self) -> None:
        self.unsubscribe()

    def _on_subscribe(self) -> None:
        pass

    def _on_unsubscribe(self) -> None:
        pass

    def _deliver(self, sample: AccelerationSample) -> bool:
        if self._callback is None:
            return False
        self._callback(sample)
        return True


class PushSampleSource(MotionSampleSource):
    """In-process source fed explicitly through ``emit``.

    Support and the permission prompt outcome are scripted, which makes
    it usable both behind the HTTP ingest endpoint and in tests.
    """

    def __init__(
        self,
        supported: bool = True,
        permission: Optional[PermissionState] = None,
        permission_error: Optional[Exception] = None,
    ):
        super().__init__()
        self._supported = supported
        self.permission = permission
        self.permission_error = permission_error
        self.permission_requests = 0

    @property
    def supported(self) -> bool:
        return self._supported

    @property
    def requires_permission(self) -> bool:
        return self.permission is not None or self.permission_error is not None

    async def request_permission(self) -> PermissionState:
        self.permission_requests += 1
        if self.permission_error is not None:
            raise self.permission_error
        return self.permission or PermissionState.GRANTED

    def emit(self, sample: AccelerationSample) -> bool:
        """Deliver a sample; returns False when nobody is subscribed."""
        return self._deliver(sample)


class KafkaSampleSource(MotionSampleSource):
    """Consumes accelerometer readings from Kafka while subscribed."""

    def __init__(self, settings: Settings):
        super().__init__()
        self.settings = settings
        self.consumer: Optional[AIOKafkaConsumer] = None
        self._task: Optional[asyncio.Task] = None
        self._stopping: Optional[asyncio.Task] = None
        self.messages_received = 0

    @property
    def supported(self) -> bool:
        return bool(self.settings.kafka_bootstrap_servers)

    def _on_subscribe(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._consume(previous=self._stopping))
        self._stopping = None

    def _on_unsubscribe(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._stopping = self._task
            self._task = None

    async def close(self) -> None:
        tasks = [t for t in (self._task, self._stopping) if t is not None]
        self.unsubscribe()
        self._stopping = None
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _consume(self, previous: Optional[asyncio.Task] = None) -> None:
        """Main message consumption loop.

        A consumer from an earlier subscription is fully stopped before a
        new one joins the group.
        """
        if previous is not None:
            await asyncio.gather(previous, return_exceptions=True)

        consumer = AIOKafkaConsumer(
            self.settings.kafka_input_topic,
            bootstrap_servers=self.settings.kafka_bootstrap_servers,
            group_id=self.settings.kafka_consumer_group_id,
            auto_offset_reset=self.settings.kafka_auto_offset_reset,
            enable_auto_commit=True,
            value_deserializer=lambda v: orjson.loads(v) if v else None,
        )
        self.consumer = consumer
        try:
            await consumer.start()
            logger.info(
                "Kafka sample consumer started",
                topic=self.settings.kafka_input_topic,
                bootstrap_servers=self.settings.kafka_bootstrap_servers,
            )
            async for message in consumer:
                self.handle_message(message.value)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Kafka sample consumer failed", error=str(e), exc_info=True)
        finally:
            try:
                await consumer.stop()
            except Exception as e:
                logger.error("Error closing Kafka consumer", error=str(e))
            if self.consumer is consumer:
                self.consumer = None
            logger.info("Kafka sample consumer stopped")

    def handle_message(self, payload: Optional[dict[str, Any]]) -> bool:
        """Parse one Kafka payload and deliver it; returns True if delivered."""
        if not payload:
            return False
        self.messages_received += 1

        try:
            reading = AccelerometerReading(**payload)
        except (TypeError, ValidationError) as e:
            logger.warning("Skipping malformed accelerometer message", error=str(e))
            return False

        if self.settings.device_id and reading.device_id != self.settings.device_id:
            return False

        return self._deliver(reading.to_sample())


def create_source(settings: Settings) -> MotionSampleSource:
    """Build the sample source selected in settings."""
    if settings.sample_source == "kafka":
        return KafkaSampleSource(settings)

    permission = (
        PermissionState(settings.sensor_permission)
        if settings.sensor_permission
        else None
    )
    return PushSampleSource(supported=settings.sensor_supported, permission=permission)
