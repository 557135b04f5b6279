"""Main application with tracking control and health endpoints."""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config import settings
from .logging import setup_logging
from .models import PedometerStatus, SampleBatch, SampleIngestResult
from .sources import PushSampleSource, create_source
from .tracker import TrackingStateMachine

logger = structlog.get_logger(__name__)

# Global state machine instance
tracker: Optional[TrackingStateMachine] = None


def get_tracker() -> TrackingStateMachine:
    if tracker is None or not tracker.is_open:
        raise HTTPException(status_code=503, detail="Tracking is not available")
    return tracker


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    global tracker

    setup_logging(settings)
    logger.info(
        "Starting pedometer service",
        sample_source=settings.sample_source,
        environment=settings.environment,
    )

    tracker = TrackingStateMachine(create_source(settings), settings)
    await tracker.open()

    yield

    await tracker.close()
    tracker = None
    logger.info("Pedometer service stopped")


app = FastAPI(
    title="Pedometer",
    description="Counts steps from accelerometer samples",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/healthz")
async def liveness():
    """Liveness check endpoint."""
    return {"status": "alive"}


@app.get("/readyz")
async def readiness():
    """Readiness check endpoint."""
    if tracker is not None and tracker.is_open:
        return {"status": "ready"}
    return Response(
        content='{"status": "not ready"}',
        status_code=503,
        media_type="application/json",
    )


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/tracking/status", response_model=PedometerStatus)
async def tracking_status():
    return get_tracker().status()


@app.post("/tracking/toggle", response_model=PedometerStatus)
async def toggle_tracking():
    """Single start/stop button: starts when idle, stops when running."""
    return await get_tracker().toggle()


@app.post("/tracking/start", response_model=PedometerStatus)
async def start_tracking():
    return await get_tracker().start()


@app.post("/tracking/stop", response_model=PedometerStatus)
async def stop_tracking():
    return await get_tracker().stop()


@app.post("/tracking/reset", response_model=PedometerStatus)
async def reset_tracking():
    return await get_tracker().reset()


@app.post("/samples", response_model=SampleIngestResult)
async def ingest_samples(batch: SampleBatch):
    """Push samples into the in-process sample source.

    Samples arriving while tracking is idle are dropped.
    """
    machine = get_tracker()
    if not isinstance(machine.source, PushSampleSource):
        raise HTTPException(
            status_code=409,
            detail=f"Sample source '{settings.sample_source}' does not accept pushed samples",
        )

    accepted = sum(1 for sample in batch.samples if machine.source.emit(sample))
    await machine.join()

    return SampleIngestResult(
        accepted=accepted,
        dropped=len(batch.samples) - accepted,
        status=machine.status(),
    )


def run() -> None:
    uvicorn.run(
        "pedometer.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
