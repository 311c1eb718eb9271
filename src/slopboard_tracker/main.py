"""Local FastAPI daemon that editor plugins report activity to."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from .backends import HttpApiBackend
from .config import settings
from .exceptions import DeliveryError, MissingCredentialError
from .logging_config import setup_logging
from .models.messages import (
    ActivityEvent,
    ApiKeyRequest,
    ConfigUpdate,
    FocusChangedEvent,
    StartTrackingRequest,
    TargetChangedEvent,
)
from .session_store import SessionQueueStore
from .tracker_service import TrackerService

# Setup logging
setup_logging(level=settings.LOG_LEVEL, debug=settings.DEBUG, log_file=settings.LOG_FILE)
logger = logging.getLogger(__name__)

# Initialized in lifespan
tracker_service: TrackerService


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info(f"Starting {settings.PROJECT_NAME}...")

    global tracker_service

    store = SessionQueueStore(data_dir=settings.DATA_DIR)
    backend = HttpApiBackend(
        base_url=settings.API_URL,
        api_key=settings.API_KEY,
        timeout=settings.REQUEST_TIMEOUT,
    )
    tracker_service = TrackerService(settings=settings, store=store, backend=backend)
    await tracker_service.initialize()

    if settings.ENABLED:
        try:
            tracker_service.start()
        except MissingCredentialError:
            logger.warning("Tracking not started: no API key configured")
    else:
        # Still try to send whatever is queued from a previous run
        tracker_service.queue.schedule_flush()

    logger.info(f"{settings.PROJECT_NAME} started successfully")

    yield

    logger.info("Shutting down gracefully...")
    await tracker_service.shutdown()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": settings.PROJECT_NAME,
        "tracking": tracker_service.is_tracking,
    }


@app.get("/status")
async def get_status():
    """Tracker state, offline queue and recent notices."""
    return await tracker_service.status()


@app.get("/summary")
async def get_summary():
    """Today's and this week's tracked time."""
    return tracker_service.summary.snapshot()


@app.post("/activity")
async def report_activity(event: ActivityEvent):
    tracker_service.handle_activity(event.target, event.timestamp)
    return {"state": tracker_service.tracker.state.value}


@app.post("/target")
async def report_target_changed(event: TargetChangedEvent):
    tracker_service.handle_target_changed(event.target, event.timestamp)
    return {"state": tracker_service.tracker.state.value}


@app.post("/focus")
async def report_focus_changed(event: FocusChangedEvent):
    tracker_service.handle_focus_changed(
        event.focused, target=event.target, timestamp=event.timestamp
    )
    return {"state": tracker_service.tracker.state.value}


@app.post("/tracking/start")
async def start_tracking(request_body: StartTrackingRequest):
    """Start tracking (requires an API key)."""
    try:
        tracker_service.start(target=request_body.target)
    except MissingCredentialError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return {"tracking": True}


@app.post("/tracking/stop")
async def stop_tracking():
    tracker_service.stop()
    return {"tracking": False}


@app.post("/sync")
async def sync_now():
    """Drain the offline queue now."""
    result = await tracker_service.sync_now()
    return {
        "status": result.status.value,
        "sent": result.sent,
        "remaining": result.remaining,
    }


@app.post("/config/api-key")
async def set_api_key(request_body: ApiKeyRequest):
    """Validate and store a new API key."""
    try:
        valid = await tracker_service.set_api_key(request_body.api_key)
    except DeliveryError as e:
        logger.error(f"Could not validate API key: {e.message}")
        raise HTTPException(
            status_code=502,
            detail="Could not validate API key. Please check your internet connection.",
        )

    if not valid:
        raise HTTPException(status_code=400, detail="Invalid API key. Please try again.")
    return {"saved": True}


@app.patch("/config")
async def update_config(request_body: ConfigUpdate):
    """Change tracking and upload settings at runtime."""
    return tracker_service.update_config(**request_body.model_dump())
