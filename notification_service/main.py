"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from notification_service.api.notifications import router as notifications_router
from notification_service.config import get_settings
from notification_service.engine import build_engine
from notification_service.workers.scheduler import configure_logging

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine and start the retry sweep; drain on shutdown."""
    configure_logging(settings.LOG_LEVEL.upper())
    engine = build_engine(settings)
    engine.start()
    app.state.engine = engine
    try:
        yield
    finally:
        app.state.engine = None
        engine.shutdown()


app = FastAPI(
    title="Notification Delivery Service",
    description="SMS, email and push delivery with retries and user preferences",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(notifications_router)


@app.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
