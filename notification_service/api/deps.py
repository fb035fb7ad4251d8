"""API dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from notification_service.engine import NotificationEngine
from notification_service.services.notifications import NotificationService


def get_engine(request: Request) -> NotificationEngine:
    """Get the engine the application lifespan built."""
    engine: NotificationEngine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notification engine is not running",
        )
    return engine


def get_notification_service(
    engine: Annotated[NotificationEngine, Depends(get_engine)],
) -> NotificationService:
    return engine.service


Notifications = Annotated[NotificationService, Depends(get_notification_service)]
