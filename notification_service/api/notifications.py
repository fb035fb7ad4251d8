"""Notification API endpoints."""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from notification_service.api.deps import Notifications
from notification_service.errors import ValidationError
from notification_service.models.delivery import DeliveryRecordListResponse
from notification_service.models.notifications import (
    ApplicationConfirmationRequest,
    ApplicationStatusUpdateRequest,
    DeadlineReminderRequest,
    DeliverySummaryResponse,
    EmailRequest,
    HealthResponse,
    MultiChannelResponse,
    NotificationStatsResponse,
    PushRequest,
    SmsRequest,
    UssdConfirmationRequest,
    WelcomeNotificationRequest,
)
from notification_service.services.dispatcher import DeliverySummary

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


def _unprocessable(error: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"field": error.field, "message": str(error)},
    )


def _summary(summary: DeliverySummary | None) -> DeliverySummaryResponse | None:
    if summary is None:
        return None
    return DeliverySummaryResponse.model_validate(summary.to_dict())


def _multi(result: dict[str, Any]) -> MultiChannelResponse:
    return MultiChannelResponse(
        user_id=result["user_id"],
        sms=_summary(result["sms"]),
        email=_summary(result["email"]),
    )


@router.post(
    "/sms", response_model=DeliverySummaryResponse, status_code=status.HTTP_202_ACCEPTED
)
def send_sms_endpoint(service: Notifications, data: SmsRequest) -> DeliverySummaryResponse:
    """Queue a single SMS."""
    try:
        return _summary(service.send_sms(data))
    except ValidationError as e:
        raise _unprocessable(e)


@router.post(
    "/email", response_model=DeliverySummaryResponse, status_code=status.HTTP_202_ACCEPTED
)
def send_email_endpoint(service: Notifications, data: EmailRequest) -> DeliverySummaryResponse:
    """Queue a single email."""
    try:
        return _summary(service.send_email(data))
    except ValidationError as e:
        raise _unprocessable(e)


@router.post(
    "/push", response_model=DeliverySummaryResponse, status_code=status.HTTP_202_ACCEPTED
)
def send_push_endpoint(service: Notifications, data: PushRequest) -> DeliverySummaryResponse:
    """Queue a push notification."""
    try:
        return _summary(service.send_push(data))
    except ValidationError as e:
        raise _unprocessable(e)


@router.post(
    "/welcome", response_model=MultiChannelResponse, status_code=status.HTTP_202_ACCEPTED
)
def send_welcome_endpoint(
    service: Notifications, data: WelcomeNotificationRequest
) -> MultiChannelResponse:
    """Welcome a newly registered user by SMS and/or email."""
    try:
        return _multi(service.send_welcome_notification(data))
    except ValidationError as e:
        raise _unprocessable(e)


@router.post(
    "/application-confirmation",
    response_model=MultiChannelResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def send_application_confirmation_endpoint(
    service: Notifications, data: ApplicationConfirmationRequest
) -> MultiChannelResponse:
    try:
        return _multi(service.send_application_confirmation(data))
    except ValidationError as e:
        raise _unprocessable(e)


@router.post(
    "/application-status",
    response_model=MultiChannelResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def send_application_status_endpoint(
    service: Notifications, data: ApplicationStatusUpdateRequest
) -> MultiChannelResponse:
    try:
        return _multi(service.send_application_status_update(data))
    except ValidationError as e:
        raise _unprocessable(e)


@router.post(
    "/deadline-reminder",
    response_model=MultiChannelResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def send_deadline_reminder_endpoint(
    service: Notifications, data: DeadlineReminderRequest
) -> MultiChannelResponse:
    try:
        return _multi(service.send_deadline_reminder(data))
    except ValidationError as e:
        raise _unprocessable(e)


@router.post(
    "/ussd-confirmation",
    response_model=DeliverySummaryResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def send_ussd_confirmation_endpoint(
    service: Notifications, data: UssdConfirmationRequest
) -> DeliverySummaryResponse:
    """Confirm a USSD registration by SMS."""
    try:
        return _summary(service.send_ussd_confirmation(data))
    except ValidationError as e:
        raise _unprocessable(e)


@router.get("/users/{user_id}", response_model=DeliveryRecordListResponse)
def list_user_notifications_endpoint(
    service: Notifications,
    user_id: UUID,
    limit: int = Query(default=50, ge=1, le=100, description="Maximum number of records"),
    offset: int = Query(default=0, ge=0, description="Number of records to skip"),
) -> DeliveryRecordListResponse:
    """Delivery history for a user, newest first."""
    return service.get_user_notifications(user_id, limit=limit, offset=offset)


@router.get("/stats", response_model=NotificationStatsResponse)
def notification_stats_endpoint(
    service: Notifications,
    start: datetime | None = Query(default=None, description="Period start (UTC)"),
    end: datetime | None = Query(default=None, description="Period end (UTC)"),
) -> NotificationStatsResponse:
    """Delivery counts per status and channel."""
    try:
        return NotificationStatsResponse.model_validate(
            service.get_notification_stats(start, end)
        )
    except ValidationError as e:
        raise _unprocessable(e)


@router.get("/health", response_model=HealthResponse)
def providers_health_endpoint(service: Notifications) -> HealthResponse:
    """Reachability of the SMS gateway and the SMTP server."""
    sms = service.check_sms_health()
    email = service.check_email_health()
    overall = "UP" if sms.get("healthy") and email.get("healthy") else "DEGRADED"
    return HealthResponse(status=overall, sms=sms, email=email)
