"""Request and response schemas for the inbound notification API."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlmodel import Field, SQLModel

from notification_service.models.delivery import (
    DeliveryStatus,
    NotificationCategory,
    NotificationPriority,
)


class SmsRequest(SQLModel):
    """Schema for sending a single SMS."""

    user_id: UUID
    phone_number: str = Field(min_length=1, max_length=32)
    message: str = Field(min_length=1, max_length=1600)
    category: NotificationCategory = NotificationCategory.TRANSACTIONAL
    priority: NotificationPriority = NotificationPriority.MEDIUM


class EmailRequest(SQLModel):
    """Schema for sending a single email."""

    user_id: UUID
    to_email: str = Field(min_length=3, max_length=320)
    subject: str = Field(min_length=1, max_length=255)
    text_content: str = Field(min_length=1)
    html_content: str | None = None
    category: NotificationCategory = NotificationCategory.TRANSACTIONAL
    priority: NotificationPriority = NotificationPriority.MEDIUM


class PushRequest(SQLModel):
    """Schema for sending a push notification to one device."""

    user_id: UUID
    device_token: str = Field(min_length=1, max_length=512)
    title: str = Field(min_length=1, max_length=255)
    body: str = Field(min_length=1, max_length=4000)
    category: NotificationCategory = NotificationCategory.UPDATE
    priority: NotificationPriority = NotificationPriority.MEDIUM


class ContactFields(SQLModel):
    """Contacts for template notifications; at least one must be given."""

    user_id: UUID
    first_name: str = Field(min_length=1, max_length=100)
    phone_number: str | None = Field(default=None, max_length=32)
    email: str | None = Field(default=None, max_length=320)
    language: str | None = Field(default=None, max_length=8)


class WelcomeNotificationRequest(ContactFields):
    role: str = Field(min_length=1, max_length=50)


class ApplicationConfirmationRequest(ContactFields):
    job_title: str = Field(min_length=1, max_length=200)
    company_name: str = Field(min_length=1, max_length=200)


class ApplicationStatusUpdateRequest(ContactFields):
    job_title: str = Field(min_length=1, max_length=200)
    status: str = Field(min_length=1, max_length=50)
    review_notes: str | None = Field(default=None, max_length=1000)


class DeadlineReminderRequest(ContactFields):
    title: str = Field(min_length=1, max_length=200)
    deadline: date


class UssdConfirmationRequest(SQLModel):
    """Schema for the SMS sent after a USSD registration."""

    user_id: UUID
    phone_number: str = Field(min_length=1, max_length=32)
    user_name: str = Field(min_length=1, max_length=100)
    confirmation_code: str = Field(min_length=1, max_length=32)
    language: str | None = Field(default=None, max_length=8)


class DeliverySummaryResponse(SQLModel):
    """Schema for the outcome of one dispatch."""

    record_id: UUID
    success: bool
    status: DeliveryStatus
    recipient: str
    message_id: str | None = None
    error: str | None = None
    will_retry: bool = False


class MultiChannelResponse(SQLModel):
    """Schema for template notifications sent on SMS and/or email."""

    user_id: UUID
    sms: DeliverySummaryResponse | None = None
    email: DeliverySummaryResponse | None = None


class NotificationStatsResponse(SQLModel):
    """Schema for delivery statistics over a period."""

    total_sent: int
    total_failed: int
    total_pending: int
    total_suppressed: int
    success_rate: float
    breakdown: dict[str, dict[str, int]]
    period: dict[str, datetime]


class HealthResponse(SQLModel):
    status: str
    sms: dict[str, Any]
    email: dict[str, Any]
