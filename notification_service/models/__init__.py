"""Models for the notification delivery engine."""

from notification_service.models.delivery import (
    DeliveryRecord,
    DeliveryRecordListResponse,
    DeliveryRecordResponse,
    DeliveryStatus,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
)
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
from notification_service.models.preferences import (
    NotificationFrequency,
    NotificationPreferences,
)
from notification_service.models.request import NotificationRequest, NotificationTemplate

__all__ = [
    "DeliveryRecord",
    "DeliveryRecordResponse",
    "DeliveryRecordListResponse",
    "DeliveryStatus",
    "NotificationCategory",
    "NotificationChannel",
    "NotificationPriority",
    "NotificationFrequency",
    "NotificationPreferences",
    "NotificationRequest",
    "NotificationTemplate",
    "ApplicationConfirmationRequest",
    "ApplicationStatusUpdateRequest",
    "DeadlineReminderRequest",
    "DeliverySummaryResponse",
    "EmailRequest",
    "HealthResponse",
    "MultiChannelResponse",
    "NotificationStatsResponse",
    "PushRequest",
    "SmsRequest",
    "UssdConfirmationRequest",
    "WelcomeNotificationRequest",
]
