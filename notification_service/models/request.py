"""Immutable notification request passed from callers to the dispatcher."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any
from uuid import UUID

from notification_service.models.delivery import (
    DeliveryRecord,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
)


class NotificationTemplate(str, Enum):
    """Built-in message templates."""

    WELCOME = "welcome"
    APPLICATION_CONFIRMATION = "application_confirmation"
    APPLICATION_STATUS_UPDATE = "application_status_update"
    DEADLINE_REMINDER = "deadline_reminder"
    USSD_CONFIRMATION = "ussd_confirmation"


@dataclass(frozen=True)
class NotificationRequest:
    """A single notification to deliver on one channel.

    Attributes:
        user_id: Owning user
        channel: Delivery channel
        recipient: Phone number, email address or device token
        content: Plain-text body (SMS text, email text part, push body)
        subject: Email subject or push title
        html_content: Optional HTML alternative for email
        category: Notification category
        priority: Sender priority
        template: Template the content was rendered from, if any
        language: Language the template was rendered in
    """

    user_id: UUID
    channel: NotificationChannel
    recipient: str
    content: str
    subject: str | None = None
    html_content: str | None = None
    category: NotificationCategory = NotificationCategory.TRANSACTIONAL
    priority: NotificationPriority = NotificationPriority.MEDIUM
    template: NotificationTemplate | None = None
    language: str | None = None

    @property
    def is_urgent(self) -> bool:
        return (
            self.category == NotificationCategory.ALERT
            or self.priority == NotificationPriority.URGENT
        )

    def with_recipient(self, recipient: str) -> "NotificationRequest":
        """Return a copy addressed to a normalized recipient."""
        return replace(self, recipient=recipient)

    def to_log_dict(self) -> dict[str, Any]:
        """Context for log lines. Does not include the recipient."""
        return {
            "user_id": str(self.user_id),
            "channel": self.channel.value,
            "category": self.category.value,
            "priority": self.priority.value,
            "template": self.template.value if self.template else None,
        }

    @classmethod
    def from_record(cls, record: DeliveryRecord) -> "NotificationRequest":
        """Rebuild the request a stored record was created from."""
        return cls(
            user_id=record.user_id,
            channel=record.channel,
            recipient=record.recipient,
            content=record.content,
            subject=record.subject,
            html_content=record.html_content,
            category=record.category,
            priority=record.priority,
        )
