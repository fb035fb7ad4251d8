"""DeliveryRecord entity model: the durable audit trail of every send."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, Index, Text
from sqlmodel import Field, SQLModel


class NotificationChannel(str, Enum):
    """Notification delivery channels."""

    SMS = "sms"
    EMAIL = "email"
    PUSH = "push"
    IN_APP = "in_app"


class NotificationCategory(str, Enum):
    """What a notification is about; drives opt-in and quiet-hour rules."""

    TRANSACTIONAL = "transactional"
    ALERT = "alert"
    REMINDER = "reminder"
    UPDATE = "update"
    MARKETING = "marketing"
    SOCIAL = "social"


class NotificationPriority(str, Enum):
    """Sender-assigned priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class DeliveryStatus(str, Enum):
    """Delivery lifecycle status.

    PENDING -> SENT | FAILED, FAILED -> PENDING while retries remain,
    PENDING -> SUPPRESSED. SENT and SUPPRESSED are terminal; FAILED is
    terminal once retry_count reaches max_retries.
    """

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    SUPPRESSED = "suppressed"


class DeliveryRecord(SQLModel, table=True):
    """Delivery record database model.

    The recipient is stored unmasked because it is the value used for
    delivery. Mask it before it reaches a log line or a response.
    """

    __tablename__ = "delivery_records"
    __table_args__ = (
        Index("ix_delivery_records_status_next_retry_at", "status", "next_retry_at"),
        Index("ix_delivery_records_user_id_created_at", "user_id", "created_at"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID
    channel: NotificationChannel
    recipient: str = Field(max_length=512)
    subject: str | None = Field(default=None, max_length=255)
    content: str = Field(sa_column=Column(Text, nullable=False))
    html_content: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    category: NotificationCategory = Field(default=NotificationCategory.TRANSACTIONAL)
    priority: NotificationPriority = Field(default=NotificationPriority.MEDIUM)
    silent: bool = Field(default=False)
    status: DeliveryStatus = Field(default=DeliveryStatus.PENDING)

    retry_count: int = Field(default=0)
    max_retries: int = Field(default=3)
    next_retry_at: datetime | None = Field(default=None, sa_type=DateTime)

    provider: str | None = Field(default=None, max_length=50)
    provider_message_id: str | None = Field(default=None, max_length=255)
    error_message: str | None = Field(default=None, max_length=500)

    # Naive UTC, stored in plain DateTime columns
    created_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
    sent_at: datetime | None = Field(default=None, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)

    @property
    def can_retry(self) -> bool:
        return self.status == DeliveryStatus.FAILED and self.retry_count < self.max_retries


class DeliveryRecordResponse(SQLModel):
    """Schema for delivery record responses (recipient already masked)."""

    id: UUID
    user_id: UUID
    channel: NotificationChannel
    recipient: str
    subject: str | None
    category: NotificationCategory
    status: DeliveryStatus
    retry_count: int
    max_retries: int
    next_retry_at: datetime | None
    provider: str | None
    provider_message_id: str | None
    error_message: str | None
    created_at: datetime
    sent_at: datetime | None
    updated_at: datetime

    model_config = {"from_attributes": True}


class DeliveryRecordListResponse(SQLModel):
    """Schema for a page of a user's delivery history."""

    notifications: list[DeliveryRecordResponse]
    total: int
