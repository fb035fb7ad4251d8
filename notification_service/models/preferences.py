"""Per-user notification preferences consumed by the preference gate."""

from datetime import time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from notification_service.models.delivery import NotificationCategory, NotificationChannel


class NotificationFrequency(str, Enum):
    """How often a user wants non-essential notifications."""

    IMMEDIATE = "immediate"
    DAILY_DIGEST = "daily_digest"
    WEEKLY_DIGEST = "weekly_digest"


def is_within_quiet_hours(start: time, end: time, current: time) -> bool:
    """Check whether ``current`` falls inside the quiet window.

    A window whose start is after its end wraps midnight (22:00 to 07:00).
    Both boundaries are exclusive and an empty window (start == end) never
    matches.
    """
    if start > end:
        return current > start or current < end
    return start < current < end


class NotificationPreferences(BaseModel):
    """User notification preferences.

    Owned by the user through an external settings surface. The delivery
    engine only reads them.
    """

    user_id: UUID

    sms_enabled: bool = True
    email_enabled: bool = True
    push_enabled: bool = True
    in_app_enabled: bool = True

    frequency: NotificationFrequency = NotificationFrequency.IMMEDIATE
    digest_time: time = Field(default=time(8, 0))

    quiet_hours_enabled: bool = False
    quiet_hours_start: time = Field(default=time(22, 0))
    quiet_hours_end: time = Field(default=time(7, 0))

    # None or empty means every category is enabled
    enabled_categories: set[NotificationCategory] | None = None

    preferred_language: str = "en"

    @model_validator(mode="after")
    def _require_a_channel(self) -> "NotificationPreferences":
        if not self.has_any_channel_enabled():
            raise ValueError("At least one notification channel must be enabled")
        return self

    def is_channel_enabled(self, channel: NotificationChannel) -> bool:
        return {
            NotificationChannel.SMS: self.sms_enabled,
            NotificationChannel.EMAIL: self.email_enabled,
            NotificationChannel.PUSH: self.push_enabled,
            NotificationChannel.IN_APP: self.in_app_enabled,
        }[channel]

    def is_category_enabled(self, category: NotificationCategory) -> bool:
        if not self.enabled_categories:
            return True
        return category in self.enabled_categories

    def is_within_quiet_hours(self, current: time) -> bool:
        if not self.quiet_hours_enabled:
            return False
        return is_within_quiet_hours(self.quiet_hours_start, self.quiet_hours_end, current)

    def has_any_channel_enabled(self) -> bool:
        return self.sms_enabled or self.email_enabled or self.push_enabled or self.in_app_enabled

    @property
    def is_digest(self) -> bool:
        return self.frequency != NotificationFrequency.IMMEDIATE
