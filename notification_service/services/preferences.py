"""Preference gate: decides whether a notification may leave the dispatcher.

The gate is a pure function of the user's preferences, the channel,
the category and the current time. Preference storage is an external
collaborator reached through ``PreferenceSource``.
"""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Protocol
from uuid import UUID

from notification_service.models.delivery import NotificationCategory, NotificationChannel
from notification_service.models.preferences import NotificationPreferences

logger = logging.getLogger(__name__)

# Categories that are held back for users who asked for a digest
DIGEST_CATEGORIES: frozenset[NotificationCategory] = frozenset(
    {NotificationCategory.MARKETING, NotificationCategory.SOCIAL}
)


class GateDecision(str, Enum):
    """Outcome of a preference evaluation."""

    DELIVER = "deliver"
    DELIVER_SILENTLY = "deliver_silently"
    SUPPRESS_CHANNEL = "suppress_channel"
    SUPPRESS_CATEGORY = "suppress_category"
    SUPPRESS_QUIET_HOURS = "suppress_quiet_hours"
    SUPPRESS_DIGEST = "suppress_digest"

    @property
    def delivers(self) -> bool:
        return self in (GateDecision.DELIVER, GateDecision.DELIVER_SILENTLY)

    @property
    def reason(self) -> str:
        return {
            GateDecision.DELIVER: "delivered",
            GateDecision.DELIVER_SILENTLY: "delivered silently during quiet hours",
            GateDecision.SUPPRESS_CHANNEL: "channel disabled by user",
            GateDecision.SUPPRESS_CATEGORY: "category not enabled by user",
            GateDecision.SUPPRESS_QUIET_HOURS: "quiet hours",
            GateDecision.SUPPRESS_DIGEST: "held for digest",
        }[self]


class PreferenceGate:
    """Evaluates user preferences for a single notification."""

    def evaluate(
        self,
        prefs: NotificationPreferences,
        channel: NotificationChannel,
        category: NotificationCategory,
        now: datetime,
        urgent: bool = False,
    ) -> GateDecision:
        """Evaluate preferences in order: channel, category, quiet hours, digest.

        Urgent notifications are not suppressed by quiet hours; they are
        delivered silently instead.
        """
        if not prefs.is_channel_enabled(channel):
            return GateDecision.SUPPRESS_CHANNEL

        if not prefs.is_category_enabled(category):
            return GateDecision.SUPPRESS_CATEGORY

        if prefs.is_within_quiet_hours(now.time()):
            if urgent:
                return GateDecision.DELIVER_SILENTLY
            return GateDecision.SUPPRESS_QUIET_HOURS

        if prefs.is_digest and category in DIGEST_CATEGORIES:
            return GateDecision.SUPPRESS_DIGEST

        return GateDecision.DELIVER

    def should_deliver(
        self,
        prefs: NotificationPreferences,
        channel: NotificationChannel,
        category: NotificationCategory,
        now: datetime,
        urgent: bool = False,
    ) -> bool:
        return self.evaluate(prefs, channel, category, now, urgent).delivers


class PreferenceSource(Protocol):
    """Read access to user preferences."""

    def get(self, user_id: UUID) -> NotificationPreferences:
        ...


class InMemoryPreferenceSource:
    """Preference lookup backed by a dict, with defaults for unknown users.

    ``set`` is the write path for the external settings surface.
    """

    def __init__(self) -> None:
        self._preferences: dict[UUID, NotificationPreferences] = {}
        self._lock = threading.Lock()

    def get(self, user_id: UUID) -> NotificationPreferences:
        with self._lock:
            prefs = self._preferences.get(user_id)
        if prefs is None:
            logger.debug("No stored preferences, using defaults", extra={"user_id": str(user_id)})
            return NotificationPreferences(user_id=user_id)
        return prefs

    def set(self, prefs: NotificationPreferences) -> None:
        with self._lock:
            self._preferences[prefs.user_id] = prefs
        logger.info("Preferences updated", extra={"user_id": str(prefs.user_id)})

    def clear(self, user_id: UUID) -> None:
        with self._lock:
            self._preferences.pop(user_id, None)
