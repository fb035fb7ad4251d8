"""Push notification adapter for Firebase Cloud Messaging.

Push is best-effort: without a service-account credential file the
composition root registers a disabled adapter instead, and SMS and email
keep working.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

from notification_service.channels.base import ChannelAdapter, Outcome
from notification_service.errors import ConfigurationError
from notification_service.models.delivery import (
    DeliveryRecord,
    NotificationChannel,
    NotificationPriority,
)
from notification_service.services.recipients import mask_token

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class PushConfig:
    """Push gateway settings."""

    credentials_path: str | None
    app_name: str = "notification-service"
    ttl_seconds: int = DEFAULT_TTL_SECONDS


class PushAdapter(ChannelAdapter):
    """Sends push notifications through FCM."""

    def __init__(self, config: PushConfig, app: Any | None = None) -> None:
        """Initialize the adapter.

        Args:
            config: Push gateway settings
            app: Already-initialized Firebase app to reuse

        Raises:
            ConfigurationError: If no usable credential file is configured
        """
        self.config = config
        if app is None:
            app = self._initialize_app(config)
        self._app = app

    @staticmethod
    def _initialize_app(config: PushConfig) -> Any:
        if not config.credentials_path:
            raise ConfigurationError("Firebase credentials path is not configured")
        if not os.path.isfile(config.credentials_path):
            raise ConfigurationError(
                f"Firebase credentials file not found: {config.credentials_path}"
            )

        try:
            return firebase_admin.get_app(config.app_name)
        except ValueError:
            pass

        try:
            cred = credentials.Certificate(config.credentials_path)
        except (ValueError, OSError) as e:
            raise ConfigurationError(f"Invalid Firebase credentials: {e}") from e

        app = firebase_admin.initialize_app(cred, name=config.app_name)
        logger.info("Firebase app initialized", extra={"app_name": config.app_name})
        return app

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.PUSH

    @property
    def provider_name(self) -> str:
        return "fcm"

    def build_message(self, record: DeliveryRecord) -> messaging.Message:
        """Build the FCM message for a record.

        Silent records (urgent messages inside quiet hours) carry no sound.
        """
        sound = None if record.silent else "default"
        high = record.priority in (NotificationPriority.HIGH, NotificationPriority.URGENT)

        return messaging.Message(
            token=record.recipient,
            notification=messaging.Notification(title=record.subject, body=record.content),
            data={"record_id": str(record.id), "category": record.category.value},
            android=messaging.AndroidConfig(
                ttl=self.config.ttl_seconds,
                priority="high" if high else "normal",
                notification=messaging.AndroidNotification(sound=sound),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound=sound)),
            ),
        )

    def send(self, record: DeliveryRecord) -> Outcome:
        masked = mask_token(record.recipient)
        try:
            message_id = messaging.send(self.build_message(record), app=self._app)
        except (messaging.UnregisteredError, exceptions.InvalidArgumentError) as e:
            logger.warning(
                "Push token rejected",
                extra={"record_id": str(record.id), "token": masked, "error": str(e)},
            )
            return Outcome.terminal(f"Push token rejected: {e}")
        except exceptions.FirebaseError as e:
            logger.warning(
                "Push delivery failed",
                extra={"record_id": str(record.id), "token": masked, "error": str(e)},
            )
            return Outcome.retryable(f"Push delivery failed: {e}")
        except ValueError as e:
            return Outcome.terminal(f"Invalid push message: {e}")

        logger.info(
            "Push notification sent",
            extra={"record_id": str(record.id), "token": masked, "message_id": message_id},
        )
        return Outcome.sent(message_id)
