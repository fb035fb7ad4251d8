"""Error taxonomy for the notification delivery engine."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from notification_service.models.delivery import DeliveryRecord


class NotificationError(Exception):
    """Base class for notification delivery errors."""


class ValidationError(NotificationError):
    """Malformed recipient or unsupported request.

    Raised synchronously from dispatch, before anything is persisted.
    """

    def __init__(self, message: str, field: str = "recipient") -> None:
        super().__init__(message)
        self.field = field


class ProviderError(NotificationError):
    """A provider rejected or failed a send (non-2xx, connection, timeout)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(NotificationError):
    """Credentials or settings for a channel are missing."""


class InvalidTransitionError(NotificationError):
    """A delivery record was asked to make an illegal state transition."""


class ExhaustedRetriesError(NotificationError):
    """A delivery record failed its final allowed attempt."""

    def __init__(self, record: "DeliveryRecord") -> None:
        super().__init__(
            f"Delivery {record.id} failed after {record.retry_count} attempts: "
            f"{record.error_message}"
        )
        self.record = record
