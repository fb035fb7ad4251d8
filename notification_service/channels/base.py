"""Channel adapter interface and the Outcome value adapters return."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from notification_service.models.delivery import DeliveryRecord, NotificationChannel


class OutcomeKind(str, Enum):
    """How a single delivery attempt ended."""

    SENT = "sent"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Outcome:
    """Result of one provider call.

    Callers branch on ``kind`` instead of catching exceptions.
    """

    kind: OutcomeKind
    provider_message_id: str | None = None
    error: str | None = None

    @classmethod
    def sent(cls, provider_message_id: str | None = None) -> "Outcome":
        return cls(OutcomeKind.SENT, provider_message_id=provider_message_id)

    @classmethod
    def retryable(cls, error: str) -> "Outcome":
        return cls(OutcomeKind.RETRYABLE, error=error)

    @classmethod
    def terminal(cls, error: str) -> "Outcome":
        return cls(OutcomeKind.TERMINAL, error=error)

    @classmethod
    def skipped(cls, reason: str) -> "Outcome":
        return cls(OutcomeKind.SKIPPED, error=reason)

    @property
    def success(self) -> bool:
        return self.kind == OutcomeKind.SENT


class ChannelAdapter(ABC):
    """Translates a delivery record into a provider call.

    Implementations must not raise; every failure is returned as an
    Outcome.
    """

    @property
    @abstractmethod
    def channel(self) -> NotificationChannel:
        """Channel this adapter delivers on."""
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier stored on the record."""
        pass

    @abstractmethod
    def send(self, record: DeliveryRecord) -> Outcome:
        """Deliver a record and report the outcome."""
        pass

    def close(self) -> None:
        """Release provider resources."""


class DisabledChannelAdapter(ChannelAdapter):
    """Stand-in for a channel whose credentials are missing.

    Sends are skipped, so the record is suppressed instead of retried.
    """

    def __init__(self, channel: NotificationChannel, reason: str) -> None:
        self._channel = channel
        self.reason = reason

    @property
    def channel(self) -> NotificationChannel:
        return self._channel

    @property
    def provider_name(self) -> str:
        return "disabled"

    def send(self, record: DeliveryRecord) -> Outcome:
        return Outcome.skipped(f"{self._channel.value} channel not configured: {self.reason}")
