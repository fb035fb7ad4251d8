"""Dispatcher: validates, gates and hands notifications to the worker pools.

``dispatch`` never blocks on a provider call. It returns a DeliveryHandle
as soon as the record is persisted and the send is queued; the final
outcome is written to the delivery log by the pool thread.
"""

import logging
from collections.abc import Mapping
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from notification_service.channels.base import ChannelAdapter, Outcome, OutcomeKind
from notification_service.config import EngineConfig
from notification_service.errors import ExhaustedRetriesError, ValidationError
from notification_service.models.delivery import (
    DeliveryRecord,
    DeliveryStatus,
    NotificationChannel,
)
from notification_service.models.request import NotificationRequest
from notification_service.services.delivery_log import DeliveryLogStore
from notification_service.services.preferences import (
    GateDecision,
    PreferenceGate,
    PreferenceSource,
)
from notification_service.services.recipients import mask_recipient, normalize_recipient
from notification_service.workers.pool import PoolSet, WorkerPool

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
ExhaustedHook = Callable[[ExhaustedRetriesError], None]


@dataclass(frozen=True)
class DeliverySummary:
    """What a caller sees about one delivery.

    Attributes:
        record_id: Delivery record id
        success: False once the record is FAILED or SUPPRESSED
        status: Record status when the summary was taken
        recipient: Masked recipient
        message_id: Provider message id, once sent
        error: Failure or suppression reason
        will_retry: True while a FAILED record has attempts left
    """

    record_id: UUID
    success: bool
    status: DeliveryStatus
    recipient: str
    message_id: str | None = None
    error: str | None = None
    will_retry: bool = False

    @classmethod
    def from_record(cls, record: DeliveryRecord) -> "DeliverySummary":
        return cls(
            record_id=record.id,
            success=record.status in (DeliveryStatus.PENDING, DeliveryStatus.SENT),
            status=record.status,
            recipient=mask_recipient(record.channel, record.recipient),
            message_id=record.provider_message_id,
            error=record.error_message,
            will_retry=record.can_retry,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": str(self.record_id),
            "success": self.success,
            "status": self.status.value,
            "recipient": self.recipient,
            "message_id": self.message_id,
            "error": self.error,
            "will_retry": self.will_retry,
        }


class DeliveryHandle:
    """Handle on a dispatched notification.

    Callers may ignore it, read the accepted summary, or block on the
    final outcome.
    """

    def __init__(
        self,
        record_id: UUID,
        accepted: DeliverySummary,
        future: "Future[DeliverySummary] | None" = None,
    ) -> None:
        self.record_id = record_id
        self._accepted = accepted
        self._future = future

    def accepted(self) -> DeliverySummary:
        """Summary at the moment dispatch returned."""
        return self._accepted

    def done(self) -> bool:
        return self._future is None or self._future.done()

    def result(self, timeout: float | None = None) -> DeliverySummary:
        """Block until the send attempt finishes and return its summary.

        Raises:
            concurrent.futures.TimeoutError: If the attempt is still running
                after ``timeout`` seconds
        """
        if self._future is None:
            return self._accepted
        return self._future.result(timeout)


def log_exhausted(error: ExhaustedRetriesError) -> None:
    """Default monitoring hook for records that used up every attempt."""
    record = error.record
    logger.error(
        f"Delivery {record.id} exhausted retries",
        extra={
            "record_id": str(record.id),
            "channel": record.channel.value,
            "recipient": mask_recipient(record.channel, record.recipient),
            "retry_count": record.retry_count,
            "error": record.error_message,
        },
    )


class Dispatcher:
    """Entry point for every outbound notification."""

    def __init__(
        self,
        store: DeliveryLogStore,
        gate: PreferenceGate,
        preferences: PreferenceSource,
        adapters: Mapping[NotificationChannel, ChannelAdapter],
        pools: PoolSet,
        config: EngineConfig,
        clock: Clock = datetime.utcnow,
        on_exhausted: ExhaustedHook = log_exhausted,
    ) -> None:
        self.store = store
        self.gate = gate
        self.preferences = preferences
        self.adapters = dict(adapters)
        self.pools = pools
        self.config = config
        self._clock = clock
        self._on_exhausted = on_exhausted

    def validate(self, request: NotificationRequest) -> NotificationRequest:
        """Return the request with its recipient normalized.

        Raises:
            ValidationError: If the recipient is malformed or the channel
                has no adapter
        """
        recipient = normalize_recipient(
            request.channel, request.recipient, self.config.default_region
        )
        if request.channel not in self.adapters:
            raise ValidationError(
                f"No adapter registered for channel {request.channel.value}", field="channel"
            )
        return request.with_recipient(recipient)

    def dispatch(self, request: NotificationRequest) -> DeliveryHandle:
        """Validate, record, gate and queue a notification.

        Raises:
            ValidationError: If the recipient is malformed or the channel
                has no adapter. Nothing is persisted in that case.
        """
        request = self.validate(request)

        now = self._clock()
        prefs = self.preferences.get(request.user_id)
        decision = self.gate.evaluate(
            prefs, request.channel, request.category, now, urgent=request.is_urgent
        )

        record = self.store.create(
            request,
            self.config.max_retries,
            now,
            silent=decision == GateDecision.DELIVER_SILENTLY,
        )
        log_context = {
            **request.to_log_dict(),
            "record_id": str(record.id),
            "recipient": mask_recipient(record.channel, record.recipient),
            "decision": decision.value,
        }

        if not decision.delivers:
            record = self.store.mark_suppressed(record.id, decision.reason, now)
            logger.info("Notification suppressed by preferences", extra=log_context)
            return DeliveryHandle(record.id, DeliverySummary.from_record(record))

        logger.info("Notification accepted", extra=log_context)
        return self._submit(self.pools.primary, record)

    def resubmit(self, record_id: UUID) -> DeliveryHandle | None:
        """Send a failed record again on the retry pool.

        The preference gate is not consulted again; it already allowed
        this record once.

        Returns:
            A handle, or None if the record is no longer eligible
        """
        record = self.store.claim_for_retry(record_id, self._clock())
        if record is None:
            return None

        request = NotificationRequest.from_record(record)
        logger.info(
            f"Retrying delivery {record.id}",
            extra={
                **request.to_log_dict(),
                "record_id": str(record.id),
                "recipient": mask_recipient(record.channel, record.recipient),
                "attempt": record.retry_count + 1,
                "max_retries": record.max_retries,
            },
        )
        return self._submit(self.pools.retry, record)

    def _submit(self, pool: WorkerPool, record: DeliveryRecord) -> DeliveryHandle:
        accepted = DeliverySummary.from_record(record)
        try:
            future = pool.submit(self._deliver, record)
        except RuntimeError as e:
            # Pool is shut down; leave the record for the next sweep
            logger.warning(
                f"Could not queue delivery {record.id}",
                extra={"record_id": str(record.id), "pool": pool.name, "error": str(e)},
            )
            record = self.store.mark_failed(
                record.id, f"Not queued: {e}", self._clock(), self.config.base_backoff
            )
            return DeliveryHandle(record.id, DeliverySummary.from_record(record))

        future.add_done_callback(lambda f: self._on_cancelled(record, f))
        return DeliveryHandle(record.id, accepted, future)

    def _on_cancelled(self, record: DeliveryRecord, future: Future) -> None:
        """Hand a send cancelled at pool shutdown back to the retry sweep."""
        if future.cancelled():
            self._fail_unfinished(record, "Cancelled at shutdown")

    def _fail_unfinished(self, record: DeliveryRecord, reason: str) -> None:
        # PENDING records are never swept, so a send that did not finish
        # must end FAILED to be retried
        try:
            self.store.mark_failed(record.id, reason, self._clock(), self.config.base_backoff)
        except Exception:
            logger.error(
                f"Could not mark delivery {record.id} failed",
                extra={"record_id": str(record.id), "reason": reason},
                exc_info=True,
            )
            return
        logger.warning(
            f"Delivery {record.id} did not finish, left for the retry sweep",
            extra={"record_id": str(record.id), "reason": reason},
        )

    def _deliver(self, record: DeliveryRecord) -> DeliverySummary:
        """Run one send attempt and record its outcome. Never raises."""
        adapter = self.adapters[record.channel]
        try:
            outcome = adapter.send(record)
        except Exception as e:
            logger.error(
                f"Adapter {adapter.provider_name} raised while sending {record.id}",
                extra={"record_id": str(record.id), "error": str(e)},
                exc_info=True,
            )
            outcome = Outcome.retryable(f"Unexpected error: {e}")

        try:
            updated = self._record_outcome(record, adapter, outcome)
        except Exception as e:
            logger.error(
                f"Failed to record outcome for delivery {record.id}",
                extra={"record_id": str(record.id), "outcome": outcome.kind.value},
                exc_info=True,
            )
            self._fail_unfinished(record, f"Outcome not recorded: {e}")
            return DeliverySummary(
                record_id=record.id,
                success=False,
                status=record.status,
                recipient=mask_recipient(record.channel, record.recipient),
                error=str(e),
            )

        return DeliverySummary.from_record(updated)

    def _record_outcome(
        self, record: DeliveryRecord, adapter: ChannelAdapter, outcome: Outcome
    ) -> DeliveryRecord:
        now = self._clock()

        if outcome.kind == OutcomeKind.SENT:
            return self.store.mark_sent(
                record.id,
                now,
                provider=adapter.provider_name,
                provider_message_id=outcome.provider_message_id,
            )

        if outcome.kind == OutcomeKind.SKIPPED:
            logger.info(
                f"Delivery {record.id} skipped",
                extra={"record_id": str(record.id), "reason": outcome.error},
            )
            return self.store.mark_suppressed(record.id, outcome.error or "skipped", now)

        updated = self.store.mark_failed(
            record.id,
            outcome.error or "Unknown error",
            now,
            self.config.base_backoff,
            provider=adapter.provider_name,
            retryable=outcome.kind == OutcomeKind.RETRYABLE,
        )
        if updated.can_retry:
            logger.warning(
                f"Delivery {record.id} failed, retry scheduled",
                extra={
                    "record_id": str(record.id),
                    "retry_count": updated.retry_count,
                    "next_retry_at": updated.next_retry_at.isoformat()
                    if updated.next_retry_at
                    else None,
                },
            )
        else:
            self._notify_exhausted(updated)
        return updated

    def _notify_exhausted(self, record: DeliveryRecord) -> None:
        try:
            self._on_exhausted(ExhaustedRetriesError(record))
        except Exception:
            logger.error(
                "Exhausted-retries hook raised",
                extra={"record_id": str(record.id)},
                exc_info=True,
            )
