"""Retry worker: resubmits failed deliveries whose backoff has elapsed."""

from datetime import datetime
from typing import TYPE_CHECKING, Callable
from uuid import UUID

from notification_service.models.delivery import DeliveryRecord
from notification_service.services.delivery_log import DeliveryLogStore
from notification_service.workers.base import WorkerBase

if TYPE_CHECKING:
    from notification_service.services.dispatcher import DeliveryHandle, Dispatcher


class RetryWorker(WorkerBase[DeliveryRecord]):
    """Finds retryable FAILED records and hands them back to the dispatcher.

    Claiming goes through ``Dispatcher.resubmit``, which flips the record
    FAILED -> PENDING with a conditional update. A record already claimed
    by an overlapping sweep is skipped.
    """

    def __init__(
        self,
        store: DeliveryLogStore,
        dispatcher: "Dispatcher",
        batch_size: int = 100,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        super().__init__(batch_size=batch_size)
        self.store = store
        self.dispatcher = dispatcher
        self._clock = clock

    @property
    def worker_name(self) -> str:
        return "RetryWorker"

    def fetch_pending(self) -> list[DeliveryRecord]:
        return self.store.find_retryable(self._clock(), limit=self.batch_size)

    def claim(self, item: DeliveryRecord) -> "DeliveryHandle | None":
        return self.dispatcher.resubmit(item.id)

    def process_item(self, item: DeliveryRecord, claimed: "DeliveryHandle") -> None:
        # The send itself runs on the retry pool; nothing to wait for here.
        self._logger.debug(
            f"[{self.worker_name}] Resubmitted {item.id}",
            extra={"record_id": str(item.id), "retry_count": item.retry_count},
        )

    def get_item_id(self, item: DeliveryRecord) -> UUID:
        return item.id
