"""Base worker abstraction for periodic sweeps.

A worker run is one cycle:
1. fetch_pending() - Get items that need work
2. claim() - Take ownership of an item (at most one claimant wins)
3. process_item() - Do the actual work

A failure on one item is logged and counted; the rest of the batch is
still processed.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

logger = logging.getLogger(__name__)


class WorkerStatus(str, Enum):
    """Status of a worker run."""

    SUCCESS = "success"
    PARTIAL = "partial"  # Some items processed, some failed
    FAILED = "failed"
    NO_WORK = "no_work"


@dataclass
class WorkerResult:
    """Result of a worker processing cycle.

    Attributes:
        status: Overall status of the worker run
        processed_count: Items claimed and handed off
        skipped_count: Items another claimant got first
        failed_count: Items that raised during processing
        duration_ms: Time taken for the cycle
        errors: Error details for failed items
    """

    status: WorkerStatus
    processed_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    duration_ms: float = 0.0
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "status": self.status.value,
            "processed_count": self.processed_count,
            "skipped_count": self.skipped_count,
            "failed_count": self.failed_count,
            "duration_ms": self.duration_ms,
            "errors": self.errors,
        }


T = TypeVar("T")


class WorkerBase(ABC, Generic[T]):
    """Abstract base class for periodic workers."""

    def __init__(self, batch_size: int = 100) -> None:
        self.batch_size = batch_size
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def worker_name(self) -> str:
        """Return the worker name for logging."""
        pass

    @abstractmethod
    def fetch_pending(self) -> list[T]:
        """Fetch up to ``batch_size`` items that need work."""
        pass

    @abstractmethod
    def claim(self, item: T) -> Any | None:
        """Take ownership of an item.

        Returns:
            Whatever process_item needs, or None if the item was already
            claimed elsewhere
        """
        pass

    @abstractmethod
    def process_item(self, item: T, claimed: Any) -> None:
        """Process a claimed item.

        Raises:
            Exception: If processing fails
        """
        pass

    @abstractmethod
    def get_item_id(self, item: T) -> UUID:
        """Get the unique identifier for an item."""
        pass

    def run(self) -> WorkerResult:
        """Execute one processing cycle."""
        start_time = datetime.utcnow()
        processed = 0
        skipped = 0
        failed = 0
        errors: list[dict[str, Any]] = []

        try:
            items = self.fetch_pending()
        except Exception as e:
            self._logger.error(
                f"[{self.worker_name}] Worker cycle failed",
                extra={"error": str(e)},
                exc_info=True,
            )
            return WorkerResult(
                status=WorkerStatus.FAILED,
                duration_ms=self._elapsed_ms(start_time),
                errors=[{"error": str(e)}],
            )

        if not items:
            self._logger.debug(f"[{self.worker_name}] No pending items")
            return WorkerResult(
                status=WorkerStatus.NO_WORK,
                duration_ms=self._elapsed_ms(start_time),
            )

        self._logger.info(f"[{self.worker_name}] Found {len(items)} items to process")

        for item in items:
            item_id = self.get_item_id(item)
            try:
                claimed = self.claim(item)
                if claimed is None:
                    skipped += 1
                    self._logger.debug(
                        f"[{self.worker_name}] Item {item_id} already claimed"
                    )
                    continue

                self.process_item(item, claimed)
                processed += 1

            except Exception as e:
                failed += 1
                error_msg = str(e)[:500]
                errors.append({"item_id": str(item_id), "error": error_msg})
                self._logger.error(
                    f"[{self.worker_name}] Failed to process item {item_id}",
                    extra={"item_id": str(item_id), "error": error_msg},
                    exc_info=True,
                )

        if failed == 0 and processed > 0:
            status = WorkerStatus.SUCCESS
        elif processed > 0 and failed > 0:
            status = WorkerStatus.PARTIAL
        elif failed > 0:
            status = WorkerStatus.FAILED
        else:
            status = WorkerStatus.NO_WORK

        result = WorkerResult(
            status=status,
            processed_count=processed,
            skipped_count=skipped,
            failed_count=failed,
            duration_ms=self._elapsed_ms(start_time),
            errors=errors,
        )

        self._logger.info(f"[{self.worker_name}] Cycle complete", extra=result.to_dict())
        return result

    def _elapsed_ms(self, start: datetime) -> float:
        return (datetime.utcnow() - start).total_seconds() * 1000
