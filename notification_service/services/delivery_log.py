"""Delivery log store: persistence and state machine for DeliveryRecords.

Every mutation is a single-record update in its own session, so the store
can be shared by the worker pools and the retry sweep without cross-record
locking. Records are never deleted.
"""

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import Engine, func, update
from sqlmodel import Session, select

from notification_service.errors import InvalidTransitionError
from notification_service.models.delivery import DeliveryRecord, DeliveryStatus
from notification_service.models.request import NotificationRequest

logger = logging.getLogger(__name__)

ERROR_MESSAGE_LIMIT = 500


def compute_backoff(base_delay: timedelta, retry_count: int) -> timedelta:
    """Delay before the next attempt: ``base_delay * 2 ** (retry_count - 1)``.

    Args:
        base_delay: Delay after the first failure
        retry_count: Number of failed attempts so far (>= 1)
    """
    return base_delay * (2 ** max(retry_count - 1, 0))


class DeliveryLogStore:
    """SQLModel-backed store for delivery records."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _session(self) -> Session:
        return Session(self._engine, expire_on_commit=False)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        request: NotificationRequest,
        max_retries: int,
        now: datetime,
        silent: bool = False,
    ) -> DeliveryRecord:
        """Persist a new PENDING record for a validated request."""
        record = DeliveryRecord(
            user_id=request.user_id,
            channel=request.channel,
            recipient=request.recipient,
            subject=request.subject,
            content=request.content,
            html_content=request.html_content,
            category=request.category,
            priority=request.priority,
            silent=silent,
            status=DeliveryStatus.PENDING,
            retry_count=0,
            max_retries=max_retries,
            created_at=now,
            updated_at=now,
        )
        with self._session() as session:
            session.add(record)
            session.commit()
        return record

    def mark_sent(
        self,
        record_id: UUID,
        now: datetime,
        provider: str | None = None,
        provider_message_id: str | None = None,
    ) -> DeliveryRecord:
        """PENDING -> SENT."""
        with self._session() as session:
            record = self._load_pending(session, record_id, DeliveryStatus.SENT)
            record.status = DeliveryStatus.SENT
            record.sent_at = now
            record.updated_at = now
            record.provider = provider or record.provider
            record.provider_message_id = provider_message_id
            record.error_message = None
            record.next_retry_at = None
            session.add(record)
            session.commit()
        return record

    def mark_failed(
        self,
        record_id: UUID,
        error: str,
        now: datetime,
        base_delay: timedelta,
        provider: str | None = None,
        retryable: bool = True,
    ) -> DeliveryRecord:
        """PENDING -> FAILED, scheduling the next attempt while retries remain.

        A non-retryable failure consumes every remaining attempt so the
        record is terminal immediately.
        """
        with self._session() as session:
            record = self._load_pending(session, record_id, DeliveryStatus.FAILED)
            record.retry_count = (
                min(record.retry_count + 1, record.max_retries)
                if retryable
                else record.max_retries
            )
            record.status = DeliveryStatus.FAILED
            record.error_message = error[:ERROR_MESSAGE_LIMIT] if error else None
            record.provider = provider or record.provider
            record.updated_at = now

            if record.retry_count < record.max_retries:
                record.next_retry_at = now + compute_backoff(base_delay, record.retry_count)
            else:
                record.next_retry_at = None

            session.add(record)
            session.commit()
        return record

    def mark_suppressed(self, record_id: UUID, reason: str, now: datetime) -> DeliveryRecord:
        """PENDING -> SUPPRESSED. Suppressed records are never retried."""
        with self._session() as session:
            record = self._load_pending(session, record_id, DeliveryStatus.SUPPRESSED)
            record.status = DeliveryStatus.SUPPRESSED
            record.error_message = reason[:ERROR_MESSAGE_LIMIT]
            record.next_retry_at = None
            record.updated_at = now
            session.add(record)
            session.commit()
        return record

    def claim_for_retry(self, record_id: UUID, now: datetime) -> DeliveryRecord | None:
        """FAILED -> PENDING for a record that is still eligible.

        The transition is a conditional update, so when two sweeps race
        for the same record only one of them gets it back.

        Returns:
            The claimed record, or None if it was not eligible.
        """
        with self._session() as session:
            result = session.execute(
                update(DeliveryRecord)
                .where(DeliveryRecord.id == record_id)
                .where(DeliveryRecord.status == DeliveryStatus.FAILED)
                .where(DeliveryRecord.retry_count < DeliveryRecord.max_retries)
                .values(status=DeliveryStatus.PENDING, next_retry_at=None, updated_at=now)
            )
            session.commit()
            if result.rowcount != 1:
                logger.debug(
                    "Record not eligible for retry",
                    extra={"record_id": str(record_id)},
                )
                return None
            return session.get(DeliveryRecord, record_id)

    def _load_pending(
        self, session: Session, record_id: UUID, target: DeliveryStatus
    ) -> DeliveryRecord:
        record = session.get(DeliveryRecord, record_id)
        if record is None:
            raise KeyError(f"Delivery record {record_id} not found")
        if record.status != DeliveryStatus.PENDING:
            raise InvalidTransitionError(
                f"Cannot move record {record_id} from {record.status.value} to {target.value}"
            )
        return record

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: UUID) -> DeliveryRecord | None:
        with self._session() as session:
            return session.get(DeliveryRecord, record_id)

    def find_retryable(self, now: datetime, limit: int = 100) -> list[DeliveryRecord]:
        """Failed records whose backoff has elapsed and that have attempts left.

        Ordered by ``next_retry_at`` and limited to ``limit`` rows so a
        sweep after an outage does a bounded amount of work.
        """
        with self._session() as session:
            records = session.exec(
                select(DeliveryRecord)
                .where(DeliveryRecord.status == DeliveryStatus.FAILED)
                .where(DeliveryRecord.next_retry_at != None)  # noqa: E711
                .where(DeliveryRecord.next_retry_at <= now)
                .where(DeliveryRecord.retry_count < DeliveryRecord.max_retries)
                .order_by(DeliveryRecord.next_retry_at)
                .limit(limit)
            ).all()
        return list(records)

    def list_for_user(
        self, user_id: UUID, limit: int = 50, offset: int = 0
    ) -> tuple[list[DeliveryRecord], int]:
        """Newest-first page of a user's delivery history and the total count."""
        with self._session() as session:
            total = session.exec(
                select(func.count())
                .select_from(DeliveryRecord)
                .where(DeliveryRecord.user_id == user_id)
            ).one()
            records = session.exec(
                select(DeliveryRecord)
                .where(DeliveryRecord.user_id == user_id)
                .order_by(DeliveryRecord.created_at.desc())
                .offset(offset)
                .limit(limit)
            ).all()
        return list(records), total

    def stats(self, since: datetime, until: datetime) -> dict[str, Any]:
        """Counts per status and per channel for records created in a window."""
        with self._session() as session:
            rows = session.exec(
                select(DeliveryRecord.channel, DeliveryRecord.status, func.count())
                .where(DeliveryRecord.created_at >= since)
                .where(DeliveryRecord.created_at <= until)
                .group_by(DeliveryRecord.channel, DeliveryRecord.status)
            ).all()

        totals = {status.value: 0 for status in DeliveryStatus}
        breakdown: dict[str, dict[str, int]] = {}
        for channel, status, count in rows:
            totals[status.value] += count
            per_channel = breakdown.setdefault(
                channel.value, {s.value: 0 for s in DeliveryStatus}
            )
            per_channel[status.value] += count

        sent = totals[DeliveryStatus.SENT.value]
        failed = totals[DeliveryStatus.FAILED.value]
        success_rate = (sent / (sent + failed) * 100) if sent + failed else 0.0

        return {
            "total_sent": sent,
            "total_failed": failed,
            "total_pending": totals[DeliveryStatus.PENDING.value],
            "total_suppressed": totals[DeliveryStatus.SUPPRESSED.value],
            "success_rate": round(success_rate, 2),
            "breakdown": breakdown,
            "period": {"start": since.isoformat(), "end": until.isoformat()},
        }

