"""Tests for the retry worker, the retry scheduler and end-to-end delivery."""

import time
from datetime import timedelta
from unittest.mock import AsyncMock, Mock, patch

import httpx

from notification_service.channels.base import Outcome
from notification_service.channels.email import EmailAdapter, SmtpConfig
from notification_service.channels.sms import SmsAdapter, SmsGatewayConfig
from notification_service.config import EngineConfig
from notification_service.models.delivery import DeliveryStatus, NotificationChannel
from notification_service.models.preferences import NotificationPreferences
from notification_service.models.request import NotificationRequest
from notification_service.services.dispatcher import Dispatcher
from notification_service.services.preferences import PreferenceGate
from notification_service.workers.base import WorkerStatus
from notification_service.workers.retry_worker import RetryWorker
from notification_service.workers.scheduler import RetryScheduler


def _sms(user_id, recipient="+256701234567"):
    return NotificationRequest(
        user_id=user_id,
        channel=NotificationChannel.SMS,
        recipient=recipient,
        content="Your application was received",
    )


def _wait_until(condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return False


def _settled(store, record_id):
    return lambda: store.get(record_id).status != DeliveryStatus.PENDING


# ============================================================================
# RetryWorker Tests
# ============================================================================

class TestRetryWorker:
    """Tests for one retry sweep."""

    def test_no_work(self, store, dispatcher, clock):
        worker = RetryWorker(store, dispatcher, clock=clock)

        result = worker.run()

        assert result.status == WorkerStatus.NO_WORK
        assert result.processed_count == 0

    def test_due_record_resubmitted(self, store, dispatcher, sms_adapter, clock, user_id):
        sms_adapter.outcomes = [Outcome.retryable("timeout")]
        first = dispatcher.dispatch(_sms(user_id)).result(timeout=5)
        clock.advance(timedelta(minutes=5))

        result = RetryWorker(store, dispatcher, clock=clock).run()

        assert result.status == WorkerStatus.SUCCESS
        assert result.processed_count == 1
        assert _wait_until(_settled(store, first.record_id))
        assert store.get(first.record_id).status == DeliveryStatus.SENT

    def test_record_not_due_left_alone(self, store, dispatcher, sms_adapter, clock, user_id):
        sms_adapter.outcomes = [Outcome.retryable("timeout")]
        dispatcher.dispatch(_sms(user_id)).result(timeout=5)
        clock.advance(timedelta(minutes=4))

        result = RetryWorker(store, dispatcher, clock=clock).run()

        assert result.status == WorkerStatus.NO_WORK
        assert len(sms_adapter.sent) == 1

    def test_already_claimed_record_skipped(self, store, dispatcher, sms_adapter, clock, user_id):
        """A record another sweep claimed first is counted as skipped."""
        sms_adapter.outcomes = [Outcome.retryable("timeout")]
        dispatcher.dispatch(_sms(user_id)).result(timeout=5)
        clock.advance(timedelta(minutes=5))
        racing = Mock()
        racing.resubmit.return_value = None

        result = RetryWorker(store, racing, clock=clock).run()

        assert result.skipped_count == 1
        assert result.processed_count == 0
        assert result.status == WorkerStatus.NO_WORK

    def test_one_bad_item_does_not_stop_the_batch(self, store, dispatcher, sms_adapter, clock, user_id):
        sms_adapter.outcomes = [Outcome.retryable("timeout"), Outcome.retryable("timeout")]
        dispatcher.dispatch(_sms(user_id)).result(timeout=5)
        dispatcher.dispatch(_sms(user_id)).result(timeout=5)
        clock.advance(timedelta(minutes=5))
        flaky = Mock()
        flaky.resubmit.side_effect = [RuntimeError("db hiccup"), Mock()]

        result = RetryWorker(store, flaky, clock=clock).run()

        assert result.status == WorkerStatus.PARTIAL
        assert result.failed_count == 1
        assert result.processed_count == 1

    def test_batch_size_limits_sweep(self, store, dispatcher, sms_adapter, clock, user_id):
        sms_adapter.outcomes = [Outcome.retryable("timeout") for _ in range(3)]
        for _ in range(3):
            dispatcher.dispatch(_sms(user_id)).result(timeout=5)
        clock.advance(timedelta(minutes=5))

        result = RetryWorker(store, dispatcher, batch_size=2, clock=clock).run()

        assert result.processed_count == 2


# ============================================================================
# RetryScheduler Tests
# ============================================================================

class TestRetryScheduler:
    """Tests for the periodic sweep thread."""

    def test_start_and_stop(self, store, dispatcher, clock):
        scheduler = RetryScheduler(RetryWorker(store, dispatcher, clock=clock), interval_seconds=0.05)

        scheduler.start()
        assert scheduler.is_running
        scheduler.start()
        scheduler.stop(timeout=5)

        assert not scheduler.is_running

    def test_background_sweeps_without_traffic(self, store, dispatcher, sms_adapter, clock, user_id):
        """Retries happen on the interval even when nothing new is dispatched."""
        sms_adapter.outcomes = [Outcome.retryable("timeout")]
        first = dispatcher.dispatch(_sms(user_id)).result(timeout=5)
        clock.advance(timedelta(minutes=5))
        scheduler = RetryScheduler(RetryWorker(store, dispatcher, clock=clock), interval_seconds=0.05)

        scheduler.start()
        try:
            assert _wait_until(
                lambda: store.get(first.record_id).status == DeliveryStatus.SENT
            )
        finally:
            scheduler.stop(timeout=5)

    def test_failing_tick_is_contained(self):
        worker = Mock()
        worker.run.side_effect = RuntimeError("database unavailable")
        scheduler = RetryScheduler(worker, interval_seconds=0.01)

        result = scheduler.run_once()

        assert result.status == WorkerStatus.FAILED
        assert result.errors == [{"error": "database unavailable"}]

    def test_loop_continues_after_failure(self):
        worker = Mock()
        worker.run.side_effect = [RuntimeError("boom"), Mock(processed_count=0, failed_count=0)]
        scheduler = RetryScheduler(worker, interval_seconds=0.01)

        iterations = scheduler.run_forever(max_iterations=2)

        assert iterations == 2
        assert worker.run.call_count == 2


# ============================================================================
# End-to-End Tests
# ============================================================================

class TestEndToEnd:
    """Full dispatch, failure, backoff and retry cycles."""

    def test_sms_failing_three_times_ends_failed(
        self, store, preferences, email_adapter, push_adapter, pools, clock, user_id
    ):
        """A gateway that always returns 500 leaves the record terminally FAILED."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500, text="Internal Server Error")

        sms = SmsAdapter(
            SmsGatewayConfig(username="sandbox", api_key="secret"),
            client=httpx.Client(transport=httpx.MockTransport(handler)),
        )
        dispatcher = _dispatcher(store, preferences, sms, email_adapter, push_adapter, pools, clock)
        scheduler = RetryScheduler(RetryWorker(store, dispatcher, clock=clock), interval_seconds=300)

        first = dispatcher.dispatch(_sms(user_id)).result(timeout=5)
        record_id = first.record_id
        record = store.get(record_id)
        assert record.status == DeliveryStatus.FAILED
        assert record.retry_count == 1
        assert record.next_retry_at == clock.now + timedelta(minutes=5)

        clock.advance(timedelta(minutes=5))
        assert scheduler.run_once().processed_count == 1
        assert _wait_until(_settled(store, record_id))
        record = store.get(record_id)
        assert record.retry_count == 2
        assert record.next_retry_at == clock.now + timedelta(minutes=10)

        clock.advance(timedelta(minutes=10))
        assert scheduler.run_once().processed_count == 1
        assert _wait_until(_settled(store, record_id))

        record = store.get(record_id)
        assert record.status == DeliveryStatus.FAILED
        assert record.retry_count == 3
        assert record.max_retries == 3
        assert record.next_retry_at is None
        assert record.error_message == "Unexpected response: 500"
        assert len(calls) == 3

        clock.advance(timedelta(days=1))
        assert scheduler.run_once().status == WorkerStatus.NO_WORK
        assert len(calls) == 3

    def test_email_disabled_suppressed_without_smtp(
        self, store, preferences, sms_adapter, push_adapter, pools, clock, user_id
    ):
        """Opting out of email suppresses the record and never touches SMTP."""
        preferences.set(NotificationPreferences(user_id=user_id, email_enabled=False))
        email = EmailAdapter(
            SmtpConfig(host="smtp.example.org", from_address="noreply@youthconnect.ug")
        )
        dispatcher = _dispatcher(store, preferences, sms_adapter, email, push_adapter, pools, clock)
        send = AsyncMock(return_value=({}, "250 OK"))

        with patch("notification_service.channels.email.aiosmtplib.send", send):
            handle = dispatcher.dispatch(
                NotificationRequest(
                    user_id=user_id,
                    channel=NotificationChannel.EMAIL,
                    recipient="jane@example.org",
                    subject="Welcome",
                    content="Welcome to Youth Connect",
                )
            )

        assert handle.done()
        record = store.get(handle.record_id)
        assert record.status == DeliveryStatus.SUPPRESSED
        assert record.next_retry_at is None
        send.assert_not_called()


def _dispatcher(store, preferences, sms, email, push, pools, clock):
    return Dispatcher(
        store=store,
        gate=PreferenceGate(),
        preferences=preferences,
        adapters={
            NotificationChannel.SMS: sms,
            NotificationChannel.EMAIL: email,
            NotificationChannel.PUSH: push,
        },
        pools=pools,
        config=EngineConfig(max_retries=3, base_backoff=timedelta(minutes=5)),
        clock=clock,
    )
