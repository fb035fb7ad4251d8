"""Tests for the notification facade and its HTTP endpoints."""

import time
from datetime import date, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from notification_service.api.notifications import router
from notification_service.channels.base import Outcome
from notification_service.config import Settings
from notification_service.engine import build_engine
from notification_service.errors import ValidationError
from notification_service.models.delivery import (
    DeliveryStatus,
    NotificationCategory,
    NotificationChannel,
)
from notification_service.models.notifications import (
    ApplicationStatusUpdateRequest,
    DeadlineReminderRequest,
    SmsRequest,
    UssdConfirmationRequest,
    WelcomeNotificationRequest,
)
from notification_service.models.preferences import NotificationPreferences


@pytest.fixture
def engine(db_engine, sms_adapter, email_adapter, push_adapter, preferences, pools, clock):
    """Engine wired to fake adapters; the retry sweep is not started."""
    return build_engine(
        settings=Settings(),
        db_engine=db_engine,
        adapters={
            NotificationChannel.SMS: sms_adapter,
            NotificationChannel.EMAIL: email_adapter,
            NotificationChannel.PUSH: push_adapter,
        },
        preferences=preferences,
        pools=pools,
        clock=clock,
    )


@pytest.fixture
def service(engine):
    return engine.service


@pytest.fixture
def client(engine):
    app = FastAPI()
    app.include_router(router)
    app.state.engine = engine
    return TestClient(app)


def _wait_for_sends(adapter, count, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if len(adapter.sent) >= count:
            return True
        time.sleep(0.01)
    return False


# ============================================================================
# NotificationService Tests
# ============================================================================

class TestNotificationService:
    """Tests for the facade the rest of the platform calls."""

    def test_send_sms_returns_accepted_summary(self, service, sms_adapter, user_id):
        summary = service.send_sms(
            SmsRequest(user_id=user_id, phone_number="0701234567", message="Hello")
        )

        assert summary.success
        assert summary.status == DeliveryStatus.PENDING
        assert summary.recipient == "+256****4567"
        assert _wait_for_sends(sms_adapter, 1)

    def test_send_sms_wait_returns_outcome(self, service, user_id):
        summary = service.send_sms(
            SmsRequest(user_id=user_id, phone_number="0701234567", message="Hello"), wait=True
        )

        assert summary.status == DeliveryStatus.SENT
        assert summary.message_id == "fake-message-id"

    def test_welcome_on_both_channels(self, service, sms_adapter, email_adapter, user_id):
        result = service.send_welcome_notification(
            WelcomeNotificationRequest(
                user_id=user_id,
                first_name="Jane",
                phone_number="+256701234567",
                email="jane@example.org",
                role="YOUTH",
            ),
            wait=True,
        )

        assert result["user_id"] == user_id
        assert result["sms"].status == DeliveryStatus.SENT
        assert result["email"].status == DeliveryStatus.SENT
        assert "Jane" in sms_adapter.sent[0].content
        assert email_adapter.sent[0].html_content

    def test_email_only_when_no_phone(self, service, sms_adapter, user_id):
        result = service.send_deadline_reminder(
            DeadlineReminderRequest(
                user_id=user_id,
                first_name="Jane",
                email="jane@example.org",
                title="Digital Skills Grant",
                deadline=date(2026, 3, 10),
            ),
            wait=True,
        )

        assert result["sms"] is None
        assert result["email"].status == DeliveryStatus.SENT
        assert sms_adapter.sent == []

    def test_missing_contacts_rejected(self, service, user_id):
        with pytest.raises(ValidationError):
            service.send_welcome_notification(
                WelcomeNotificationRequest(user_id=user_id, first_name="Jane", role="YOUTH")
            )

    def test_bad_email_sends_nothing(self, service, store, sms_adapter, user_id):
        """A bad address on one channel stops the whole template send."""
        with pytest.raises(ValidationError):
            service.send_welcome_notification(
                WelcomeNotificationRequest(
                    user_id=user_id,
                    first_name="Jane",
                    phone_number="+256701234567",
                    email="not-an-email",
                    role="YOUTH",
                )
            )

        _records, total = store.list_for_user(user_id)
        assert total == 0
        assert sms_adapter.sent == []

    def test_status_update_uses_update_category(self, service, store, user_id):
        result = service.send_application_status_update(
            ApplicationStatusUpdateRequest(
                user_id=user_id,
                first_name="Jane",
                phone_number="+256701234567",
                job_title="Data Clerk",
                status="APPROVED",
            ),
            wait=True,
        )

        record = store.get(result["sms"].record_id)
        assert record.category == NotificationCategory.UPDATE

    def test_language_falls_back_to_preferences(self, service, preferences, sms_adapter, user_id):
        preferences.set(NotificationPreferences(user_id=user_id, preferred_language="lg"))

        service.send_ussd_confirmation(
            UssdConfirmationRequest(
                user_id=user_id,
                phone_number="+256701234567",
                user_name="Jane",
                confirmation_code="ABC123",
            ),
            wait=True,
        )

        english = service.send_ussd_confirmation(
            UssdConfirmationRequest(
                user_id=user_id,
                phone_number="+256701234567",
                user_name="Jane",
                confirmation_code="ABC123",
                language="en",
            ),
            wait=True,
        )

        assert english.status == DeliveryStatus.SENT
        assert sms_adapter.sent[0].content != sms_adapter.sent[1].content

    def test_user_history_is_masked(self, service, user_id):
        service.send_sms(
            SmsRequest(user_id=user_id, phone_number="+256701234567", message="Hello"), wait=True
        )

        history = service.get_user_notifications(user_id)

        assert history.total == 1
        assert history.notifications[0].recipient == "+256****4567"

    def test_stats_counts_outcomes(self, service, sms_adapter, user_id):
        sms_adapter.outcomes = [Outcome.terminal("Recipient blocked")]
        for _ in range(2):
            service.send_sms(
                SmsRequest(user_id=user_id, phone_number="+256701234567", message="Hello"),
                wait=True,
            )

        stats = service.get_notification_stats()

        assert stats["total_sent"] == 1
        assert stats["total_failed"] == 1
        assert stats["success_rate"] == 50.0
        assert stats["breakdown"]["sms"]["sent"] == 1

    def test_stats_rejects_inverted_period(self, service, clock):
        with pytest.raises(ValidationError):
            service.get_notification_stats(start=clock.now, end=clock.now - timedelta(days=1))

    def test_health_reports_adapters_without_probe(self, service):
        health = service.check_sms_health()

        assert health["healthy"] is False
        assert health["status"] == "DISABLED"
        assert health["provider"] == "fake"


# ============================================================================
# HTTP Endpoint Tests
# ============================================================================

class TestNotificationEndpoints:
    """Tests for the /api/notifications routes."""

    def test_send_sms(self, client, user_id):
        response = client.post(
            "/api/notifications/sms",
            json={"user_id": str(user_id), "phone_number": "0701234567", "message": "Hello"},
        )

        assert response.status_code == 202
        body = response.json()
        assert body["success"] is True
        assert body["recipient"] == "+256****4567"

    def test_send_sms_bad_phone(self, client, user_id):
        response = client.post(
            "/api/notifications/sms",
            json={"user_id": str(user_id), "phone_number": "12345", "message": "Hello"},
        )

        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "recipient"

    def test_send_email_suppressed(self, client, preferences, email_adapter, user_id):
        preferences.set(NotificationPreferences(user_id=user_id, email_enabled=False))

        response = client.post(
            "/api/notifications/email",
            json={
                "user_id": str(user_id),
                "to_email": "jane@example.org",
                "subject": "Hi",
                "text_content": "Hello",
            },
        )

        assert response.status_code == 202
        body = response.json()
        assert body["success"] is False
        assert body["status"] == "suppressed"
        assert email_adapter.sent == []

    def test_send_push(self, client, user_id):
        response = client.post(
            "/api/notifications/push",
            json={
                "user_id": str(user_id),
                "device_token": "fcm-device-token-0123456789",
                "title": "New opportunity",
                "body": "A new grant matches your profile",
            },
        )

        assert response.status_code == 202
        assert response.json()["recipient"] == "fcm-de****6789"

    def test_welcome_multi_channel(self, client, user_id):
        response = client.post(
            "/api/notifications/welcome",
            json={
                "user_id": str(user_id),
                "first_name": "Jane",
                "phone_number": "+256701234567",
                "email": "jane@example.org",
                "role": "YOUTH",
            },
        )

        assert response.status_code == 202
        body = response.json()
        assert body["sms"]["success"] is True
        assert body["email"]["recipient"] == "j****@example.org"

    def test_welcome_without_contacts(self, client, user_id):
        response = client.post(
            "/api/notifications/welcome",
            json={"user_id": str(user_id), "first_name": "Jane", "role": "YOUTH"},
        )

        assert response.status_code == 422

    def test_user_history(self, client, service, user_id):
        service.send_sms(
            SmsRequest(user_id=user_id, phone_number="+256701234567", message="Hello"), wait=True
        )

        response = client.get(f"/api/notifications/users/{user_id}", params={"limit": 10})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["notifications"][0]["status"] == "sent"

    def test_stats(self, client):
        response = client.get("/api/notifications/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["total_sent"] == 0
        assert set(body["period"]) == {"start", "end"}

    def test_providers_health(self, client):
        response = client.get("/api/notifications/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "DEGRADED"
        assert body["sms"]["status"] == "DISABLED"

    def test_engine_not_running(self):
        app = FastAPI()
        app.include_router(router)

        response = TestClient(app).get("/api/notifications/stats")

        assert response.status_code == 503


class TestApplicationHealth:
    def test_health_check(self):
        from notification_service.main import app

        response = TestClient(app).get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
