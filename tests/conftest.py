"""Shared fixtures for delivery engine tests."""

import threading
from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from notification_service.channels.base import ChannelAdapter, Outcome
from notification_service.config import EngineConfig
from notification_service.db.session import create_db_engine, init_db
from notification_service.models.delivery import DeliveryRecord, NotificationChannel
from notification_service.services.delivery_log import DeliveryLogStore
from notification_service.services.dispatcher import Dispatcher
from notification_service.services.preferences import InMemoryPreferenceSource, PreferenceGate
from notification_service.workers.pool import PoolConfig, PoolSet


class FakeClock:
    """Settable time source."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class FakeAdapter(ChannelAdapter):
    """Adapter that replays scripted outcomes and records every send."""

    def __init__(self, channel: NotificationChannel, outcomes: list[Outcome] | None = None) -> None:
        self._channel = channel
        self.outcomes = list(outcomes or [])
        self.default = Outcome.sent("fake-message-id")
        self.sent: list[DeliveryRecord] = []
        self._lock = threading.Lock()

    @property
    def channel(self) -> NotificationChannel:
        return self._channel

    @property
    def provider_name(self) -> str:
        return "fake"

    def send(self, record: DeliveryRecord) -> Outcome:
        with self._lock:
            self.sent.append(record)
            if self.outcomes:
                return self.outcomes.pop(0)
            return self.default


@pytest.fixture
def clock():
    """Clock fixed at 2026-03-02 12:00 (outside default quiet hours)."""
    return FakeClock(datetime(2026, 3, 2, 12, 0, 0))


@pytest.fixture
def db_engine(tmp_path):
    """File-backed SQLite engine shared by the pool threads."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'notifications.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(db_engine):
    return DeliveryLogStore(db_engine)


@pytest.fixture
def preferences():
    return InMemoryPreferenceSource()


@pytest.fixture
def engine_config():
    return EngineConfig(max_retries=3, base_backoff=timedelta(minutes=5), batch_size=100)


@pytest.fixture
def sms_adapter():
    return FakeAdapter(NotificationChannel.SMS)


@pytest.fixture
def email_adapter():
    return FakeAdapter(NotificationChannel.EMAIL)


@pytest.fixture
def push_adapter():
    return FakeAdapter(NotificationChannel.PUSH)


@pytest.fixture
def pools():
    pool_set = PoolSet(
        primary=PoolConfig(name="test-primary-", core_size=1, max_size=4, queue_capacity=16),
        retry=PoolConfig(name="test-retry-", core_size=1, max_size=2, queue_capacity=8),
    )
    yield pool_set
    pool_set.shutdown(grace_seconds=5)


@pytest.fixture
def dispatcher(store, preferences, sms_adapter, email_adapter, push_adapter, pools, engine_config, clock):
    return Dispatcher(
        store=store,
        gate=PreferenceGate(),
        preferences=preferences,
        adapters={
            NotificationChannel.SMS: sms_adapter,
            NotificationChannel.EMAIL: email_adapter,
            NotificationChannel.PUSH: push_adapter,
        },
        pools=pools,
        config=engine_config,
        clock=clock,
    )


@pytest.fixture
def user_id():
    return uuid4()
