"""Composition root: builds the delivery engine from settings.

This is the only place that reads ``Settings``. Every component below
receives plain configuration objects through its constructor.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy import Engine

from notification_service.channels.base import ChannelAdapter, DisabledChannelAdapter
from notification_service.channels.email import EmailAdapter, SmtpConfig
from notification_service.channels.push import PushAdapter, PushConfig
from notification_service.channels.sms import SmsAdapter, SmsGatewayConfig
from notification_service.config import EngineConfig, Settings, get_settings
from notification_service.db.session import create_db_engine, init_db
from notification_service.errors import ConfigurationError
from notification_service.models.delivery import NotificationChannel
from notification_service.services.delivery_log import DeliveryLogStore
from notification_service.services.dispatcher import Dispatcher
from notification_service.services.notifications import NotificationService
from notification_service.services.preferences import (
    InMemoryPreferenceSource,
    PreferenceGate,
    PreferenceSource,
)
from notification_service.workers.pool import PoolConfig, PoolSet
from notification_service.workers.retry_worker import RetryWorker
from notification_service.workers.scheduler import RetryScheduler

logger = logging.getLogger(__name__)


@dataclass
class NotificationEngine:
    """Every long-lived component of the delivery engine."""

    config: EngineConfig
    db_engine: Engine
    store: DeliveryLogStore
    preferences: PreferenceSource
    adapters: dict[NotificationChannel, ChannelAdapter]
    pools: PoolSet
    dispatcher: Dispatcher
    scheduler: RetryScheduler
    service: NotificationService

    def start(self) -> None:
        self.scheduler.start()

    def shutdown(self) -> None:
        """Stop the sweep, drain both pools, then release provider clients."""
        self.scheduler.stop()
        drained = self.pools.shutdown(self.config.shutdown_grace_seconds)
        for adapter in self.adapters.values():
            adapter.close()
        logger.info("Notification engine stopped", extra={"drained": drained})


def _build_adapter(
    channel: NotificationChannel, factory: Callable[[], ChannelAdapter]
) -> ChannelAdapter:
    try:
        return factory()
    except ConfigurationError as e:
        logger.warning(
            f"{channel.value} channel disabled: {e}",
            extra={"channel": channel.value},
        )
        return DisabledChannelAdapter(channel, str(e))


def build_adapters(settings: Settings) -> dict[NotificationChannel, ChannelAdapter]:
    """Create one adapter per channel; missing credentials disable the channel."""
    sms_config = SmsGatewayConfig(
        username=settings.AT_USERNAME,
        api_key=settings.AT_API_KEY,
        sender_id=settings.AT_SENDER_ID or None,
        base_url=settings.AT_BASE_URL,
        connect_timeout=settings.PROVIDER_CONNECT_TIMEOUT,
        read_timeout=settings.PROVIDER_READ_TIMEOUT,
        default_region=settings.DEFAULT_PHONE_REGION,
    )
    smtp_config = SmtpConfig(
        host=settings.SMTP_HOST,
        from_address=settings.MAIL_FROM,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME or None,
        password=settings.SMTP_PASSWORD or None,
        use_tls=settings.SMTP_USE_TLS,
        timeout=settings.PROVIDER_CONNECT_TIMEOUT + settings.PROVIDER_READ_TIMEOUT,
    )
    push_config = PushConfig(credentials_path=settings.FIREBASE_CREDENTIALS_PATH or None)

    return {
        NotificationChannel.SMS: _build_adapter(
            NotificationChannel.SMS, lambda: SmsAdapter(sms_config)
        ),
        NotificationChannel.EMAIL: _build_adapter(
            NotificationChannel.EMAIL, lambda: EmailAdapter(smtp_config)
        ),
        NotificationChannel.PUSH: _build_adapter(
            NotificationChannel.PUSH, lambda: PushAdapter(push_config)
        ),
    }


def build_pools(settings: Settings) -> PoolSet:
    return PoolSet(
        primary=PoolConfig(
            name="notification-async-",
            core_size=settings.PRIMARY_POOL_CORE,
            max_size=settings.PRIMARY_POOL_MAX,
            queue_capacity=settings.PRIMARY_POOL_QUEUE,
        ),
        retry=PoolConfig(
            name="notification-retry-",
            core_size=settings.RETRY_POOL_CORE,
            max_size=settings.RETRY_POOL_MAX,
            queue_capacity=settings.RETRY_POOL_QUEUE,
        ),
    )


def build_engine(
    settings: Settings | None = None,
    db_engine: Engine | None = None,
    adapters: dict[NotificationChannel, ChannelAdapter] | None = None,
    preferences: PreferenceSource | None = None,
    pools: PoolSet | None = None,
    clock: Callable[[], datetime] = datetime.utcnow,
) -> NotificationEngine:
    """Wire the engine together.

    Args:
        settings: Settings to read (defaults to the environment)
        db_engine: Database engine (defaults to one built from DATABASE_URL)
        adapters: Channel adapters (defaults to ones built from settings)
        preferences: Preference lookup (defaults to in-memory)
        pools: Worker pools (defaults to ones sized from settings)
        clock: Time source for records, backoff and the gate
    """
    settings = settings or get_settings()
    settings.validate()
    config = settings.engine_config()

    if db_engine is None:
        db_engine = create_db_engine(settings.DATABASE_URL)
    init_db(db_engine)

    store = DeliveryLogStore(db_engine)
    preferences = preferences or InMemoryPreferenceSource()
    adapters = adapters if adapters is not None else build_adapters(settings)
    pools = pools or build_pools(settings)

    dispatcher = Dispatcher(
        store=store,
        gate=PreferenceGate(),
        preferences=preferences,
        adapters=adapters,
        pools=pools,
        config=config,
        clock=clock,
    )
    worker = RetryWorker(store, dispatcher, batch_size=config.batch_size, clock=clock)
    scheduler = RetryScheduler(worker, interval_seconds=config.retry_interval_seconds)
    service = NotificationService(dispatcher, store, settings.APP_BASE_URL, clock=clock)

    logger.info(
        "Notification engine built",
        extra={
            "channels": {
                channel.value: adapter.provider_name for channel, adapter in adapters.items()
            },
            "max_retries": config.max_retries,
            "retry_interval_seconds": config.retry_interval_seconds,
        },
    )

    return NotificationEngine(
        config=config,
        db_engine=db_engine,
        store=store,
        preferences=preferences,
        adapters=adapters,
        pools=pools,
        dispatcher=dispatcher,
        scheduler=scheduler,
        service=service,
    )
