"""Channel adapters for SMS, email and push delivery."""

from notification_service.channels.base import (
    ChannelAdapter,
    DisabledChannelAdapter,
    Outcome,
    OutcomeKind,
)
from notification_service.channels.email import EmailAdapter, SmtpConfig
from notification_service.channels.push import PushAdapter, PushConfig
from notification_service.channels.sms import SmsAdapter, SmsGatewayConfig

__all__ = [
    "ChannelAdapter",
    "DisabledChannelAdapter",
    "Outcome",
    "OutcomeKind",
    "EmailAdapter",
    "SmtpConfig",
    "PushAdapter",
    "PushConfig",
    "SmsAdapter",
    "SmsGatewayConfig",
]
