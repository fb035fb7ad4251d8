"""Services for the notification delivery engine.

Services:
- recipients.py: Recipient normalization and masking
- preferences.py: Preference gate and preference lookup
- delivery_log.py: Delivery record persistence and state machine
- dispatcher.py: Validation, gating and hand-off to the worker pools
- notifications.py: Inbound facade used by the HTTP layer
"""

from notification_service.services.delivery_log import DeliveryLogStore, compute_backoff
from notification_service.services.preferences import (
    GateDecision,
    InMemoryPreferenceSource,
    PreferenceGate,
    PreferenceSource,
)
from notification_service.services.recipients import mask_recipient, normalize_recipient

__all__ = [
    "DeliveryLogStore",
    "compute_backoff",
    "GateDecision",
    "InMemoryPreferenceSource",
    "PreferenceGate",
    "PreferenceSource",
    "mask_recipient",
    "normalize_recipient",
]
