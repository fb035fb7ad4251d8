"""Recipient validation, normalization and masking.

Normalization runs before a delivery record exists, so a malformed
recipient never reaches the store or a provider. Masking is for log lines
and responses only; the stored recipient is always the normalized value.
"""

import re

import phonenumbers

from notification_service.errors import ValidationError
from notification_service.models.delivery import NotificationChannel

MASK = "****"

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s.]+$")
_PHONE_CHARS = re.compile(r"[^+0-9]")


def normalize_phone(phone_number: str | None, default_region: str = "UG") -> str:
    """Normalize a phone number to E.164 (``+256701234567``).

    Accepts international (``+256701234567``), country-code
    (``256701234567``), local (``0701234567``) and bare (``701234567``)
    forms, with any spacing or punctuation.

    Raises:
        ValidationError: If the number is empty or not a valid number.
    """
    if phone_number is None or not phone_number.strip():
        raise ValidationError("Phone number cannot be empty")

    cleaned = _PHONE_CHARS.sub("", phone_number)
    if not cleaned or cleaned == "+":
        raise ValidationError("Phone number must contain digits")

    try:
        parsed = phonenumbers.parse(cleaned, default_region)
    except phonenumbers.NumberParseException as e:
        raise ValidationError(f"Invalid phone number: {e}") from e

    if not phonenumbers.is_valid_number(parsed):
        raise ValidationError("Invalid phone number for its region")

    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def normalize_email(email: str | None) -> str:
    """Strip an email address and lower-case its domain."""
    if email is None or not email.strip():
        raise ValidationError("Email address cannot be empty")

    email = email.strip()
    if not _EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email address")

    local, domain = email.rsplit("@", 1)
    return f"{local}@{domain.lower()}"


def normalize_device_token(token: str | None) -> str:
    if token is None or not token.strip():
        raise ValidationError("Device token cannot be empty")
    if any(ch.isspace() for ch in token.strip()):
        raise ValidationError("Device token must not contain whitespace")
    return token.strip()


def normalize_recipient(
    channel: NotificationChannel, recipient: str | None, default_region: str = "UG"
) -> str:
    """Validate and normalize a recipient for the given channel.

    Raises:
        ValidationError: If the recipient is malformed or the channel has
            no delivery adapter.
    """
    if channel == NotificationChannel.SMS:
        return normalize_phone(recipient, default_region)
    if channel == NotificationChannel.EMAIL:
        return normalize_email(recipient)
    if channel == NotificationChannel.PUSH:
        return normalize_device_token(recipient)
    raise ValidationError(f"Channel {channel.value} cannot be dispatched", field="channel")


def mask_phone(phone_number: str | None) -> str:
    """Keep the first and last few digits of a phone number.

    >>> mask_phone("+256701234567")
    '+256****4567'
    """
    if phone_number is None or len(phone_number) < 8:
        return MASK
    length = len(phone_number)
    keep = min(4, length // 3)
    return phone_number[:keep] + MASK + phone_number[length - keep:]


def mask_email(email: str | None) -> str:
    """Mask the local part of an email address, keeping its first character."""
    if not email or "@" not in email:
        return MASK
    local, domain = email.rsplit("@", 1)
    return f"{local[:1]}{MASK}@{domain}"


def mask_token(token: str | None) -> str:
    if token is None or len(token) < 12:
        return MASK
    return token[:6] + MASK + token[-4:]


def mask_recipient(channel: NotificationChannel, recipient: str | None) -> str:
    """Mask a recipient for log and response output."""
    if channel == NotificationChannel.EMAIL:
        return mask_email(recipient)
    if channel == NotificationChannel.PUSH:
        return mask_token(recipient)
    return mask_phone(recipient)
