"""Tests for recipient normalization and masking."""

import pytest

from notification_service.errors import ValidationError
from notification_service.models.delivery import NotificationChannel
from notification_service.services.recipients import (
    mask_email,
    mask_phone,
    mask_recipient,
    mask_token,
    normalize_email,
    normalize_phone,
    normalize_recipient,
)


# ============================================================================
# Phone Normalization Tests
# ============================================================================

class TestNormalizePhone:
    """Tests for E.164 phone normalization."""

    @pytest.mark.parametrize(
        "raw",
        [
            "+256712345678",
            "256712345678",
            "0712345678",
            "712345678",
            "+256 712 345 678",
            "(0712) 345-678",
        ],
    )
    def test_accepted_forms_normalize_to_e164(self, raw):
        """Every accepted Ugandan form becomes +256XXXXXXXXX."""
        assert normalize_phone(raw) == "+256712345678"

    def test_normalization_is_idempotent(self):
        """Normalizing an already-normalized number returns it unchanged."""
        once = normalize_phone("0712345678")
        assert normalize_phone(once) == once

    def test_other_country_numbers_keep_their_code(self):
        """International numbers from other regions are accepted."""
        assert normalize_phone("+254712345678") == "+254712345678"

    @pytest.mark.parametrize("raw", ["", "   ", None, "abc", "+", "12345"])
    def test_invalid_numbers_rejected(self, raw):
        """Empty, non-numeric and short numbers raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            normalize_phone(raw)
        assert exc_info.value.field == "recipient"


# ============================================================================
# Email / Channel Normalization Tests
# ============================================================================

class TestNormalizeRecipient:
    """Tests for per-channel recipient validation."""

    def test_email_domain_lower_cased(self):
        """The domain is lower-cased; the local part is preserved."""
        assert normalize_email("  Jane.Doe@Example.ORG ") == "Jane.Doe@example.org"

    @pytest.mark.parametrize("raw", ["", "no-at-sign", "a@b", "two@@example.com", "a b@example.com"])
    def test_invalid_email_rejected(self, raw):
        with pytest.raises(ValidationError):
            normalize_email(raw)

    def test_push_token_trimmed(self):
        assert normalize_recipient(NotificationChannel.PUSH, "  token-abc  ") == "token-abc"

    def test_empty_push_token_rejected(self):
        with pytest.raises(ValidationError):
            normalize_recipient(NotificationChannel.PUSH, " ")

    def test_in_app_cannot_be_dispatched(self):
        """IN_APP has no adapter, so it is rejected as a channel error."""
        with pytest.raises(ValidationError) as exc_info:
            normalize_recipient(NotificationChannel.IN_APP, "anything")
        assert exc_info.value.field == "channel"

    def test_sms_uses_default_region(self):
        """The default region decides how local numbers are read."""
        assert normalize_recipient(NotificationChannel.SMS, "0712345678", "KE") == "+254712345678"


# ============================================================================
# Masking Tests
# ============================================================================

class TestMasking:
    """Tests for recipient masking in logs and responses."""

    def test_mask_phone_keeps_prefix_and_suffix(self):
        assert mask_phone("+256712345678") == "+256****5678"

    def test_mask_short_phone_fully(self):
        assert mask_phone("12345") == "****"
        assert mask_phone(None) == "****"

    def test_mask_email(self):
        assert mask_email("jane@example.org") == "j****@example.org"
        assert mask_email("broken") == "****"

    def test_mask_token(self):
        assert mask_token("abcdef1234567890wxyz") == "abcdef****wxyz"
        assert mask_token("short") == "****"

    def test_mask_recipient_dispatches_by_channel(self):
        assert mask_recipient(NotificationChannel.EMAIL, "jane@example.org") == "j****@example.org"
        assert mask_recipient(NotificationChannel.SMS, "+256712345678") == "+256****5678"
        assert mask_recipient(NotificationChannel.PUSH, "abcdef1234567890wxyz") == "abcdef****wxyz"
