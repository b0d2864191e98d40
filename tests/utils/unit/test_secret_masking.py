"""
Tests for the secret masking log filter.
"""

import logging

from utils.logging_config import SecretMaskingFilter


def masked(message: str, *args) -> str:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, message, args, None)
    SecretMaskingFilter().filter(record)
    return record.getMessage()


class TestSecretMaskingFilter:

    def test_bearer_token(self):
        assert "APP_USR-123" not in masked("Authorization: Bearer APP_USR-123")

    def test_email(self):
        result = masked("Email sent to %s", "ana@example.com")
        assert "ana@example.com" not in result
        assert "[REDACTED_EMAIL]" in result

    def test_api_key(self):
        assert "xkeysib-abcdefghijklmnopqrstuvwxyz" not in masked("api_key=xkeysib-abcdefghijklmnopqrstuvwxyz")

    def test_plain_message_untouched(self):
        assert masked("Order ORD-2026-0001 created") == "Order ORD-2026-0001 created"

    def test_mapping_args(self):
        result = masked("Payer %(email)s", {"email": "ana@example.com"})
        assert result == "Payer [REDACTED_EMAIL]"

    def test_mask_helper(self):
        assert SecretMaskingFilter.mask("secret=abcdefgh123") == "secret=[REDACTED_SECRET]"

    def test_payment_ids_untouched(self):
        message = "Webhook for payment 1319184932: order missing, notification 1700000000 ignored"
        assert masked(message) == message

    def test_phone_numbers(self):
        for phone in ("+54 911 2233 4455", "+5491122334455", "(555) 123-4567", "555-123-4567"):
            assert masked(f"Payer phone {phone}") == "Payer phone [REDACTED_PHONE]"
