"""
Unit tests for structured logging processors.
"""

import logging

from credlink.logging.logger import _add_service_context, _censor_secrets, setup_logging


class TestCensorSecrets:
    """Tests for log redaction."""

    def test_sensitive_keys_redacted(self) -> None:
        event = _censor_secrets(
            logging.getLogger(),
            "info",
            {
                "event": "proof_requested",
                "capability_token": "eyJ...",
                "witness": {"repaid_loans": 9},
                "salt": "1234",
                "subject": "0xabc",
            },
        )

        assert event["capability_token"] == "***REDACTED***"
        assert event["witness"] == "***REDACTED***"
        assert event["salt"] == "***REDACTED***"
        assert event["subject"] == "0xabc"

    def test_nested_dicts(self) -> None:
        event = _censor_secrets(
            logging.getLogger(),
            "info",
            {"event": "x", "request": {"authorization": "Bearer abc", "path": "/health"}},
        )

        assert event["request"] == {"authorization": "***REDACTED***", "path": "/health"}


class TestServiceContext:
    def test_service_name_from_setup(self) -> None:
        setup_logging(service_name="attestation")
        try:
            event = _add_service_context(logging.getLogger(), "info", {"event": "x"})
            assert event["service"] == "attestation"
        finally:
            setup_logging()
