"""
tests/test_email.py -- Unit tests for notify/email.py.

The SES client is always a MagicMock; no test talks to AWS. Delivery is
best effort, so every failure path must return False instead of raising.
"""

from __future__ import annotations

from unittest.mock import MagicMock

from botocore.exceptions import ClientError, EndpointConnectionError

from core.config import Settings
from notify.email import EmailService


def _settings(**overrides) -> Settings:
    values = {
        "debug": True,
        "ses_from_email": "noreply@example.com",
        "site_url": "https://snips.example.com",
        "reset_token_expire_seconds": 1800,
    }
    values.update(overrides)
    return Settings(**values)


class TestSend:
    def test_welcome_sent_through_ses(self) -> None:
        client = MagicMock()
        service = EmailService(_settings(), client=client)

        assert service.send_welcome("new@example.com", "temp-pass") is True

        kwargs = client.send_email.call_args.kwargs
        assert kwargs["Source"] == "noreply@example.com"
        assert kwargs["Destination"] == {"ToAddresses": ["new@example.com"]}
        text = kwargs["Message"]["Body"]["Text"]["Data"]
        assert "temp-pass" in text
        assert "https://snips.example.com" in text

    def test_reset_link_contains_token_and_lifetime(self) -> None:
        client = MagicMock()
        service = EmailService(_settings(), client=client)

        assert service.send_password_reset_link("a@example.com", "tok123") is True

        html = client.send_email.call_args.kwargs["Message"]["Body"]["Html"]["Data"]
        assert "https://snips.example.com/reset-password?token=tok123" in html
        assert "30 minutes" in html

    def test_reset_notice_contains_new_password(self) -> None:
        client = MagicMock()
        service = EmailService(_settings(), client=client)
        assert service.send_password_reset_notice("a@example.com", "N3wPass!") is True
        assert "N3wPass!" in client.send_email.call_args.kwargs["Message"]["Body"]["Text"]["Data"]


class TestFailuresNeverRaise:
    def test_not_configured_skips_send(self) -> None:
        client = MagicMock()
        service = EmailService(_settings(ses_from_email=""), client=client)
        assert service.is_configured is False
        assert service.send_welcome("new@example.com", "pw") is False
        client.send_email.assert_not_called()

    def test_client_error_returns_false(self) -> None:
        client = MagicMock()
        client.send_email.side_effect = ClientError(
            {"Error": {"Code": "MessageRejected", "Message": "Email address is not verified."}},
            "SendEmail",
        )
        service = EmailService(_settings(), client=client)
        assert service.send_welcome("new@example.com", "pw") is False

    def test_connection_error_returns_false(self) -> None:
        client = MagicMock()
        client.send_email.side_effect = EndpointConnectionError(endpoint_url="https://email.us-east-1.amazonaws.com")
        service = EmailService(_settings(), client=client)
        assert service.send_password_reset_notice("a@example.com", "pw") is False

    def test_unknown_template_returns_false(self) -> None:
        client = MagicMock()
        service = EmailService(_settings(), client=client)
        assert service.send("a@example.com", "no_such_template") is False
        client.send_email.assert_not_called()
