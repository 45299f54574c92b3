# =============================================================================
# Email Delivery (AWS SES)
# =============================================================================
#
# Setup:
#   1. Verify your sending address in the AWS SES console
#   2. Set env vars:
#      - SES_FROM_EMAIL=noreply@yourdomain.com
#      - AWS_REGION=us-east-1
#      - AWS credentials through the usual boto3 chain
#        (AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY, profile, or instance role)
#
# Delivery is best effort. send() never raises: a failed welcome or reset
# email is logged and reported as False, and the user creation or password
# reset that triggered it still succeeds.
#
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core.config import Settings, get_settings

logger = logging.getLogger("snips.email")


# =============================================================================
# Email Templates
# =============================================================================

_BUTTON = (
    'display: inline-block; background-color: #3b82f6; color: white; '
    'padding: 10px 20px; text-decoration: none; border-radius: 5px;'
)

TEMPLATES = {
    "welcome": {
        "subject": "Welcome to Snips",
        "html": """
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h1 style="color: #333;">Welcome to Snips!</h1>
            <p>Your account has been created. You can log in with:</p>
            <p><strong>Email:</strong> {email}<br><strong>Password:</strong> {password}</p>
            <p>Please change your password after your first login.</p>
            <a href="{site_url}" style="{button}">Log In to Snips</a>
        </div>
        """,
        "text": """
Welcome to Snips!

Your account has been created. You can log in with:
  Email: {email}
  Password: {password}

Please change your password after your first login: {site_url}
        """,
    },
    "password_reset_notice": {
        "subject": "Your Snips password was reset",
        "html": """
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h1 style="color: #333;">Password Reset</h1>
            <p>An administrator reset your password. You can now log in with:</p>
            <p><strong>Email:</strong> {email}<br><strong>New Password:</strong> {password}</p>
            <p>Please change your password after logging in.</p>
            <a href="{site_url}" style="{button}">Log In to Snips</a>
        </div>
        """,
        "text": """
Password Reset

An administrator reset your password. You can now log in with:
  Email: {email}
  New Password: {password}

Please change your password after logging in: {site_url}
        """,
    },
    "password_reset_link": {
        "subject": "Password reset request - Snips",
        "html": """
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h1 style="color: #333;">Password Reset Request</h1>
            <p>We received a request to reset your password. Click below to choose a new one:</p>
            <a href="{reset_url}" style="{button}">Reset Password</a>
            <p>This link expires in {expires_minutes} minutes.</p>
            <p style="color: #666; font-size: 14px;">If you didn't request this, you can ignore this email.</p>
        </div>
        """,
        "text": """
Password Reset Request

We received a request to reset your password. Visit this link to choose a new one:
{reset_url}

This link expires in {expires_minutes} minutes. If you didn't request this, you can ignore this email.
        """,
    },
}


# =============================================================================
# Email Service
# =============================================================================


class EmailService:
    """Send templated emails via AWS SES."""

    def __init__(self, settings: Settings | None = None, client: Any = None) -> None:
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self):
        """Lazy-load the SES client so startup never needs AWS credentials."""
        if self._client is None:
            self._client = boto3.client("ses", region_name=self.settings.aws_region)
        return self._client

    @property
    def is_configured(self) -> bool:
        return self.settings.email_enabled

    def send(self, to: str, template: str, data: dict[str, Any] | None = None) -> bool:
        """Render template with data and send it to `to`.

        Returns True if SES accepted the message, False otherwise.
        """
        if template not in TEMPLATES:
            logger.error("Unknown email template: %s", template)
            return False
        if not self.is_configured:
            logger.warning("Email not configured - skipping '%s' to %s", template, to)
            return False

        tpl = TEMPLATES[template]
        values = {"site_url": self.settings.site_url, "button": _BUTTON, **(data or {})}
        try:
            self.client.send_email(
                Source=self.settings.ses_from_email,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": tpl["subject"], "Charset": "UTF-8"},
                    "Body": {
                        "Html": {"Data": tpl["html"].format(**values), "Charset": "UTF-8"},
                        "Text": {"Data": tpl["text"].format(**values), "Charset": "UTF-8"},
                    },
                },
            )
        except (ClientError, BotoCoreError):
            logger.exception("Failed to send '%s' email to %s", template, to)
            return False
        logger.info("Sent '%s' email to %s", template, to)
        return True

    # -------------------------------------------------------------------------
    # Convenience wrappers
    # -------------------------------------------------------------------------

    def send_welcome(self, email: str, password: str) -> bool:
        return self.send(email, "welcome", {"email": email, "password": password})

    def send_password_reset_notice(self, email: str, password: str) -> bool:
        return self.send(email, "password_reset_notice", {"email": email, "password": password})

    def send_password_reset_link(self, email: str, token: str) -> bool:
        return self.send(
            email,
            "password_reset_link",
            {
                "reset_url": f"{self.settings.site_url}/reset-password?token={token}",
                "expires_minutes": self.settings.reset_token_expire_seconds // 60,
            },
        )
