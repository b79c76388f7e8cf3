"""
Tests for the fastapi-mail notification channel.
"""
from email.utils import parseaddr
from unittest.mock import AsyncMock

import pytest
from fastapi_mail import FastMail

from otp_auth.core.exceptions import DeliveryException
from otp_auth.core.purposes import OTPPurpose
from otp_auth.services.email_service import (
    EmailNotificationChannel,
    build_mail_config,
    render_otp_email,
)


class TestRender:
    def test_body_contains_code_and_expiry(self):
        html = render_otp_email("4821", OTPPurpose.RESET, 10, "Life Control")

        assert "4821" in html
        assert "10 minutes" in html
        assert "reset your password" in html

    def test_intro_differs_per_purpose(self):
        signup = render_otp_email("1", OTPPurpose.SIGNUP, 5, "B")
        reset = render_otp_email("1", OTPPurpose.RESET, 5, "B")

        assert signup != reset


class TestEmailNotificationChannel:
    @pytest.mark.asyncio
    async def test_send_records_message_when_suppressed(self):
        mailer = FastMail(build_mail_config())
        mailer.config.SUPPRESS_SEND = 1
        channel = EmailNotificationChannel(mailer=mailer, expiry_minutes=7)

        with mailer.record_messages() as outbox:
            await channel.send("user@example.com", "1234", OTPPurpose.SIGNUP)

        assert len(outbox) == 1
        assert parseaddr(outbox[0]["To"])[1] == "user@example.com"
        assert outbox[0]["Subject"] == "Confirm your email address"

    @pytest.mark.asyncio
    async def test_send_failure_becomes_delivery_error(self):
        mailer = AsyncMock()
        mailer.send_message.side_effect = ConnectionError("SMTP down")
        channel = EmailNotificationChannel(mailer=mailer)

        with pytest.raises(DeliveryException) as exc_info:
            await channel.send("user@example.com", "1234", OTPPurpose.RESET)

        assert exc_info.value.status_code == 502
        mailer.send_message.assert_awaited_once()
