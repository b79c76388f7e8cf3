"""
Notification channel: delivers plaintext codes to the user.

EmailNotificationChannel sends an HTML email through fastapi-mail over SMTP.
For port 587 use MAIL_STARTTLS=True / MAIL_SSL_TLS=False; for port 465 swap them.
With MAIL_SUPPRESS_SEND=true messages are recorded instead of sent
(see FastMail.record_messages), which is what local development and tests use.

Delivery happens after the OTP row is stored, so a failure here leaves a row
whose code nobody received. It simply expires; the active-code quota bounds how
many such rows can pile up.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType

from otp_auth.config import settings
from otp_auth.core.exceptions import DeliveryException
from otp_auth.core.purposes import OTPPurpose

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    @abstractmethod
    async def send(self, destination: str, code: str, purpose: OTPPurpose) -> None:
        """Deliver `code` to `destination`. Raises DeliveryException on failure."""
        ...


SUBJECTS = {
    OTPPurpose.SIGNUP: "Confirm your email address",
    OTPPurpose.RESET: "Reset your password",
}

INTROS = {
    OTPPurpose.SIGNUP: "Use the code below to confirm your email address.",
    OTPPurpose.RESET: "Use the code below to reset your password.",
}


def render_otp_email(code: str, purpose: OTPPurpose, expiry_minutes: int, brand: str) -> str:
    return f"""
<div style="font-family: 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;overflow:auto;line-height:2">
    <div style="margin:50px auto;width:70%;padding:20px 0">
        <div style="border-bottom:1px solid #F7F9FC">
            <span style="font-size:1.4em;color:#5A51FF;font-weight:600">{brand}</span>
        </div>
        <p>{INTROS[purpose]} This code expires in {expiry_minutes} minutes. Do not share it with anyone.</p>
        <h2 style="background:#5A51FF;margin:0 auto;width:max-content;padding:0 10px;color:#F7F9FC;border-radius:4px;">{code}</h2>
        <p style="font-size:0.9em;">If you did not request this code, you can ignore this email.</p>
        <p style="font-size:0.9em;">Regards,<br />{brand} team</p>
    </div>
</div>
"""


def build_mail_config() -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=settings.mail_username,
        MAIL_PASSWORD=settings.mail_password,
        MAIL_FROM=settings.mail_from,
        MAIL_FROM_NAME=settings.mail_from_name,
        MAIL_PORT=settings.mail_port,
        MAIL_SERVER=settings.mail_server,
        MAIL_STARTTLS=True,
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=True,
        VALIDATE_CERTS=True,
        SUPPRESS_SEND=1 if settings.mail_suppress_send else 0,
    )


class EmailNotificationChannel(NotificationChannel):
    def __init__(self, mailer: Optional[FastMail] = None, expiry_minutes: Optional[int] = None):
        self.mailer = mailer or FastMail(build_mail_config())
        self.expiry_minutes = expiry_minutes or settings.otp_expiry_minutes

    async def send(self, destination: str, code: str, purpose: OTPPurpose) -> None:
        message = MessageSchema(
            subject=SUBJECTS[purpose],
            recipients=[destination],
            body=render_otp_email(code, purpose, self.expiry_minutes, settings.mail_from_name),
            subtype=MessageType.html,
        )
        try:
            await self.mailer.send_message(message)
        except Exception as exc:
            # fastapi-mail surfaces SMTP problems as ConnectionErrors and
            # validation problems as pydantic errors; the caller only needs to
            # know delivery did not happen.
            logger.error(f"OTP email to {destination} failed: {exc}")
            raise DeliveryException() from exc
