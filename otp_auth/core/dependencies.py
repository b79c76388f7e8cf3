"""
FastAPI dependencies used by the routers.
Each request gets its own DB session and therefore its own store / provider /
service objects; nothing mutable is shared between requests.
"""
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from otp_auth.database import get_db
from otp_auth.services.account_provider import AccountProvider, LocalAccountProvider
from otp_auth.services.email_service import EmailNotificationChannel, NotificationChannel
from otp_auth.services.otp_service import OTPService
from otp_auth.services.otp_store import SQLAlchemyOTPStore


@lru_cache()
def get_notifier() -> NotificationChannel:
    """One mail channel per process; FastMail holds only connection config."""
    return EmailNotificationChannel()


def get_account_provider(db: Session = Depends(get_db)) -> AccountProvider:
    return LocalAccountProvider(db)


def get_otp_service(
    db: Session = Depends(get_db),
    accounts: AccountProvider = Depends(get_account_provider),
    notifier: NotificationChannel = Depends(get_notifier),
) -> OTPService:
    return OTPService(SQLAlchemyOTPStore(db), accounts, notifier)
