"""
Shared fixtures.

Settings are read from the environment at import time, so the variables are
set here before anything from otp_auth is imported. PostgreSQL is replaced by
an in-memory SQLite database shared across threads (StaticPool) so the
FastAPI TestClient sees the same data as the test body.
"""
import os

os.environ.setdefault("DATABASE_HOSTNAME", "localhost")
os.environ.setdefault("DATABASE_PASSWORD", "test")
os.environ.setdefault("DATABASE_NAME", "otp_auth_test")
os.environ.setdefault("DATABASE_USERNAME", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("MAIL_USERNAME", "mailer@example.com")
os.environ.setdefault("MAIL_PASSWORD", "test")
os.environ.setdefault("MAIL_FROM", "mailer@example.com")
os.environ.setdefault("MAIL_SUPPRESS_SEND", "true")

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from otp_auth.config import get_settings
from otp_auth.core.exceptions import DeliveryException, ProviderException
from otp_auth.database import Base
from otp_auth.services.account_provider import AccountHandle, AccountProvider
from otp_auth.services.email_service import NotificationChannel
from otp_auth.services.otp_service import OTPService
from otp_auth.services.otp_store import SQLAlchemyOTPStore
import otp_auth.models  # noqa: F401


class FakeClock:
    """Callable clock the tests can move forward."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeNotifier(NotificationChannel):
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, destination, code, purpose):
        if self.fail:
            raise DeliveryException()
        self.sent.append((destination, code, purpose))

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


class FakeAccountProvider(AccountProvider):
    """
    In-memory identity backend. `fail_on` names a method that should raise
    ProviderException, to exercise the provider-failure paths.
    """

    def __init__(self):
        self.accounts = {}
        self.fail_on = set()
        self.calls = []

    def _maybe_fail(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            raise ProviderException(f"{name} failed")

    def account_exists(self, email):
        self._maybe_fail("account_exists")
        return email in self.accounts

    def create_account(self, email, password, verified=True):
        self._maybe_fail("create_account")
        if email in self.accounts:
            raise ProviderException("A user with this email address has already been registered")
        self.accounts[email] = {"id": f"user-{len(self.accounts) + 1}", "password": password, "verified": verified}
        return self.find_account(email)

    def find_account(self, email):
        self._maybe_fail("find_account")
        acct = self.accounts.get(email)
        if acct is None:
            return None
        return AccountHandle(id=acct["id"], email=email, is_verified=acct["verified"])

    def update_credential(self, account_id, password):
        self._maybe_fail("update_credential")
        for acct in self.accounts.values():
            if acct["id"] == account_id:
                acct["password"] = password
                return
        raise ProviderException("User not found")

    def sign_in(self, email, password):
        self._maybe_fail("sign_in")
        acct = self.accounts.get(email)
        if acct is None or acct["password"] != password:
            raise ProviderException("Invalid login credentials")
        return {"access_token": f"token-for-{email}", "user": {"id": acct["id"], "email": email}}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return SQLAlchemyOTPStore(db)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def accounts():
    return FakeAccountProvider()


@pytest.fixture
def otp_settings():
    return get_settings().model_copy(
        update={"otp_expiry_minutes": 10, "otp_max_active": 3, "otp_digits": 4, "otp_hash_secret": ""}
    )


@pytest.fixture
def service(store, accounts, notifier, otp_settings, clock):
    return OTPService(store, accounts, notifier, settings=otp_settings, clock=clock)
