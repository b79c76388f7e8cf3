"""
Account provider: the identity backend the OTP flow hands off to once a code
has been matched.

The OTP engine only needs five capabilities (exists / create / find /
update credential / sign in), so it depends on the AccountProvider interface.
LocalAccountProvider implements it over our own `users` table, bcrypt password
hashes and JWT sessions.

Every failure the caller should see is raised as ProviderException with a
human-readable message, which the API passes through unchanged.
"""
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from otp_auth.config import settings
from otp_auth.core.exceptions import ProviderException
from otp_auth.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    pwd_context,
    verify_password,
)
from otp_auth.models.user import User

# Verified against when the email is unknown so that "no such user" and
# "wrong password" take the same time.
_DUMMY_HASH: str = pwd_context.hash("__dummy_timing_prevention__")


@dataclass(frozen=True)
class AccountHandle:
    id: str
    email: str
    is_verified: bool


class AccountProvider(ABC):
    """Identity backend consumed by the OTP verifier."""

    @abstractmethod
    def account_exists(self, email: str) -> bool:
        ...

    @abstractmethod
    def create_account(self, email: str, password: str, verified: bool = True) -> AccountHandle:
        ...

    @abstractmethod
    def find_account(self, email: str) -> Optional[AccountHandle]:
        ...

    @abstractmethod
    def update_credential(self, account_id: str, password: str) -> None:
        ...

    @abstractmethod
    def sign_in(self, email: str, password: str) -> dict:
        """Authenticate and return a session object (opaque to the OTP engine)."""
        ...


class LocalAccountProvider(AccountProvider):
    def __init__(self, db: Session):
        self.db = db

    def _get_user(self, email: str) -> Optional[User]:
        try:
            return self.db.execute(select(User).where(User.email == email)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise ProviderException(f"Account lookup failed: {exc.__class__.__name__}")

    @staticmethod
    def _handle(user: User) -> AccountHandle:
        return AccountHandle(id=str(user.id), email=user.email, is_verified=user.is_verified)

    def account_exists(self, email: str) -> bool:
        return self._get_user(email) is not None

    def create_account(self, email: str, password: str, verified: bool = True) -> AccountHandle:
        user = User(
            email=email,
            hashed_password=hash_password(password),
            is_verified=verified,
        )
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except IntegrityError:
            self.db.rollback()
            raise ProviderException("A user with this email address has already been registered")
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise ProviderException(f"Account creation failed: {exc.__class__.__name__}")
        return self._handle(user)

    def find_account(self, email: str) -> Optional[AccountHandle]:
        user = self._get_user(email)
        return self._handle(user) if user else None

    def update_credential(self, account_id: str, password: str) -> None:
        try:
            user = self.db.get(User, _as_uuid(account_id))
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise ProviderException(f"Account lookup failed: {exc.__class__.__name__}")
        if user is None:
            raise ProviderException("User not found")
        user.hashed_password = hash_password(password)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise ProviderException(f"Password update failed: {exc.__class__.__name__}")

    def sign_in(self, email: str, password: str) -> dict:
        user = self._get_user(email)
        password_ok = verify_password(password, user.hashed_password if user else _DUMMY_HASH)
        if not user or not password_ok:
            raise ProviderException("Invalid login credentials")
        if not user.is_verified:
            raise ProviderException("Email not confirmed")

        user.last_login_at = datetime.now(timezone.utc)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise ProviderException(f"Sign-in failed: {exc.__class__.__name__}")

        user_id = str(user.id)
        return {
            "access_token": create_access_token(user_id, user.email),
            "refresh_token": create_refresh_token(user_id),
            "token_type": "bearer",
            "expires_in": settings.access_token_expire_minutes * 60,
            "user": {"id": user_id, "email": user.email},
        }


def _as_uuid(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ProviderException("User not found")
