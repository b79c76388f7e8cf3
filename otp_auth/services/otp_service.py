"""
OTP service: issues codes and verifies them for signup and password reset.

Security design decisions:
  1. The plaintext code is NEVER stored, only SHA-256 of it (HMAC-SHA256 when
     OTP_HASH_SECRET is set). It leaves this process exactly once, via the
     notification channel.
  2. secrets.randbelow() is cryptographically secure (unlike random.randint).
  3. At most `otp_max_active` codes may be outstanding per (email, purpose);
     the count is a store query, so it holds across replicas.
  4. Only the newest active code is ever checked, and the comparison runs in
     constant time (hmac.compare_digest).
  5. There is no per-code attempt counter (rows are immutable). Guessing is
     bounded by the TTL, the issuance quota and slowapi limits on the routes.
"""
import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from otp_auth.config import Settings, settings as default_settings
from otp_auth.core.exceptions import (
    AlreadyExistsException,
    InvalidCodeException,
    InvalidOrExpiredOTPException,
    NotFoundException,
    RateLimitedException,
    StorageException,
    ValidationException,
)
from otp_auth.core.purposes import OTPPurpose
from otp_auth.models.otp import OTPRecord
from otp_auth.services.account_provider import AccountProvider
from otp_auth.services.email_service import NotificationChannel
from otp_auth.services.otp_store import OTPStore

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_code(digits: int = 4) -> str:
    """
    Uniform random code of exactly `digits` digits, never with a leading zero.
    For 4 digits: secrets.randbelow(9000) gives 0–8999, +1000 gives 1000–9999.
    """
    low = 10 ** (digits - 1)
    return str(secrets.randbelow(10 ** digits - low) + low)


def hash_code(code: str, secret: str = "") -> str:
    """Hex digest of the UTF-8 code. Keyed with `secret` when one is given."""
    data = code.encode("utf-8")
    if secret:
        return hmac.new(secret.encode("utf-8"), data, hashlib.sha256).hexdigest()
    return hashlib.sha256(data).hexdigest()


def codes_match(code: str, code_hash: str, secret: str = "") -> bool:
    return hmac.compare_digest(hash_code(code, secret), code_hash)


def _stripped(value):
    # same rule as the request schema: a whitespace-only email is missing
    return value.strip() if isinstance(value, str) else value


def _require(**fields) -> None:
    missing = [name for name, value in fields.items() if not value]
    if missing:
        raise ValidationException(f"Missing parameters: {', '.join(missing)}")


@dataclass(frozen=True)
class IssuedOTP:
    email: str
    purpose: OTPPurpose
    expires_at: datetime


class OTPService:
    """
    Issuer and verifier over one store / account provider / notification channel.

    Instances are cheap and meant to be built per request (see
    core.dependencies.get_otp_service). `clock` is injectable so expiry can be
    exercised without sleeping.
    """

    def __init__(
        self,
        store: OTPStore,
        accounts: AccountProvider,
        notifier: NotificationChannel,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.accounts = accounts
        self.notifier = notifier
        self.settings = settings or default_settings
        self.clock = clock

    # ── Issue ─────────────────────────────────────────────────────────────────

    async def issue(self, email: str, purpose) -> IssuedOTP:
        """
        Issue a new code for (email, purpose) and send it.

        Steps:
        1. Signup only: refuse if the account already exists (no store writes).
        2. Purge expired rows for the pair (best effort).
        3. Count active rows; refuse with 429 at the quota.
        4. Generate, hash and store the code with its expiry.
        5. Hand the plaintext code to the notification channel.

        A delivery failure is raised to the caller but the stored row is kept.
        """
        _require(email=_stripped(email), purpose=purpose)
        purpose = OTPPurpose.parse(purpose)

        if purpose is OTPPurpose.SIGNUP and self.accounts.account_exists(email):
            raise AlreadyExistsException()

        now = self.clock()

        try:
            removed = self.store.delete_expired(email, purpose.value, now)
            if removed:
                logger.debug(f"Purged {removed} expired {purpose.value} OTP(s) for {email}")
        except StorageException as exc:
            logger.warning(f"Expired OTP cleanup failed for {email}/{purpose.value}: {exc.detail}")

        self.store.lock_pair(email, purpose.value)
        active = self.store.count_active(email, purpose.value, now)
        if active >= self.settings.otp_max_active:
            logger.info(f"OTP quota reached for {email}/{purpose.value} ({active} active)")
            raise RateLimitedException()

        code = generate_code(self.settings.otp_digits)
        expires_at = now + timedelta(minutes=self.settings.otp_expiry_minutes)
        self.store.insert(
            OTPRecord(
                email=email,
                code_hash=hash_code(code, self.settings.otp_hash_secret),
                purpose=purpose.value,
                expires_at=expires_at,
                created_at=now,
            )
        )
        logger.info(f"Issued {purpose.value} OTP for {email}, expires at {expires_at.isoformat()}")

        await self.notifier.send(email, code, purpose)
        return IssuedOTP(email=email, purpose=purpose, expires_at=expires_at)

    # ── Verify ────────────────────────────────────────────────────────────────

    def verify(self, email: str, purpose, code: str, password: str) -> dict:
        """
        Check `code` against the newest active code for (email, purpose) and,
        on a match, perform the purpose's account action with `password`.

        Returns the account provider's session unchanged.
        """
        _require(email=_stripped(email), purpose=purpose, code=code, password=password)
        purpose = OTPPurpose.parse(purpose)
        now = self.clock()

        record = self.store.find_latest_active(email, purpose.value, now)
        if record is None:
            self.store.delete_all(email, purpose.value)
            raise InvalidOrExpiredOTPException()

        if not codes_match(code, record.code_hash, self.settings.otp_hash_secret):
            # Row stays: the user may retry until it expires.
            logger.info(f"Wrong {purpose.value} OTP submitted for {email}")
            raise InvalidCodeException()

        if purpose is OTPPurpose.SIGNUP:
            session = self._complete_signup(email, password)
        else:
            session = self._complete_reset(email, password)

        self.store.delete_all(email, purpose.value)
        return session

    def _complete_signup(self, email: str, password: str) -> dict:
        # An account left behind by an earlier attempt whose sign-in failed is
        # not created twice; the same code just signs it in.
        if not self.accounts.account_exists(email):
            self.accounts.create_account(email, password, verified=True)
        return self.accounts.sign_in(email, password)

    def _complete_reset(self, email: str, password: str) -> dict:
        account = self.accounts.find_account(email)
        if account is None:
            self.store.delete_all(email, OTPPurpose.RESET.value)
            raise NotFoundException("User")

        self.accounts.update_credential(account.id, password)
        return self.accounts.sign_in(email, password)
