"""
OTP store: append / query / delete over OTPRecord rows.

The issuer and verifier only talk to the abstract OTPStore, so the engine does
not care where records live. SQLAlchemyOTPStore is the production backend.

Every query is scoped by (email, purpose). "Active" means expires_at > now,
with `now` supplied by the caller so a whole request evaluates against one
instant.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from otp_auth.core.exceptions import StorageException
from otp_auth.models.otp import OTPRecord

logger = logging.getLogger(__name__)


class OTPStore(ABC):
    """Persistence capability over OTPRecord. Failures raise StorageException."""

    @abstractmethod
    def insert(self, record: OTPRecord) -> OTPRecord:
        ...

    @abstractmethod
    def find_latest_active(self, email: str, purpose: str, now: datetime) -> Optional[OTPRecord]:
        """The active record with the greatest expires_at, or None."""
        ...

    @abstractmethod
    def count_active(self, email: str, purpose: str, now: datetime) -> int:
        ...

    @abstractmethod
    def delete_expired(self, email: str, purpose: str, now: datetime) -> int:
        """Delete records with expires_at < now. Callers treat failure as non-fatal."""
        ...

    @abstractmethod
    def delete_all(self, email: str, purpose: str) -> int:
        ...

    def lock_pair(self, email: str, purpose: str) -> None:
        """
        Serialize issuance for one (email, purpose) until the next commit.
        Backends without a suitable primitive leave this a no-op, which lets
        N concurrent issuers overshoot the active-code quota by up to N.
        """


class SQLAlchemyOTPStore(OTPStore):
    """
    OTPStore over a SQLAlchemy session.

    Each write commits immediately. Any SQLAlchemyError rolls the session back
    and is re-raised as StorageException so the request fails cleanly.
    """

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, exc: SQLAlchemyError) -> StorageException:
        self.db.rollback()
        logger.error(f"OTP store {action} failed: {exc}")
        return StorageException(f"Failed to {action} OTP records")

    def insert(self, record: OTPRecord) -> OTPRecord:
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as exc:
            raise self._fail("save", exc)
        return record

    def find_latest_active(self, email: str, purpose: str, now: datetime) -> Optional[OTPRecord]:
        stmt = (
            select(OTPRecord)
            .where(
                OTPRecord.email == email,
                OTPRecord.purpose == purpose,
                OTPRecord.expires_at > now,
            )
            # id breaks ties between codes issued within the same instant
            .order_by(OTPRecord.expires_at.desc(), OTPRecord.id.desc())
            .limit(1)
        )
        try:
            return self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise self._fail("look up", exc)

    def count_active(self, email: str, purpose: str, now: datetime) -> int:
        stmt = select(func.count(OTPRecord.id)).where(
            OTPRecord.email == email,
            OTPRecord.purpose == purpose,
            OTPRecord.expires_at > now,
        )
        try:
            return self.db.execute(stmt).scalar_one()
        except SQLAlchemyError as exc:
            raise self._fail("count", exc)

    def delete_expired(self, email: str, purpose: str, now: datetime) -> int:
        stmt = delete(OTPRecord).where(
            OTPRecord.email == email,
            OTPRecord.purpose == purpose,
            OTPRecord.expires_at < now,
        )
        return self._delete(stmt)

    def delete_all(self, email: str, purpose: str) -> int:
        stmt = delete(OTPRecord).where(
            OTPRecord.email == email,
            OTPRecord.purpose == purpose,
        )
        return self._delete(stmt)

    def _delete(self, stmt) -> int:
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("delete", exc)
        return result.rowcount

    def lock_pair(self, email: str, purpose: str) -> None:
        # Transaction-scoped advisory lock; released by the insert's commit
        # (or by the rollback when the quota check rejects the request).
        if self.db.get_bind().dialect.name != "postgresql":
            return
        try:
            self.db.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                {"key": f"{email}|{purpose}"},
            )
        except SQLAlchemyError as exc:
            raise self._fail("lock", exc)
