import uuid
from sqlalchemy import Boolean, Column, String, TIMESTAMP, Uuid, func
from sqlalchemy.sql.expression import false
from otp_auth.database import Base


class User(Base):
    """
    Account table behind LocalAccountProvider.

    Rows are only created by a successful signup verification, so every
    account here has proven control of its email address.
    """
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)

    # Flags
    is_verified = Column(Boolean, server_default=false(), nullable=False)

    # Timestamps
    last_login_at = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
