from sqlalchemy import BigInteger, Column, Index, Integer, Text, TIMESTAMP, func
from otp_auth.database import Base


class OTPRecord(Base):
    """
    Stores hashed one-time passcodes for signup and password reset.

    Security notes:
    - The plaintext code is NEVER stored, only its hex digest.
    - Rows are immutable: they are inserted by the issuer and only ever
      deleted afterwards (expired cleanup, failed lookup, successful use).
    - A row is "active" while expires_at is strictly in the future.
    """
    __tablename__ = "otp_codes"

    # BIGSERIAL on Postgres; SQLite only autoincrements INTEGER primary keys
    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    email = Column(Text, nullable=False)
    code_hash = Column(Text, nullable=False)
    purpose = Column(Text, nullable=False)  # "signup" | "reset"
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False)
    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("idx_otp_codes_lookup", "email", "purpose", expires_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<OTPRecord id={self.id} email={self.email!r} purpose={self.purpose!r}>"
