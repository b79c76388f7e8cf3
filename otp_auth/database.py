from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from otp_auth.config import settings


# ── Engine ────────────────────────────────────────────────────────────────────
# pool_pre_ping=True: every pooled connection is tested before use, so a
# Postgres restart doesn't surface as "connection reset" on the next request.
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
)

# ── Session Factory ───────────────────────────────────────────────────────────
SessionLocal = sessionmaker(
    autocommit=False,   # the OTP store commits explicitly after each write
    autoflush=False,
    bind=engine,
)


# ── Declarative Base ──────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    pass


# ── Dependency ────────────────────────────────────────────────────────────────
def get_db():
    """
    FastAPI dependency that yields a DB session and guarantees cleanup.
    Use as: db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
