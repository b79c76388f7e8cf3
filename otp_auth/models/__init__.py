# models/__init__.py
# Import all models here so that Alembic's env.py can import this single
# module and detect every table.

from otp_auth.models.user import User
from otp_auth.models.otp import OTPRecord

__all__ = [
    "User",
    "OTPRecord",
]
