"""
Auth schemas: request bodies and responses for the OTP and sign-in endpoints.

`purpose` is a plain string on purpose: an unknown value has to reach the OTP
service, which rejects it with 400 before touching the store.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class _EmailBody(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def email_present(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("email is required")
        return v


class SendOTPRequest(_EmailBody):
    purpose: str  # "signup" | "reset"


class VerifyOTPRequest(_EmailBody):
    purpose: str
    code: str
    password: str

    @field_validator("code", "password")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        return v


class SignInRequest(_EmailBody):
    password: str


class SessionResponse(BaseModel):
    # Whatever the account provider returned, passed through unchanged
    session: dict


class SendOTPResponse(BaseModel):
    message: str
    expires_at: Optional[datetime] = None
