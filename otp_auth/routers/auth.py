"""
Auth router: OTP issue / verify and plain password sign-in.

Signup:
  1. POST /auth/send-otp   {email, purpose: "signup"} → code emailed
  2. POST /auth/verify-otp {email, purpose: "signup", code, password}
     → account created (already verified) → session

Password reset:
  1. POST /auth/send-otp   {email, purpose: "reset"} → code emailed
  2. POST /auth/verify-otp {email, purpose: "reset", code, password}
     → password replaced → session

Sign-in:
  POST /auth/signin {email, password} → session
"""
from fastapi import APIRouter, Depends, Request

from otp_auth.core.dependencies import get_account_provider, get_otp_service
from otp_auth.core.rate_limiter import limiter
from otp_auth.schemas.auth import (
    SendOTPRequest, SendOTPResponse, SessionResponse, SignInRequest, VerifyOTPRequest,
)
from otp_auth.services.account_provider import AccountProvider
from otp_auth.services.otp_service import OTPService

router = APIRouter()


@router.post("/send-otp", response_model=SendOTPResponse)
@limiter.limit("5/minute")
async def send_otp(
    request: Request,
    body: SendOTPRequest,
    service: OTPService = Depends(get_otp_service),
):
    """
    Issue a code for signup or password reset and email it.
    Unlike a BackgroundTasks send, the response waits for SMTP so that a
    delivery failure is reported to the client.
    """
    issued = await service.issue(body.email, body.purpose)
    return {"message": "Email sent successfully", "expires_at": issued.expires_at}


@router.post("/verify-otp", response_model=SessionResponse)
@limiter.limit("10/minute")
async def verify_otp(
    request: Request,
    body: VerifyOTPRequest,
    service: OTPService = Depends(get_otp_service),
):
    """Verify a code and complete the signup / reset it was issued for."""
    session = service.verify(body.email, body.purpose, body.code, body.password)
    return {"session": session}


@router.post("/signin", response_model=SessionResponse)
@limiter.limit("10/minute")
async def signin(
    request: Request,
    body: SignInRequest,
    accounts: AccountProvider = Depends(get_account_provider),
):
    return {"session": accounts.sign_in(body.email, body.password)}
