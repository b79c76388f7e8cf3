from otp_auth.schemas.auth import (
    SendOTPRequest, VerifyOTPRequest, SignInRequest,
    SessionResponse, SendOTPResponse,
)
