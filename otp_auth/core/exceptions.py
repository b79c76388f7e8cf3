"""
Centralised custom exceptions for the OTP flow.

Services raise these directly; FastAPI renders them as {"detail": ...} with the
status code chosen here, so routers stay free of error translation.
"""
from fastapi import HTTPException, status


class ValidationException(HTTPException):
    def __init__(self, detail: str = "Missing or malformed request fields"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AlreadyExistsException(HTTPException):
    def __init__(self, detail: str = "User already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class RateLimitedException(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many attempts. Please wait before requesting another OTP.",
        )


class InvalidOrExpiredOTPException(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired OTP",
        )


class InvalidCodeException(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid OTP code",
        )


class InvalidPurposeException(HTTPException):
    def __init__(self, purpose: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid purpose: {purpose!r}",
        )


class NotFoundException(HTTPException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )


class StorageException(HTTPException):
    def __init__(self, detail: str = "OTP storage is unavailable"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class ProviderException(HTTPException):
    """Account provider failure. The provider's own message is passed through."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class DeliveryException(HTTPException):
    def __init__(self, detail: str = "Failed to send email"):
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)
