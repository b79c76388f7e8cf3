"""
Application entry point.

Run locally:
    uvicorn otp_auth.main:app --reload --port 8000

API docs available at:
    http://localhost:8000/docs   (Swagger UI)
    http://localhost:8000/redoc  (ReDoc)
"""
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from otp_auth.config import settings
from otp_auth.core.exceptions import ValidationException
from otp_auth.core.rate_limiter import limiter
from otp_auth.routers import auth


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Missing or malformed body fields are the caller's fault: 400, no side effects."""
    error = ValidationException("Missing parameters")
    return JSONResponse(
        status_code=error.status_code,
        content={"detail": error.detail, "errors": jsonable_encoder(exc.errors())},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="OTP Auth API",
        description=(
            "Email one-time-passcode flows for account signup and password reset, "
            "plus password sign-in."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── Rate Limiter ──────────────────────────────────────────────────────────
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # ── CORS ──────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(auth.router, prefix="/auth", tags=["Auth"])

    # ── Health Check ──────────────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    def health_check():
        return {"status": "ok", "version": "1.0.0"}

    return app


app = create_app()
