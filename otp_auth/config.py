from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────
    database_hostname: str
    database_port: str = "5432"
    database_password: str
    database_name: str
    database_username: str

    # ── JWT (sessions issued by the local account provider) ───
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 7

    # ── SMTP ──────────────────────────────────────────────────
    mail_username: str
    mail_password: str
    mail_from: str
    mail_from_name: str = "Life Control"
    mail_server: str = "smtp.gmail.com"
    mail_port: int = 587
    # fastapi-mail records messages instead of sending them when set
    mail_suppress_send: bool = False

    # ── OTP ───────────────────────────────────────────────────
    otp_expiry_minutes: int = 10
    otp_max_active: int = 3
    otp_digits: int = 4
    # When set, code hashes become HMAC-SHA256 keyed with this value
    # instead of a bare SHA-256 digest.
    otp_hash_secret: str = ""

    # ── App ───────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Split comma-separated origins into a list, stripping whitespace."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def database_url(self) -> str:
        return (
            f"postgresql://{self.database_username}:{self.database_password}"
            f"@{self.database_hostname}:{self.database_port}/{self.database_name}"
        )

    class Config:
        env_file = ".env"
        # Case-insensitive so OTP_EXPIRY_MINUTES and otp_expiry_minutes both work
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings loader: reads .env once and reuses it.
    Use this everywhere instead of instantiating Settings() directly.
    """
    return Settings()


# Module-level singleton for convenience imports
settings = get_settings()
