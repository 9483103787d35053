from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    app_name: str = "Origin Business Portal API"

    # ── Database ──────────────────────────────────────────────
    database_hostname: str = "localhost"
    database_port: str = "5432"
    database_password: str = ""
    database_name: str = "origin"
    database_username: str = "postgres"
    # Full SQLAlchemy URL; wins over the postgres parts above when set.
    # e.g. DATABASE_URL_OVERRIDE=sqlite:///./origin.db for a local run
    database_url_override: Optional[str] = None

    # ── JWT ───────────────────────────────────────────────────
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # ── OTP ───────────────────────────────────────────────────
    otp_expire_minutes: int = 10

    # ── SMTP ──────────────────────────────────────────────────
    mail_username: str = ""
    mail_password: str = ""
    mail_from: str = "no-reply@origin-tech.com"
    mail_server: str = "smtp.gmail.com"
    mail_port: int = 587
    # fastapi-mail skips the SMTP round trip when set (local dev / tests)
    mail_suppress_send: bool = False

    # ── Bootstrap admin ───────────────────────────────────────
    # When both are set, the account is created at startup if missing.
    initial_admin_email: Optional[str] = None
    initial_admin_password: Optional[str] = None

    # ── Shop ──────────────────────────────────────────────────
    low_stock_threshold: int = 10

    # ── App ───────────────────────────────────────────────────
    cors_origins: str = "http://localhost:5173"
    log_level: str = "INFO"
    rate_limit_enabled: bool = True

    @property
    def cors_origins_list(self) -> list[str]:
        """Split comma-separated origins into a list, stripping whitespace."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.database_username}:{self.database_password}"
            f"@{self.database_hostname}:{self.database_port}/{self.database_name}"
        )

    class Config:
        env_file = ".env"
        # Case-insensitive so DATABASE_HOSTNAME and database_hostname both work
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings loader; reads .env once and reuses.
    Use this everywhere instead of instantiating Settings() directly.
    """
    return Settings()


# Module-level singleton for convenience imports
settings = get_settings()
