"""Runtime configuration read from the environment (and an optional .env file)."""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

_DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    app_env: str = "development"
    app_url: str = "http://localhost:3000"
    site_name: str = "Marquee"
    contact_email: str = ""
    session_cookie_name: str = "marquee.session_token"
    admin_secret_value: str = ""
    cron_secret: str = ""
    streaming_api_url: str = ""
    streaming_api_token: str = ""
    streaming_timeout_seconds: float = 10.0
    payment_webhook_secret: str = ""
    payment_webhook_relay_url: str = ""
    payment_api_token: str = ""
    resend_api_key: str = ""
    email_from: str = "Marquee <noreply@marquee.local>"
    database_url: str = "sqlite:///./marquee.db"
    log_level: str = "INFO"
    sql_echo: bool = False
    build_hash: str = ""
    cors_origins: List[str] = field(default_factory=lambda: list(_DEFAULT_CORS_ORIGINS))

    @classmethod
    def from_env(cls) -> "Settings":
        cors = list(_DEFAULT_CORS_ORIGINS)
        extra = os.getenv("CORS_ORIGINS", "")
        if extra:
            cors.extend(o.strip() for o in extra.split(",") if o.strip())

        return cls(
            app_env=os.getenv("APP_ENV", "development").lower(),
            app_url=os.getenv("APP_URL", "http://localhost:3000").rstrip("/"),
            site_name=os.getenv("SITE_NAME", "Marquee"),
            contact_email=os.getenv("CONTACT_EMAIL", ""),
            session_cookie_name=os.getenv("SESSION_COOKIE_NAME", "marquee.session_token"),
            admin_secret_value=os.getenv("ADMIN_SECRET", ""),
            cron_secret=os.getenv("CRON_SECRET", ""),
            streaming_api_url=os.getenv("STREAMING_API_URL", ""),
            streaming_api_token=os.getenv("STREAMING_API_TOKEN", ""),
            streaming_timeout_seconds=float(os.getenv("STREAMING_TIMEOUT_SECONDS", "10")),
            payment_webhook_secret=os.getenv("PAYMENT_WEBHOOK_SECRET", ""),
            payment_webhook_relay_url=os.getenv("PAYMENT_WEBHOOK_RELAY_URL", ""),
            payment_api_token=os.getenv("PAYMENT_API_TOKEN", ""),
            resend_api_key=os.getenv("RESEND_API_KEY", ""),
            email_from=os.getenv("EMAIL_FROM", "Marquee <noreply@marquee.local>"),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./marquee.db"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            sql_echo=_env_bool("SQL_ECHO"),
            build_hash=os.getenv("BUILD_HASH", ""),
            cors_origins=cors,
        )

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def admin_secret(self) -> Optional[str]:
        """Bearer secret for admin endpoints; falls back to the cron secret."""
        return self.admin_secret_value or self.cron_secret or None


@lru_cache
def get_settings() -> Settings:
    """Cached settings; also used as a FastAPI dependency so tests can override it."""
    return Settings.from_env()
