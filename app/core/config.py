from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env lives at the project root: app/core/config.py -> app/core -> app -> root
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"


class Settings(BaseSettings):
    # TossPayments: server-side secret key (test_sk_... / live_sk_...). Blank = payments disabled.
    toss_secret_key: str = ""
    toss_api_base: str = "https://api.tosspayments.com"
    toss_timeout_seconds: float = 20.0
    secret_key: str = "change-me-in-production"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days
    database_url: str = "sqlite:///./cruise.db"
    # CORS: comma separated origins; in production e.g. https://cruise.example.com
    cors_origins: str = "*"
    # Per-IP request limits (slowapi)
    rate_limit_per_minute: int = 60
    rate_limit_confirm_per_minute: int = 10
    rate_limit_register_per_minute: int = 3
    admin_secret: str = ""  # X-Admin-Secret for /admin endpoints
    environment: str = "development"
    # Last-resort full scan in order lookup (small deployments only)
    order_scan_fallback: bool = True

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("toss_secret_key", "admin_secret", mode="before")
    @classmethod
    def strip_secret(cls, v: str | None) -> str:
        """Guards against stray whitespace from copy/paste into .env."""
        return (v or "").strip()

    @field_validator("toss_api_base", mode="before")
    @classmethod
    def strip_base_url(cls, v: str | None) -> str:
        return (v or "").strip().rstrip("/") or "https://api.tosspayments.com"


settings = Settings()


def is_toss_configured() -> bool:
    """Is a gateway secret present? (the key itself is never returned)"""
    return bool(settings.toss_secret_key)
