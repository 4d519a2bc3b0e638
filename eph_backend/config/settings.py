"""
Settings Configuration

Centralized configuration for the competition service.
All values are loaded from environment variables.
"""
import os
from typing import List


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on bad input."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_list_env(key: str) -> List[str]:
    """Comma separated list, empty entries dropped."""
    return [item.strip() for item in os.getenv(key, "").split(",") if item.strip()]


DEV_SECRET_KEY = "dev-secret-key-change-in-production"


class Settings:
    """
    Runtime settings for the application.

    Read once at import time. Tests that need different values should
    construct a new Settings() after patching the environment.
    """

    def __init__(self):
        self.ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        # Database
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./eph.db")

        # Auth (token verification only)
        self.JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", DEV_SECRET_KEY)
        self.JWT_ALGORITHM: str = "HS256"
        self.ACCESS_TOKEN_EXPIRE_MINUTES: int = get_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24)

        # CORS
        self.ALLOWED_ORIGINS: List[str] = get_list_env("ALLOWED_ORIGINS")

        # Email
        self.EMAIL_ENABLED: bool = get_bool_env("EMAIL_ENABLED", True)
        self.SMTP_HOST: str = os.getenv("SMTP_HOST", "localhost")
        self.SMTP_PORT: int = get_int_env("SMTP_PORT", 587)
        self.SMTP_USER: str = os.getenv("SMTP_USER", "")
        self.SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
        self.EMAIL_FROM: str = os.getenv("EMAIL_FROM", "no-reply@eph.local")
        self.EMAIL_FROM_NAME: str = os.getenv("EMAIL_FROM_NAME", "EPH Competitions")

        # Limits
        self.RATE_LIMIT_ENABLED: bool = get_bool_env("RATE_LIMIT_ENABLED", True)
        self.RATE_LIMIT_REGISTER: str = os.getenv("RATE_LIMIT_REGISTER", "20/minute")
        self.DEFAULT_PAGE_SIZE: int = get_int_env("DEFAULT_PAGE_SIZE", 20)
        self.MAX_PAGE_SIZE: int = get_int_env("MAX_PAGE_SIZE", 100)

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def validate(self) -> None:
        """Fail fast on settings that are unsafe outside development."""
        if self.is_production and self.JWT_SECRET_KEY == DEV_SECRET_KEY:
            raise EnvironmentError("JWT_SECRET_KEY must be set in production")


settings = Settings()
