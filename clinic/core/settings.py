from __future__ import annotations

from enum import Enum

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Env(str, Enum):
    DEV = "dev"
    HML = "hml"
    PROD = "prod"


class Settings(BaseSettings):
    APP_ENV: Env = Env.DEV
    DEBUG: bool = False

    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    DATABASE_URL: str = "sqlite:///./clinic.db"

    ALLOWED_HOSTS: str = "localhost,127.0.0.1"

    # If True, login will also set HttpOnly cookies
    USE_COOKIE_AUTH: bool = True
    COOKIE_DOMAIN: str | None = None
    SECURE_COOKIES: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Analytics
    CLINIC_TZ: str = "America/Mexico_City"
    # Python weekday numbering: 0=Monday ... 6=Sunday
    ANALYTICS_WEEK_START: int = Field(default=6, ge=0, le=6)
    DEFAULT_CURRENCY: str = Field(default="USD", min_length=3, max_length=3)
    DEFAULT_PRECISION: int = Field(default=2, ge=0, le=10)

    # Capacity defaults, used when a therapist has no CapacityConfig row
    MAX_SESSIONS_PER_DAY: int = 8
    MAX_SESSIONS_PER_WEEK: int = 40
    MAX_SESSIONS_PER_MONTH: int = 160
    MAX_HOURS_PER_DAY: float = 8
    MAX_HOURS_PER_WEEK: float = 40
    MAX_HOURS_PER_MONTH: float = 160
    PREFERRED_SESSION_MINUTES: int = 60

    @model_validator(mode="after")
    def _prod_needs_real_secret(self) -> Settings:
        if self.APP_ENV == Env.PROD and self.JWT_SECRET == "change-me":
            raise ValueError("JWT_SECRET must be set in production")
        return self

    model_config = SettingsConfigDict(
        env_file=".env.dev",
        env_file_encoding="utf-8",
        extra="ignore",
        ser_json_timedelta="iso8601",
        ser_json_tz="utc",
    )


settings = Settings()
