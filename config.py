"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

CAPTCHA_STORE picks the challenge store backend: "auto" uses Redis when
REDIS_URI is configured and falls back to the in-process store otherwise.
Rate limit counters follow the same rule unless RATE_LIMIT_STORAGE_URI
names a backend explicitly.
"""

from __future__ import annotations

from typing import Literal, Optional

from limits import parse
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "bitki-store"


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional; without Redis the captcha store lives in process memory
    redis_uri: Optional[str] = None


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_issuer: str = "bitki-store"
    jwt_audience: str = "bitki-store.api"
    access_token_ttl_seconds: int = 7 * 24 * 3600

    # RS256 keys (preferred)
    jwt_private_key: str = ""
    jwt_public_key: str = ""

    # HS256 fallback (used when RS256 keys are absent)
    jwt_secret: str = ""

    @property
    def use_rs256(self) -> bool:
        return bool(self.jwt_private_key and self.jwt_public_key)


class CaptchaSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    captcha_store: Literal["auto", "memory", "redis"] = "auto"
    captcha_ttl_seconds: int = 600
    captcha_token_ttl_seconds: int = 300
    captcha_max_attempts: int = 3
    captcha_min_circles: int = 5
    captcha_max_circles: int = 7

    @model_validator(mode="after")
    def _check_bounds(self) -> "CaptchaSettings":
        if not 2 <= self.captcha_min_circles <= self.captcha_max_circles <= 9:
            raise ValueError(
                "captcha circle counts must satisfy 2 <= min <= max <= 9"
            )
        if self.captcha_max_attempts < 1:
            raise ValueError("captcha_max_attempts must be at least 1")
        if self.captcha_ttl_seconds < 1 or self.captcha_token_ttl_seconds < 1:
            raise ValueError("captcha TTLs must be positive")
        return self


class RateLimitSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    rate_limit_enabled: bool = True
    # Per client IP, fixed window; "<count> per <n> <unit>" strings
    auth_rate_limit: str = "5 per 15 minutes"
    captcha_rate_limit: str = "30 per minute"
    api_rate_limit: str = "100 per 5 minutes"
    # None: Redis when REDIS_URI is set, process memory otherwise
    rate_limit_storage_uri: Optional[str] = None

    @field_validator("auth_rate_limit", "captcha_rate_limit", "api_rate_limit")
    @classmethod
    def _parseable(cls, value: str) -> str:
        parse(value)
        return value


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "bitki-store"

    # CORS: the storefront and admin SPAs are served from other origins
    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    jwt: Optional[JWTSettings] = None
    captcha: Optional[CaptchaSettings] = None
    rate_limit: Optional[RateLimitSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.captcha is None:
            self.captcha = CaptchaSettings()
        if self.rate_limit is None:
            self.rate_limit = RateLimitSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
