"""
Service configuration.

Settings are read from the environment once, at application start-up, and
the resulting object is passed explicitly to every component that needs a
secret or a tunable. Nothing reads the signing secret or the master
completion credential from module globals at request time.

Configuration (environment variables):
- JWT_SECRET:                   HMAC secret for access tokens (required)
- ACCESS_TOKEN_TTL_SECONDS:     Access token lifetime (default: "3600")
- REFRESH_TOKEN_TTL_SECONDS:    Refresh token lifetime (default: "2592000")
- DATABASE_URL:                 SQLAlchemy async URL
- REDIS_URL:                    Redis URL; in-process store when unset
- RATE_LIMIT_ENABLED:           Kill switch (default: "true")
- RATE_LIMIT_DEFAULT_DAILY:     Daily budget without a subscription (default: "50")
- COMPLETION_API_URL:           Upstream chat completions endpoint
- COMPLETION_MODEL:             Upstream model identifier
- COMPLETION_TIMEOUT_SECONDS:   Upstream call timeout (default: "60")
- MASTER_COMPLETION_API_KEY:    Fallback upstream credential
- ENCRYPTION_KEY:               Fernet key for per-user upstream credentials
- CORS_ORIGINS:                 Comma separated origins (default: "*")
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./brandmind.db"
DEFAULT_COMPLETION_API_URL = "https://api.perplexity.ai/chat/completions"
DEFAULT_COMPLETION_MODEL = "llama-3.1-sonar-large-128k-online"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings(BaseModel):
    """Process-wide, read-only configuration."""

    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_ttl_seconds: int = 3600
    refresh_token_ttl_seconds: int = 2592000

    database_url: str = DEFAULT_DATABASE_URL
    redis_url: Optional[str] = None

    rate_limit_enabled: bool = True
    default_daily_limit: int = 50

    completion_api_url: str = DEFAULT_COMPLETION_API_URL
    completion_model: str = DEFAULT_COMPLETION_MODEL
    completion_timeout_seconds: float = 60.0
    master_completion_api_key: Optional[str] = None

    encryption_key: Optional[str] = None
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    model_config = ConfigDict(frozen=True)

    @field_validator("jwt_secret")
    @classmethod
    def _validate_secret(cls, value: str) -> str:
        if not value:
            raise ValueError("jwt_secret must be provided")
        return value

    @field_validator("access_token_ttl_seconds", "refresh_token_ttl_seconds")
    @classmethod
    def _validate_ttl(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("token lifetimes must be positive")
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            ValueError: If JWT_SECRET is missing or a numeric value is invalid
        """
        jwt_secret = os.getenv("JWT_SECRET")
        if not jwt_secret:
            raise ValueError("JWT_SECRET environment variable is required")

        origins = os.getenv("CORS_ORIGINS", "*")

        return cls(
            jwt_secret=jwt_secret,
            access_token_ttl_seconds=int(os.getenv("ACCESS_TOKEN_TTL_SECONDS", "3600")),
            refresh_token_ttl_seconds=int(os.getenv("REFRESH_TOKEN_TTL_SECONDS", "2592000")),
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            redis_url=os.getenv("REDIS_URL") or None,
            rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", "true"),
            default_daily_limit=int(os.getenv("RATE_LIMIT_DEFAULT_DAILY", "50")),
            completion_api_url=os.getenv("COMPLETION_API_URL", DEFAULT_COMPLETION_API_URL),
            completion_model=os.getenv("COMPLETION_MODEL", DEFAULT_COMPLETION_MODEL),
            completion_timeout_seconds=float(os.getenv("COMPLETION_TIMEOUT_SECONDS", "60")),
            master_completion_api_key=os.getenv("MASTER_COMPLETION_API_KEY") or None,
            encryption_key=os.getenv("ENCRYPTION_KEY") or None,
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
