"""
core/config.py -- Centralized configuration for the CRM console via pydantic-settings.

All environment variable reads for crm-console happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. api_url -> API_URL). Type coercion and validation are built in.

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. The demo backend's SECRET_KEY is generated in dev mode and is
      mandatory otherwise.

Two audiences read these settings:
  - the console client (api_url, request_timeout, token storage, logging)
  - the FastAPI demo backend in api/ (secret_key, token expiry, rate limit)

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or services/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("crmconsole.config")

_DEFAULT_TOKEN_DB = Path.home() / ".crm-console" / "session.db"


class Settings(BaseSettings):
    """Console and demo backend settings. Every field has a default."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Request gateway
    # ------------------------------------------------------------------

    api_url: str = "https://api.example.com/v1"
    # Seconds. Applied both as the asyncio deadline and the transport timeout.
    request_timeout: float = Field(default=15.0, gt=0)

    # ------------------------------------------------------------------
    # Session persistence
    # ------------------------------------------------------------------

    token_db_url: str = f"sqlite:///{_DEFAULT_TOKEN_DB}"
    # Key name must stay stable across releases or users get logged out.
    token_key: str = "auth-token"
    logout_notifies_backend: bool = False

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    log_level: str = "WARNING"

    # ------------------------------------------------------------------
    # Demo backend
    # ------------------------------------------------------------------

    debug: bool = False
    # "" means unset; validate_secret_key replaces it with a generated key.
    secret_key: str = ""
    token_expire_seconds: int = 3600
    login_rate_limit: str = "10/minute"
    self_registration_enabled: bool = True

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Endpoints always start with '/', so the base URL must not end with one."""
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the demo backend SECRET_KEY policy.

        Dev mode (DEBUG=true) or no key at all: auto-generate a random key.
            Tokens issued by the demo backend will not survive a restart,
            which is acceptable for a throwaway demo server.

        Explicit key: reject keys shorter than 32 characters. Short keys have
            insufficient entropy for HS256 signing.
        """
        if not self.secret_key:
            self.secret_key = secrets.token_hex(32)
            if self.debug:
                logger.warning("Using auto-generated SECRET_KEY. Demo tokens will not persist across restarts.")
            return self
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Process-wide Settings. Tests that change the environment call get_settings.cache_clear()."""
    return Settings()
