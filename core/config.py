"""Application configuration with environment-specific profiles.

Supports dev, test, staging, and production environments via APP_ENV.
All values can be overridden by environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    """Immutable application settings resolved from environment."""

    database_url: str
    backend_url: str = "http://localhost:54321"
    backend_anon_key: str = ""
    # Server-only; storage calls use it so the documents bucket can stay private.
    backend_service_key: str = ""
    app_env: str = "dev"
    log_level: str = "INFO"

    # HTTP surface
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)
    request_id_header_name: str = "X-Request-ID"
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    login_rate_limit: str = "10/minute"
    http_timeout_seconds: float = 10.0

    # Document sweep
    orphan_grace_seconds: int = 600

    # Session cookies
    access_cookie_name: str = "portal-access-token"
    refresh_cookie_name: str = "portal-refresh-token"
    session_cookie_secure: bool = True

    # List limits
    public_announcement_limit: int = 50
    coach_announcement_limit: int = 100
    coach_reflection_limit: int = 200
    athlete_reflection_limit: int = 100

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"


# -- Environment profiles --

_ENV_PROFILES: dict[str, dict] = {
    "dev": {
        "log_level": "DEBUG",
        "session_cookie_secure": False,
    },
    "test": {
        "log_level": "WARNING",
        "session_cookie_secure": False,
        "rate_limit_enabled": False,
    },
    "staging": {
        "log_level": "INFO",
        "session_cookie_secure": True,
    },
    "production": {
        "log_level": "WARNING",
        "session_cookie_secure": True,
    },
}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def get_database_url() -> str:
    """Resolve the hosted database URL from the environment or a local default."""
    env_url = os.getenv("DATABASE_URL")
    if env_url:
        return env_url
    # Local development stack exposes Postgres next to the API gateway.
    return "postgresql+psycopg2://postgres@localhost:54322/postgres"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build Settings by merging environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    rate_limit_enabled = _env_bool("RATE_LIMIT_ENABLED", profile.get("rate_limit_enabled", True))
    if app_env == "test":
        rate_limit_enabled = False

    return Settings(
        database_url=get_database_url(),
        backend_url=os.getenv("BACKEND_URL", "http://localhost:54321").rstrip("/"),
        backend_anon_key=os.getenv("BACKEND_ANON_KEY", ""),
        backend_service_key=os.getenv("BACKEND_SERVICE_KEY", ""),
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        cors_origins=_env_list("CORS_ORIGINS", ("http://localhost:3000",)),
        request_id_header_name=os.getenv("REQUEST_ID_HEADER", "X-Request-ID"),
        rate_limit_enabled=rate_limit_enabled,
        rate_limit_storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
        login_rate_limit=os.getenv("LOGIN_RATE_LIMIT", "10/minute"),
        orphan_grace_seconds=int(os.getenv("ORPHAN_GRACE_SECONDS", "600")),
        session_cookie_secure=_env_bool("SESSION_COOKIE_SECURE", profile.get("session_cookie_secure", True)),
    )
