from __future__ import annotations

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from core.config import Settings, get_settings


def limiter_enabled(settings: Settings) -> bool:
    if settings.is_test:
        return False
    return bool(settings.rate_limit_enabled)


# Set per app by configure_limiter; read by the login route decorator on each request.
_login_limit = get_settings().login_rate_limit


def login_rate_limit() -> str:
    return _login_limit


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=get_settings().rate_limit_storage_uri,
    enabled=limiter_enabled(get_settings()),
    headers_enabled=True,
)


def configure_limiter(settings: Settings) -> Limiter:
    """Apply an app's settings to the limiter shared by the route decorators."""
    global _login_limit
    _login_limit = settings.login_rate_limit
    limiter.enabled = limiter_enabled(settings)
    limiter.reset()
    return limiter


def rate_limit_exceeded_handler(request: Request, exc: Exception) -> JSONResponse:
    retry_after: Optional[str] = None
    if isinstance(exc, RateLimitExceeded):
        retry_after = getattr(exc, "retry_after", None)
    headers = {}
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(
        status_code=429,
        content={
            "detail": {
                "code": "RATE_LIMITED",
                "message": "Too many sign-in attempts. Try again shortly.",
            }
        },
        headers=headers,
    )
