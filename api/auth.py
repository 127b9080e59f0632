"""Session cookies.

The auth service issues the tokens; the portal only carries them between
requests in two HTTP-only cookies named by the app's settings.
"""

from __future__ import annotations

from fastapi import Request, Response

from core.backend.base import AuthSession
from core.config import Settings
from core.services.identity import SessionTokens

REFRESH_COOKIE_MAX_AGE = 60 * 60 * 24 * 30


def read_session_tokens(request: Request, settings: Settings) -> SessionTokens:
    """Tokens for this request, preferring ones the session middleware just refreshed."""
    refreshed = getattr(request.state, "session_tokens", None)
    if isinstance(refreshed, SessionTokens):
        return refreshed
    return SessionTokens(
        access_token=request.cookies.get(settings.access_cookie_name) or None,
        refresh_token=request.cookies.get(settings.refresh_cookie_name) or None,
    )


def set_session_cookies(response: Response, session: AuthSession, settings: Settings) -> None:
    common = {"httponly": True, "secure": settings.session_cookie_secure, "samesite": "lax", "path": "/"}
    response.set_cookie(settings.access_cookie_name, session.access_token, max_age=int(session.expires_in), **common)
    if session.refresh_token:
        response.set_cookie(settings.refresh_cookie_name, session.refresh_token, max_age=REFRESH_COOKIE_MAX_AGE, **common)


def clear_session_cookies(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.access_cookie_name, path="/")
    response.delete_cookie(settings.refresh_cookie_name, path="/")
