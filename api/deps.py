from __future__ import annotations

from collections.abc import Generator
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from api.auth import read_session_tokens
from api.errors import PageRedirect
from api.observability import bind_user
from core.backend.client import BackendClient
from core.config import Settings
from core.models import Role
from core.services.access import Authorized, WrongRole, check_access
from core.services.identity import SessionTokens, landing_page

LOGIN_PATH = "/login"


def get_backend(request: Request) -> BackendClient:
    return request.app.state.backend


def get_db(backend: BackendClient = Depends(get_backend)) -> Generator[Session, None, None]:
    session = backend.session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_tokens(request: Request, settings: Settings = Depends(get_app_settings)) -> SessionTokens:
    return read_session_tokens(request, settings)


def require_role(role: Role) -> Callable[..., Authorized]:
    """Gate a route on `role`.

    Visitors without a session (or without a profile role) go to the login
    page; signed-in users holding the other role go to their own landing page.
    """

    def _dependency(
        backend: BackendClient = Depends(get_backend),
        db: Session = Depends(get_db),
        tokens: SessionTokens = Depends(get_session_tokens),
    ) -> Authorized:
        outcome = check_access(backend.auth, db, tokens, role)
        if isinstance(outcome, Authorized):
            bind_user(outcome.user.id)
            return outcome
        if isinstance(outcome, WrongRole):
            raise PageRedirect(landing_page(outcome.actual))
        raise PageRedirect(LOGIN_PATH)

    return _dependency


require_coach = require_role(Role.COACH)
require_athlete = require_role(Role.ATHLETE)
