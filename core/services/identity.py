"""Current-user lookup and role resolution.

Every protected action re-reads identity from the auth service and the role
from `profiles`. Both lookups fail closed: any error means "no user" or
"no role", never a default.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.backend.base import AuthService, AuthSession, AuthUser
from core.errors import BackendError, SessionRejectedError
from core.models import Profile, Role

logger = logging.getLogger(__name__)

LANDING_PAGES: dict[Role, str] = {
    Role.COACH: "/coach",
    Role.ATHLETE: "/portal",
}


@dataclass(frozen=True)
class SessionTokens:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def present(self) -> bool:
        return bool(self.access_token or self.refresh_token)


def landing_page(role: Role) -> str:
    return LANDING_PAGES[role]


def get_current_user(auth: AuthService, tokens: SessionTokens) -> Optional[AuthUser]:
    if not tokens.access_token:
        return None
    try:
        return auth.get_user(tokens.access_token)
    except BackendError as exc:
        logger.warning("current_user_unavailable", extra={"error": exc.message, "status_code": exc.status_code})
        return None


def refresh_session(auth: AuthService, tokens: SessionTokens) -> Optional[AuthSession]:
    """Exchange the refresh token when the access token is refused.

    Returns the new session, or None when the current one is still valid or
    cannot be renewed.
    """
    if tokens.access_token:
        try:
            auth.get_user(tokens.access_token)
            return None
        except SessionRejectedError:
            pass
        except BackendError as exc:
            logger.warning("session_check_failed", extra={"error": exc.message})
            return None
    if not tokens.refresh_token:
        return None
    try:
        session = auth.refresh_session(tokens.refresh_token)
    except BackendError as exc:
        logger.info("session_refresh_failed", extra={"error": exc.message})
        return None
    logger.info("session_refreshed", extra={"user_id": session.user.id})
    return session


def resolve_role(db: Session, user_id: str) -> Optional[Role]:
    try:
        value = db.execute(select(Profile.role).where(Profile.id == user_id)).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.warning("role_lookup_failed", extra={"user_id": user_id, "error": str(exc)})
        db.rollback()
        return None
    if not value:
        return None
    try:
        return Role(value)
    except ValueError:
        logger.warning("unknown_role", extra={"user_id": user_id, "role": value})
        return None
