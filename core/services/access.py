"""Role gating as tagged outcomes.

`check_access` and `dispatch_after_login` only classify; the API layer maps
each outcome to a navigation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from sqlalchemy.orm import Session

from core.backend.base import AuthService, AuthUser
from core.models import Role
from core.services.identity import SessionTokens, get_current_user, landing_page, resolve_role

ROLE_UNAVAILABLE_MESSAGE = "Could not load your account role."


@dataclass(frozen=True)
class Authorized:
    user: AuthUser
    role: Role


@dataclass(frozen=True)
class Unauthenticated:
    pass


@dataclass(frozen=True)
class WrongRole:
    actual: Role


AccessResult = Union[Authorized, Unauthenticated, WrongRole]


@dataclass(frozen=True)
class Forward:
    path: str


@dataclass(frozen=True)
class RoleUnavailable:
    message: str = ROLE_UNAVAILABLE_MESSAGE


DispatchResult = Union[Forward, Unauthenticated, RoleUnavailable]


def check_access(auth: AuthService, db: Session, tokens: SessionTokens, required: Role) -> AccessResult:
    user = get_current_user(auth, tokens)
    if user is None:
        return Unauthenticated()
    role = resolve_role(db, user.id)
    if role is None:
        return Unauthenticated()
    if role != required:
        return WrongRole(actual=role)
    return Authorized(user=user, role=role)


def dispatch_after_login(auth: AuthService, db: Session, tokens: SessionTokens) -> DispatchResult:
    user = get_current_user(auth, tokens)
    if user is None:
        return Unauthenticated()
    role = resolve_role(db, user.id)
    if role is None:
        return RoleUnavailable()
    return Forward(path=landing_page(role))
