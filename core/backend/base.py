"""Interfaces for the hosted backend facets.

The portal delegates identity and file storage to an external service. Each
facet is an abstract class so route handlers and services work the same
against the hosted HTTP implementation and the in-memory fakes used in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class AuthUser:
    """Identity as reported by the auth service. Never persisted locally."""

    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: str
    user: AuthUser
    expires_in: int = 3600


@dataclass(frozen=True)
class StoredObject:
    path: str
    # None when the service does not report it.
    created_at: Optional[datetime] = None


class AuthService(ABC):
    """Password sign-in and token validation."""

    @abstractmethod
    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Exchange credentials for a session. Raises AuthServiceError."""

    @abstractmethod
    def get_user(self, access_token: str) -> AuthUser:
        """Validate the token with the service. Raises SessionRejectedError when refused."""

    @abstractmethod
    def refresh_session(self, refresh_token: str) -> AuthSession:
        ...

    @abstractmethod
    def sign_out(self, access_token: str) -> None:
        ...


class ObjectStorage(ABC):
    """Objects addressed by path inside a named bucket."""

    @abstractmethod
    def upload(self, bucket: str, path: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        """Store `data` under `path` and return the path. Raises StorageError."""

    @abstractmethod
    def remove(self, bucket: str, paths: list[str]) -> None:
        ...

    @abstractmethod
    def list(self, bucket: str, prefix: str) -> list[StoredObject]:
        """Return every object stored under `prefix`, with full paths."""

    @abstractmethod
    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        ...
