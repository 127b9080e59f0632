from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from core.backend.base import AuthService, AuthSession, AuthUser, ObjectStorage, StoredObject
from core.backend.client import BackendClient
from core.db import build_engine, build_session_factory, create_schema
from core.errors import AuthServiceError, SessionRejectedError, StorageError
from core.models import Profile, utcnow

COACH_ID = "c0ac4000-0000-4000-8000-000000000001"
ATHLETE_ID = "a7417e7e-0000-4000-8000-000000000002"
NAMELESS_ATHLETE_ID = "a7417e7e-0000-4000-8000-000000000003"
ROLELESS_ID = "0e0e0e0e-0000-4000-8000-000000000004"


class FakeAuthService(AuthService):
    """In-memory auth service keyed by opaque token strings."""

    def __init__(self):
        self.passwords: dict[str, tuple[str, AuthUser]] = {}
        self.access_tokens: dict[str, AuthUser] = {}
        self.refresh_tokens: dict[str, AuthUser] = {}
        self.signed_out: list[str] = []
        self.unavailable = False
        self._issued = 0

    def register(self, user_id: str, email: str, password: str = "pass1234") -> AuthSession:
        user = AuthUser(id=user_id, email=email)
        self.passwords[email] = (password, user)
        return self._issue(user)

    def _issue(self, user: AuthUser) -> AuthSession:
        self._issued += 1
        session = AuthSession(
            access_token=f"access-{user.id}-{self._issued}",
            refresh_token=f"refresh-{user.id}-{self._issued}",
            user=user,
        )
        self.access_tokens[session.access_token] = user
        self.refresh_tokens[session.refresh_token] = user
        return session

    def expire(self, access_token: str) -> None:
        self.access_tokens.pop(access_token, None)

    def _check_available(self) -> None:
        if self.unavailable:
            raise AuthServiceError("Auth service unavailable")

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        self._check_available()
        entry = self.passwords.get(email)
        if entry is None or entry[0] != password:
            raise AuthServiceError("Invalid login credentials", status_code=400)
        return self._issue(entry[1])

    def get_user(self, access_token: str) -> AuthUser:
        self._check_available()
        user = self.access_tokens.get(access_token)
        if user is None:
            raise SessionRejectedError("invalid JWT", status_code=401)
        return user

    def refresh_session(self, refresh_token: str) -> AuthSession:
        self._check_available()
        user = self.refresh_tokens.pop(refresh_token, None)
        if user is None:
            raise AuthServiceError("Invalid Refresh Token", status_code=400)
        return self._issue(user)

    def sign_out(self, access_token: str) -> None:
        self._check_available()
        self.signed_out.append(access_token)
        self.access_tokens.pop(access_token, None)


class FakeStorage(ObjectStorage):
    """Bucket -> path -> bytes, with switches to make each call fail."""

    def __init__(self):
        self.objects: dict[str, dict[str, bytes]] = {}
        self.content_types: dict[tuple[str, str], str] = {}
        self.created_at: dict[tuple[str, str], datetime] = {}
        self.fail_upload = False
        self.fail_remove = False
        self.fail_list = False
        self.remove_calls: list[list[str]] = []

    def paths(self, bucket: str) -> set[str]:
        return set(self.objects.get(bucket, {}))

    def backdate(self, bucket: str, path: str, minutes: int = 60) -> None:
        self.created_at[(bucket, path)] -= timedelta(minutes=minutes)

    def upload(self, bucket: str, path: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        if self.fail_upload:
            raise StorageError("upload failed", status_code=500)
        objects = self.objects.setdefault(bucket, {})
        if path in objects and not upsert:
            raise StorageError("The resource already exists", status_code=409)
        objects[path] = data
        self.content_types[(bucket, path)] = content_type
        self.created_at[(bucket, path)] = utcnow()
        return path

    def remove(self, bucket: str, paths: list[str]) -> None:
        self.remove_calls.append(list(paths))
        if self.fail_remove:
            raise StorageError("remove failed", status_code=500)
        objects = self.objects.setdefault(bucket, {})
        for path in paths:
            objects.pop(path, None)

    def list(self, bucket: str, prefix: str) -> list[StoredObject]:
        if self.fail_list:
            raise StorageError("list failed", status_code=500)
        prefix = prefix.strip("/") + "/"
        return [
            StoredObject(path=p, created_at=self.created_at.get((bucket, p)))
            for p in sorted(self.objects.get(bucket, {}))
            if p.startswith(prefix)
        ]

    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        if path not in self.objects.get(bucket, {}):
            raise StorageError("Object not found", status_code=404)
        return f"https://storage.test/{bucket}/{path}?token=signed&expires_in={expires_in}"


@pytest.fixture()
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'portal.db'}")
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def auth():
    return FakeAuthService()


@pytest.fixture()
def storage():
    return FakeStorage()


@pytest.fixture()
def backend(auth, storage, session_factory):
    return BackendClient(auth=auth, storage=storage, session_factory=session_factory)


def seed_profiles(session_factory) -> None:
    with session_factory() as s:
        s.add_all(
            [
                Profile(id=COACH_ID, role="coach", first_name="Casey", last_name="Morgan"),
                Profile(id=ATHLETE_ID, role="athlete", first_name="Jordan", last_name="Lee", event_group="Sprints"),
                Profile(id=NAMELESS_ATHLETE_ID, role="athlete"),
                Profile(id=ROLELESS_ID, role=None, first_name="Pending"),
            ]
        )
        s.commit()


@pytest.fixture()
def profiles(session_factory):
    seed_profiles(session_factory)


@pytest.fixture()
def test_env(monkeypatch):
    from core.config import get_settings

    monkeypatch.setenv("APP_ENV", "test")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture()
def client(test_env, backend, profiles):
    from api.main import create_app

    app = create_app(client=backend)
    with TestClient(app, follow_redirects=False) as c:
        yield c


def sign_in_as(client: TestClient, auth: FakeAuthService, user_id: str, email: Optional[str] = None) -> AuthSession:
    """Attach a fresh session for `user_id` to the test client's cookie jar."""
    session = auth.register(user_id, email or f"{user_id[:8]}@team.test")
    client.cookies.set("portal-access-token", session.access_token)
    client.cookies.set("portal-refresh-token", session.refresh_token)
    return session
