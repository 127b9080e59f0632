"""HTTP adapters for the hosted auth and storage services.

Both adapters share one `httpx.Client` whose base URL is the backend gateway
(`BACKEND_URL`). Auth lives under `/auth/v1`, storage under `/storage/v1`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote

import httpx

from core.backend.base import AuthService, AuthSession, AuthUser, ObjectStorage, StoredObject
from core.errors import AuthServiceError, BackendError, SessionRejectedError, StorageError

logger = logging.getLogger(__name__)

AUTH_PREFIX = "/auth/v1"
STORAGE_PREFIX = "/storage/v1"
LIST_PAGE_SIZE = 1000


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            value = body.get(key)
            if value:
                return str(value)
    text = resp.text.strip()
    return text or f"Request failed with status {resp.status_code}"


def _raise_for_status(resp: httpx.Response, error_cls: type[BackendError]) -> None:
    if resp.is_success:
        return
    raise error_cls(_error_message(resp), status_code=resp.status_code)


def _parse_timestamp(raw: Any) -> Optional[datetime]:
    if not raw:
        return None
    try:
        value = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _parse_user(raw: dict[str, Any]) -> AuthUser:
    return AuthUser(id=str(raw["id"]), email=raw.get("email"))


def _parse_session(raw: dict[str, Any]) -> AuthSession:
    try:
        return AuthSession(
            access_token=str(raw["access_token"]),
            refresh_token=str(raw.get("refresh_token") or ""),
            user=_parse_user(raw["user"]),
            expires_in=int(raw.get("expires_in") or 3600),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise AuthServiceError("Malformed session returned by the auth service.") from exc


class HostedAuthService(AuthService):
    """GoTrue-style auth REST API."""

    def __init__(self, http: httpx.Client, api_key: str):
        self.http = http
        self.api_key = api_key

    def _headers(self, access_token: Optional[str] = None) -> dict[str, str]:
        headers = {"apikey": self.api_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self.http.request(method, f"{AUTH_PREFIX}{path}", **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("auth_transport_error", extra={"path": path, "error": str(exc)})
            raise AuthServiceError(f"Auth service unavailable: {exc}") from exc

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        resp = self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers=self._headers(),
        )
        _raise_for_status(resp, AuthServiceError)
        return _parse_session(resp.json())

    def get_user(self, access_token: str) -> AuthUser:
        resp = self._request("GET", "/user", headers=self._headers(access_token))
        if resp.status_code in (401, 403):
            raise SessionRejectedError(_error_message(resp), status_code=resp.status_code)
        _raise_for_status(resp, AuthServiceError)
        try:
            return _parse_user(resp.json())
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthServiceError("Malformed user returned by the auth service.") from exc

    def refresh_session(self, refresh_token: str) -> AuthSession:
        resp = self._request(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
            headers=self._headers(),
        )
        _raise_for_status(resp, AuthServiceError)
        return _parse_session(resp.json())

    def sign_out(self, access_token: str) -> None:
        resp = self._request("POST", "/logout", headers=self._headers(access_token))
        _raise_for_status(resp, AuthServiceError)


class HostedStorage(ObjectStorage):
    """Storage REST API.

    `api_key` must be the server-only service key: the documents bucket is
    private, so uploads, removals, listings and URL signing all run with
    service privileges and never with the public anon key.
    """

    def __init__(self, http: httpx.Client, api_key: str, public_url: str = "", page_size: int = LIST_PAGE_SIZE):
        self.http = http
        self.api_key = api_key
        self.public_url = public_url.rstrip("/")
        self.page_size = page_size

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"}
        headers.update(extra)
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self.http.request(method, f"{STORAGE_PREFIX}{path}", **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("storage_transport_error", extra={"path": path, "error": str(exc)})
            raise StorageError(f"Storage service unavailable: {exc}") from exc

    @staticmethod
    def _object_path(bucket: str, path: str) -> str:
        return f"{quote(bucket)}/{quote(path.lstrip('/'))}"

    def upload(self, bucket: str, path: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        resp = self._request(
            "POST",
            f"/object/{self._object_path(bucket, path)}",
            content=data,
            headers=self._headers(**{"Content-Type": content_type, "x-upsert": "true" if upsert else "false"}),
        )
        _raise_for_status(resp, StorageError)
        return path

    def remove(self, bucket: str, paths: list[str]) -> None:
        if not paths:
            return
        resp = self._request("DELETE", f"/object/{quote(bucket)}", json={"prefixes": list(paths)}, headers=self._headers())
        _raise_for_status(resp, StorageError)

    def list(self, bucket: str, prefix: str) -> list[StoredObject]:
        prefix = prefix.strip("/")
        found: list[StoredObject] = []
        offset = 0
        while True:
            resp = self._request(
                "POST",
                f"/object/list/{quote(bucket)}",
                json={"prefix": prefix, "limit": self.page_size, "offset": offset},
                headers=self._headers(),
            )
            _raise_for_status(resp, StorageError)
            page = [item for item in resp.json() or [] if isinstance(item, dict)]
            for item in page:
                name = item.get("name")
                # Folder placeholders have no id.
                if not name or item.get("id") is None:
                    continue
                path = f"{prefix}/{name}" if prefix else str(name)
                found.append(StoredObject(path=path, created_at=_parse_timestamp(item.get("created_at"))))
            if len(page) < self.page_size:
                return found
            offset += len(page)

    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        resp = self._request(
            "POST",
            f"/object/sign/{self._object_path(bucket, path)}",
            json={"expiresIn": int(expires_in)},
            headers=self._headers(),
        )
        _raise_for_status(resp, StorageError)
        body = resp.json() or {}
        signed = body.get("signedURL") or body.get("signedUrl")
        if not signed:
            raise StorageError("Storage service returned no signed URL.")
        if signed.startswith("http"):
            return signed
        return f"{self.public_url}{STORAGE_PREFIX}{signed}"
