from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from core.backend.base import AuthService, ObjectStorage
from core.backend.hosted import HostedAuthService, HostedStorage
from core.config import Settings
from core.db import build_engine, build_session_factory

logger = logging.getLogger(__name__)


@dataclass
class BackendClient:
    """One handle on the hosted backend, constructed explicitly and injected.

    `session_factory` opens sessions on the hosted Postgres database; `auth`
    and `storage` talk to the service's HTTP APIs.
    """

    auth: AuthService
    storage: ObjectStorage
    session_factory: sessionmaker[Session]
    http: Optional[httpx.Client] = None
    engine: Optional[Engine] = None

    def close(self) -> None:
        if self.http is not None:
            self.http.close()
        if self.engine is not None:
            self.engine.dispose()


def build_backend_client(settings: Settings) -> BackendClient:
    """Auth calls carry the public anon key; storage calls carry the service key."""
    if not settings.backend_service_key:
        logger.warning("backend_service_key_missing")
    http = httpx.Client(base_url=settings.backend_url, timeout=settings.http_timeout_seconds)
    engine = build_engine(settings.database_url)
    return BackendClient(
        auth=HostedAuthService(http, settings.backend_anon_key),
        storage=HostedStorage(http, settings.backend_service_key, public_url=settings.backend_url),
        session_factory=build_session_factory(engine),
        http=http,
        engine=engine,
    )
