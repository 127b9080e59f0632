from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.concurrency import run_in_threadpool

from api import coach, portal
from api.auth import read_session_tokens, set_session_cookies
from api.errors import register_exception_handlers
from api.observability import (
    bind_request,
    configure_logging,
    monotonic_ms,
    new_request_id,
    request_log_fields,
    unbind_request,
)
from api.ratelimit import configure_limiter, rate_limit_exceeded_handler
from api.routes import router
from core.backend.client import BackendClient, build_backend_client
from core.config import Settings, get_settings
from core.services.identity import SessionTokens, refresh_session

logger = logging.getLogger(__name__)

# Paths that manage the session themselves.
SESSION_REFRESH_EXEMPT = frozenset({"/login", "/logout", "/health"})


def create_app(client: Optional[BackendClient] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the portal app around an explicitly constructed backend client.

    When `client` is omitted one is built from settings at startup and closed
    at shutdown; a caller-supplied client stays owned by the caller.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if app.state.backend is None:
            owned = build_backend_client(settings)
            app.state.backend = owned
            logger.info("backend_client_initialized", extra={"backend_url": settings.backend_url})
        try:
            yield
        finally:
            if owned is not None:
                owned.close()
                app.state.backend = None

    # /docs is the public documents page, so the API reference lives under /api.
    app = FastAPI(
        title="Track Team Portal",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    app.state.backend = client
    app.state.settings = settings
    app.state.limiter = configure_limiter(settings)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    register_exception_handlers(app)
    app.include_router(router)
    app.include_router(coach.router)
    app.include_router(portal.router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def session_refresh(request: Request, call_next: Callable) -> Response:
        if request.url.path in SESSION_REFRESH_EXEMPT:
            return await call_next(request)
        backend: Optional[BackendClient] = request.app.state.backend
        tokens = read_session_tokens(request, settings)
        renewed = None
        if backend is not None and tokens.present:
            renewed = await run_in_threadpool(refresh_session, backend.auth, tokens)
        if renewed is not None:
            request.state.session_tokens = SessionTokens(
                access_token=renewed.access_token,
                refresh_token=renewed.refresh_token,
            )
        response = await call_next(request)
        if renewed is not None:
            set_session_cookies(response, renewed, settings)
        return response

    @app.middleware("http")
    async def request_context_and_logging(request: Request, call_next: Callable) -> Response:
        header_name = settings.request_id_header_name or "X-Request-ID"
        request_id = (request.headers.get(header_name) or "").strip() or new_request_id()
        token = bind_request(request_id)
        started_ms = monotonic_ms()
        client_ip = getattr(request.client, "host", None)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "http_request_error",
                extra=request_log_fields(
                    method=request.method,
                    path=request.url.path,
                    status_code=500,
                    started_ms=started_ms,
                    client_ip=client_ip,
                ),
            )
            raise
        else:
            response.headers[header_name] = request_id
            logger.info(
                "http_request",
                extra=request_log_fields(
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    started_ms=started_ms,
                    client_ip=client_ip,
                ),
            )
            return response
        finally:
            unbind_request(token)

    return app


app = create_app()
