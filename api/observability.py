"""Structured JSON logs with per-request context.

The request middleware binds a `RequestContext` for the duration of a
request; the route guard fills in the signed-in user once it is known. Every
log line emitted while the context is bound carries both ids.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4


@dataclass
class RequestContext:
    request_id: str
    # Mutable: sync dependencies run in a copied context, so they update this object in place.
    user_id: Optional[str] = None


_context_var: contextvars.ContextVar[Optional[RequestContext]] = contextvars.ContextVar("request_context", default=None)
_logging_configured = False
_STANDARD_LOG_RECORD_FIELDS = set(logging.makeLogRecord({}).__dict__.keys())

# Never written to logs, even when passed in `extra`.
REDACTED_FIELDS = frozenset({"password", "access_token", "refresh_token", "apikey", "authorization"})


def new_request_id() -> str:
    return uuid4().hex


def bind_request(request_id: str) -> contextvars.Token:
    return _context_var.set(RequestContext(request_id=request_id))


def unbind_request(token: contextvars.Token) -> None:
    _context_var.reset(token)


def bind_user(user_id: Optional[str]) -> None:
    ctx = _context_var.get()
    if ctx is not None:
        ctx.user_id = user_id


def current_context() -> Optional[RequestContext]:
    return _context_var.get()


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        ctx = current_context()
        if ctx is not None:
            payload["request_id"] = ctx.request_id
            if ctx.user_id:
                payload["user_id"] = ctx.user_id
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key in _STANDARD_LOG_RECORD_FIELDS or key.startswith("_") or key in payload:
                continue
            payload[key] = "[redacted]" if key.lower() in REDACTED_FIELDS else value
        return json.dumps(payload, default=str, separators=(",", ":"))


def configure_logging(level: str = "INFO") -> None:
    global _logging_configured
    if _logging_configured:
        return

    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
    # Backend chatter: every auth check and storage call is an HTTP request.
    for name in ("sqlalchemy.engine", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    _logging_configured = True


def request_log_fields(*, method: str, path: str, status_code: int, started_ms: float, client_ip: Optional[str]) -> dict[str, object]:
    """Fields for the one access-log line written per request."""
    return {
        "method": method,
        "path": path,
        "status_code": int(status_code),
        "duration_ms": round(monotonic_ms() - float(started_ms), 2),
        "client_ip": client_ip or "",
    }


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0
