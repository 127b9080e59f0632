"""Map service exceptions to page state.

Every failure ends at the action boundary as JSON the page can render inline
(`{"error": ...}`) or as a redirect; nothing propagates past these handlers
except genuine bugs.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from core.errors import BackendError, DuplicateSubmissionError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class PageRedirect(Exception):
    """Raised by guards to send the browser elsewhere instead of rendering."""

    def __init__(self, location: str):
        super().__init__(location)
        self.location = location


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def validation_message(exc: RequestValidationError | PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid input."
    first = errors[0]
    ctx_error = (first.get("ctx") or {}).get("error")
    if ctx_error is not None:
        return str(ctx_error)
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = str(first.get("msg") or "Invalid input.")
    return f"{field}: {message}" if field else message


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PageRedirect)
    async def page_redirect_handler(request: Request, exc: PageRedirect):
        return RedirectResponse(url=exc.location, status_code=303)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(400, validation_message(exc))

    @app.exception_handler(PydanticValidationError)
    async def model_validation_handler(request: Request, exc: PydanticValidationError):
        return error_response(400, validation_message(exc))

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return error_response(400, exc.message)

    @app.exception_handler(DuplicateSubmissionError)
    async def duplicate_handler(request: Request, exc: DuplicateSubmissionError):
        return error_response(409, exc.message)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return error_response(404, exc.message)

    @app.exception_handler(BackendError)
    async def backend_handler(request: Request, exc: BackendError):
        logger.warning(
            "backend_error",
            extra={"path": request.url.path, "error": exc.message, "upstream_status": exc.status_code},
        )
        return error_response(502, exc.message)

    @app.exception_handler(SQLAlchemyError)
    async def database_handler(request: Request, exc: SQLAlchemyError):
        message = str(getattr(exc, "orig", None) or exc)
        logger.warning("database_error", extra={"path": request.url.path, "error": message})
        return error_response(502, message)
