import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from api.auth import clear_session_cookies, set_session_cookies
from api.deps import LOGIN_PATH, get_app_settings, get_backend, get_db, get_session_tokens
from api.errors import error_response
from api.ratelimit import limiter, login_rate_limit
from api.schemas import (
    AnnouncementOut,
    AnnouncementsPage,
    DocsPage,
    DocumentOut,
    HealthOut,
    HomePage,
    LoginPage,
    RedirectPage,
    ScheduleEventOut,
    SchedulePage,
)
from core.backend.client import BackendClient
from core.config import Settings
from core.errors import AuthServiceError
from core.services import announcements, documents, schedule
from core.services.access import Forward, RoleUnavailable, dispatch_after_login
from core.services.identity import SessionTokens
from core.validators import LoginInput

logger = logging.getLogger(__name__)
router = APIRouter()

PUBLIC_LINKS = {
    "schedule": "/schedule",
    "announcements": "/announcements",
    "docs": "/docs",
    "login": LOGIN_PATH,
}


@router.get("/health", response_model=HealthOut, tags=["ops"])
def health():
    return HealthOut()


@router.get("/", response_model=HomePage, tags=["public"])
def home(db: Session = Depends(get_db)):
    upcoming = schedule.next_event(db, today=date.today())
    latest = announcements.latest_announcement(db)
    return HomePage(
        next_event=ScheduleEventOut.from_row(upcoming) if upcoming else None,
        latest_announcement=AnnouncementOut.model_validate(latest) if latest else None,
        links=PUBLIC_LINKS,
    )


@router.get("/schedule", response_model=SchedulePage, tags=["public"])
def public_schedule(db: Session = Depends(get_db)):
    return SchedulePage(items=[ScheduleEventOut.from_row(e) for e in schedule.list_events(db)])


@router.get("/announcements", response_model=AnnouncementsPage, tags=["public"])
def public_announcements(db: Session = Depends(get_db), settings: Settings = Depends(get_app_settings)):
    rows = announcements.list_announcements(db, limit=settings.public_announcement_limit)
    pinned, regular = announcements.split_pinned(rows)
    return AnnouncementsPage(
        pinned=[AnnouncementOut.model_validate(r) for r in pinned],
        regular=[AnnouncementOut.model_validate(r) for r in regular],
    )


def docs_page(db: Session, category: Optional[str]) -> DocsPage:
    listing = documents.list_documents(db, category)
    return DocsPage(
        categories=[documents.ALL_CATEGORIES, *documents.CATEGORIES],
        selected_category=listing.selected_category,
        required=[DocumentOut.from_row(d) for d in listing.required],
        other=[DocumentOut.from_row(d) for d in listing.other],
    )


@router.get("/docs", response_model=DocsPage, tags=["public"])
def public_docs(category: Optional[str] = None, db: Session = Depends(get_db)):
    return docs_page(db, category)


@router.get("/docs/{document_id}/download", tags=["public"])
def download_document(
    document_id: str,
    db: Session = Depends(get_db),
    backend: BackendClient = Depends(get_backend),
):
    row = documents.get_document(db, document_id)
    return RedirectResponse(url=documents.download_url(backend.storage, row), status_code=303)


@router.get("/login", response_model=LoginPage, tags=["session"])
def login_page():
    return LoginPage()


@router.post("/login", tags=["session"])
@limiter.limit(login_rate_limit)
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    backend: BackendClient = Depends(get_backend),
    settings: Settings = Depends(get_app_settings),
):
    data = LoginInput(email=email, password=password)
    try:
        session = backend.auth.sign_in_with_password(data.email, data.password)
    except AuthServiceError as exc:
        logger.info("login_failed", extra={"upstream_status": exc.status_code})
        return error_response(401, exc.message)
    logger.info("login_succeeded", extra={"user_id": session.user.id})
    response = RedirectResponse(url="/redirect", status_code=303)
    set_session_cookies(response, session, settings)
    return response


@router.post("/logout", tags=["session"])
def logout(
    backend: BackendClient = Depends(get_backend),
    tokens: SessionTokens = Depends(get_session_tokens),
    settings: Settings = Depends(get_app_settings),
):
    if tokens.access_token:
        try:
            backend.auth.sign_out(tokens.access_token)
        except AuthServiceError as exc:
            # Cookies are cleared either way; the token simply expires upstream.
            logger.info("logout_upstream_failed", extra={"error": exc.message})
    response = RedirectResponse(url=LOGIN_PATH, status_code=303)
    clear_session_cookies(response, settings)
    return response


@router.get("/redirect", response_model=RedirectPage, tags=["session"])
def redirect_after_login(
    db: Session = Depends(get_db),
    backend: BackendClient = Depends(get_backend),
    tokens: SessionTokens = Depends(get_session_tokens),
):
    outcome = dispatch_after_login(backend.auth, db, tokens)
    if isinstance(outcome, Forward):
        return RedirectResponse(url=outcome.path, status_code=303)
    if isinstance(outcome, RoleUnavailable):
        return JSONResponse(status_code=200, content=RedirectPage(message=outcome.message).model_dump())
    return RedirectResponse(url=LOGIN_PATH, status_code=303)
