from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from api.deps import get_app_settings, get_backend, get_db, require_coach
from api.routes import docs_page
from api.schemas import (
    AnnouncementOut,
    CoachAnnouncementsPage,
    CoachAttendancePage,
    CoachAttendanceRowOut,
    CoachHomePage,
    CoachReflectionsPage,
    DocsPage,
    ReflectionRowOut,
    ScheduleEventOut,
    SchedulePage,
)
from core.backend.client import BackendClient
from core.config import Settings
from core.services import announcements, attendance, documents, reflections, schedule
from core.services.access import Authorized
from core.validators import AnnouncementInput, PinInput, ScheduleEventInput

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/coach", tags=["coach"])

COACH_LINKS = {
    "schedule": "/coach/schedule",
    "announcements": "/coach/announcements",
    "attendance": "/coach/attendance",
    "reflections": "/coach/reflections",
    "docs": "/coach/docs",
    "logout": "/logout",
}


@router.get("", response_model=CoachHomePage)
def coach_home(coach: Authorized = Depends(require_coach)):
    return CoachHomePage(email=coach.user.email, links=COACH_LINKS)


# -- Announcements --


def _announcements_page(db: Session, settings: Settings) -> CoachAnnouncementsPage:
    rows = announcements.list_announcements(db, limit=settings.coach_announcement_limit)
    return CoachAnnouncementsPage(items=[AnnouncementOut.model_validate(r) for r in rows])


@router.get("/announcements", response_model=CoachAnnouncementsPage)
def list_announcements(
    coach: Authorized = Depends(require_coach),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    return _announcements_page(db, settings)


@router.post("/announcements", response_model=CoachAnnouncementsPage, status_code=201)
def create_announcement(
    body: AnnouncementInput,
    coach: Authorized = Depends(require_coach),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    announcements.create_announcement(db, body, created_by=coach.user.id)
    return _announcements_page(db, settings)


@router.patch("/announcements/{announcement_id}", response_model=CoachAnnouncementsPage)
def pin_announcement(
    announcement_id: str,
    body: PinInput,
    coach: Authorized = Depends(require_coach),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    announcements.set_pinned(db, announcement_id, body.pinned)
    return _announcements_page(db, settings)


@router.delete("/announcements/{announcement_id}", response_model=CoachAnnouncementsPage)
def delete_announcement(
    announcement_id: str,
    coach: Authorized = Depends(require_coach),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    announcements.delete_announcement(db, announcement_id)
    return _announcements_page(db, settings)


# -- Schedule --


def _schedule_page(db: Session) -> SchedulePage:
    return SchedulePage(items=[ScheduleEventOut.from_row(e) for e in schedule.list_events(db)])


@router.get("/schedule", response_model=SchedulePage)
def list_schedule(coach: Authorized = Depends(require_coach), db: Session = Depends(get_db)):
    return _schedule_page(db)


@router.post("/schedule", response_model=SchedulePage, status_code=201)
def create_event(body: ScheduleEventInput, coach: Authorized = Depends(require_coach), db: Session = Depends(get_db)):
    schedule.create_event(db, body, created_by=coach.user.id)
    return _schedule_page(db)


@router.put("/schedule/{event_id}", response_model=SchedulePage)
def update_event(
    event_id: str,
    body: ScheduleEventInput,
    coach: Authorized = Depends(require_coach),
    db: Session = Depends(get_db),
):
    schedule.update_event(db, event_id, body)
    return _schedule_page(db)


@router.delete("/schedule/{event_id}", response_model=SchedulePage)
def delete_event(event_id: str, coach: Authorized = Depends(require_coach), db: Session = Depends(get_db)):
    schedule.delete_event(db, event_id)
    return _schedule_page(db)


# -- Attendance --


@router.get("/attendance", response_model=CoachAttendancePage)
def list_attendance(
    day: Optional[date] = None,
    coach: Authorized = Depends(require_coach),
    db: Session = Depends(get_db),
):
    rows = attendance.list_attendance(db, day=day)
    return CoachAttendancePage(date=day, items=[CoachAttendanceRowOut.from_row(r) for r in rows])


# -- Reflections --


@router.get("/reflections", response_model=CoachReflectionsPage)
def list_reflections(
    athlete_id: Optional[str] = None,
    day: Optional[date] = None,
    coach: Authorized = Depends(require_coach),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    views = reflections.list_reflections(
        db,
        limit=settings.coach_reflection_limit,
        athlete_id=athlete_id or None,
        day=day,
    )
    return CoachReflectionsPage(athlete_id=athlete_id or None, date=day, items=[ReflectionRowOut.from_view(v) for v in views])


@router.get("/reflections/{reflection_id}", response_model=ReflectionRowOut)
def reflection_detail(reflection_id: str, coach: Authorized = Depends(require_coach), db: Session = Depends(get_db)):
    return ReflectionRowOut.from_view(reflections.get_reflection(db, reflection_id))


# -- Documents --


@router.get("/docs", response_model=DocsPage)
def list_docs(category: Optional[str] = None, coach: Authorized = Depends(require_coach), db: Session = Depends(get_db)):
    return docs_page(db, category)


@router.post("/docs", response_model=DocsPage, status_code=201)
def upload_doc(
    title: str = Form(""),
    category: str = Form(documents.DEFAULT_CATEGORY),
    description: str = Form(""),
    is_required: bool = Form(False),
    file: Optional[UploadFile] = File(None),
    coach: Authorized = Depends(require_coach),
    db: Session = Depends(get_db),
    backend: BackendClient = Depends(get_backend),
):
    documents.upload_document(
        db,
        backend.storage,
        created_by=coach.user.id,
        title=title,
        category=category,
        description=description,
        is_required=is_required,
        data=file.file.read() if file is not None else None,
        file_name=file.filename if file is not None else None,
        mime_type=file.content_type if file is not None else None,
    )
    return docs_page(db, None)


@router.delete("/docs/{document_id}", response_model=DocsPage)
def delete_doc(
    document_id: str,
    coach: Authorized = Depends(require_coach),
    db: Session = Depends(get_db),
    backend: BackendClient = Depends(get_backend),
):
    documents.delete_document(db, backend.storage, document_id)
    return docs_page(db, None)
