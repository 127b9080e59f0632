from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import get_app_settings, get_db, require_athlete
from api.schemas import (
    AttendanceSaved,
    NewReflectionPage,
    PortalHomePage,
    ReflectionHistoryPage,
    ReflectionOut,
    ReflectionSubmitted,
)
from core.config import Settings
from core.services import attendance, reflections
from core.services.access import Authorized
from core.validators import AttendanceInput, ReflectionInput

router = APIRouter(prefix="/portal", tags=["portal"])

PORTAL_LINKS = {
    "attendance": "/portal",
    "reflections": "/portal/reflections",
    "new_reflection": "/portal/reflections/new",
    "docs": "/docs",
    "logout": "/logout",
}


@router.get("", response_model=PortalHomePage)
def portal_home(athlete: Authorized = Depends(require_athlete), db: Session = Depends(get_db)):
    today = date.today()
    record = attendance.get_attendance(db, athlete.user.id, today)
    return PortalHomePage.build(email=athlete.user.email, day=today, record=record, links=PORTAL_LINKS)


@router.put("/attendance", response_model=AttendanceSaved)
def check_in(body: AttendanceInput, athlete: Authorized = Depends(require_athlete), db: Session = Depends(get_db)):
    today = date.today()
    record = attendance.record_attendance(db, athlete.user.id, today, body)
    page = PortalHomePage.build(email=athlete.user.email, day=today, record=record, links=PORTAL_LINKS)
    return AttendanceSaved(**page.model_dump())


@router.get("/reflections", response_model=ReflectionHistoryPage)
def reflection_history(
    athlete: Authorized = Depends(require_athlete),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    rows = reflections.list_for_athlete(db, athlete.user.id, limit=settings.athlete_reflection_limit)
    return ReflectionHistoryPage(items=[ReflectionOut.model_validate(r) for r in rows])


@router.get("/reflections/new", response_model=NewReflectionPage)
def new_reflection_form(athlete: Authorized = Depends(require_athlete)):
    return NewReflectionPage(date=date.today())


@router.post("/reflections/new", response_model=ReflectionSubmitted, status_code=201)
def submit_reflection(body: ReflectionInput, athlete: Authorized = Depends(require_athlete), db: Session = Depends(get_db)):
    row = reflections.submit_reflection(db, athlete.user.id, body)
    return ReflectionSubmitted(reflection=ReflectionOut.model_validate(row))
