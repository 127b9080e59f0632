from __future__ import annotations

from datetime import date as dt_date
from datetime import datetime as dt_datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from core.models import AttendanceRecord, DocumentRecord, Reflection, ScheduleEvent
from core.services.attendance import CoachAttendanceRow, status_label
from core.services.documents import format_bytes
from core.services.profiles import display_name
from core.services.reflections import ReflectionView
from core.services.schedule import event_label, format_time


class HealthOut(BaseModel):
    status: str = "ok"


class ErrorOut(BaseModel):
    error: str


class AnnouncementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    body: str
    pinned: bool
    published_at: Optional[dt_datetime] = None


class AnnouncementsPage(BaseModel):
    pinned: list[AnnouncementOut]
    regular: list[AnnouncementOut]


class CoachAnnouncementsPage(BaseModel):
    items: list[AnnouncementOut]


class ScheduleEventOut(BaseModel):
    id: str
    date: dt_date
    time: str
    type: str
    label: str
    title: str
    location: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: ScheduleEvent) -> "ScheduleEventOut":
        return cls(
            id=row.id,
            date=row.date,
            time=format_time(row.start_time),
            type=row.type,
            label=event_label(row.type),
            title=row.title,
            location=row.location,
            notes=row.notes,
        )


class SchedulePage(BaseModel):
    items: list[ScheduleEventOut]


class HomePage(BaseModel):
    next_event: Optional[ScheduleEventOut] = None
    latest_announcement: Optional[AnnouncementOut] = None
    links: dict[str, str]


class DocumentOut(BaseModel):
    id: str
    title: str
    category: str
    description: Optional[str] = None
    is_required: bool
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    size_label: str
    download_url: Optional[str] = None
    created_at: Optional[dt_datetime] = None

    @classmethod
    def from_row(cls, row: DocumentRecord) -> "DocumentOut":
        return cls(
            id=row.id,
            title=row.title,
            category=row.category,
            description=row.description,
            is_required=row.is_required,
            file_name=row.file_name,
            mime_type=row.mime_type,
            file_size=row.file_size,
            size_label=format_bytes(row.file_size),
            download_url=f"/docs/{row.id}/download" if row.file_path else None,
            created_at=row.created_at,
        )


class DocsPage(BaseModel):
    categories: list[str]
    selected_category: str
    required: list[DocumentOut]
    other: list[DocumentOut]


class AttendanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    athlete_id: str
    date: dt_date
    status: str
    note: Optional[str] = None


class CoachAttendanceRowOut(BaseModel):
    id: str
    athlete_id: str
    athlete_name: str
    event_group: Optional[str] = None
    date: dt_date
    status: str
    note: Optional[str] = None

    @classmethod
    def from_row(cls, row: CoachAttendanceRow) -> "CoachAttendanceRowOut":
        rec: AttendanceRecord = row.record
        return cls(
            id=rec.id,
            athlete_id=rec.athlete_id,
            athlete_name=display_name(row.profile, rec.athlete_id),
            event_group=row.profile.event_group if row.profile is not None else None,
            date=rec.date,
            status=rec.status,
            note=rec.note,
        )


class CoachAttendancePage(BaseModel):
    date: Optional[dt_date] = None
    items: list[CoachAttendanceRowOut]


class ReflectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    athlete_id: str
    date: dt_date
    workout_summary: Optional[str] = None
    effort: Optional[int] = None
    energy: Optional[int] = None
    created_at: Optional[dt_datetime] = None


class ReflectionRowOut(ReflectionOut):
    athlete_name: str
    event_group: Optional[str] = None
    preview: str

    @classmethod
    def from_view(cls, view: ReflectionView) -> "ReflectionRowOut":
        r: Reflection = view.reflection
        return cls(
            id=r.id,
            athlete_id=r.athlete_id,
            date=r.date,
            workout_summary=r.workout_summary,
            effort=r.effort,
            energy=r.energy,
            created_at=r.created_at,
            athlete_name=view.athlete_name,
            event_group=view.event_group,
            preview=view.preview,
        )


class CoachReflectionsPage(BaseModel):
    athlete_id: Optional[str] = None
    date: Optional[dt_date] = None
    items: list[ReflectionRowOut]


class ReflectionHistoryPage(BaseModel):
    items: list[ReflectionOut]


class NewReflectionPage(BaseModel):
    date: dt_date
    effort: int = 7
    energy: int = 7


class ReflectionSubmitted(BaseModel):
    message: str = "Reflection submitted!"
    reflection: ReflectionOut
    next: str = "/portal/reflections"


class CoachHomePage(BaseModel):
    email: Optional[str] = None
    links: dict[str, str]


class PortalHomePage(BaseModel):
    email: Optional[str] = None
    date: dt_date
    status: Optional[str] = None
    status_label: str
    note: Optional[str] = None
    links: dict[str, str]

    @classmethod
    def build(cls, *, email: Optional[str], day: dt_date, record: Optional[AttendanceRecord], links: dict[str, str]) -> "PortalHomePage":
        return cls(
            email=email,
            date=day,
            status=record.status if record is not None else None,
            status_label=status_label(record.status if record is not None else None),
            note=record.note if record is not None else None,
            links=links,
        )


class AttendanceSaved(PortalHomePage):
    message: str = "Attendance saved!"


class LoginPage(BaseModel):
    title: str = "Portal Login"
    next: str = "/redirect"


class RedirectPage(BaseModel):
    message: str
