from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from core.models import AttendanceRecord, Profile, utcnow
from core.validators import AttendanceInput

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "present": "Present",
    "late": "Late",
    "absent": "Absent",
    "injured": "Injured",
}
NOT_CHECKED_IN = "Not checked in"


@dataclass
class CoachAttendanceRow:
    record: AttendanceRecord
    profile: Optional[Profile]


def status_label(status: Optional[str]) -> str:
    return STATUS_LABELS.get(status or "", NOT_CHECKED_IN)


def get_attendance(db: Session, athlete_id: str, day: date) -> Optional[AttendanceRecord]:
    q = select(AttendanceRecord).where(AttendanceRecord.athlete_id == athlete_id, AttendanceRecord.date == day)
    return db.execute(q).scalar_one_or_none()


def _dialect_insert(db: Session):
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"upsert is not supported on {name}")


def record_attendance(db: Session, athlete_id: str, day: date, data: AttendanceInput) -> Optional[AttendanceRecord]:
    """Insert or replace the athlete's record for `day` in one statement.

    The (athlete_id, date) unique key makes repeated submissions idempotent:
    the latest status and note win.
    """
    insert = _dialect_insert(db)
    stmt = insert(AttendanceRecord).values(
        id=str(uuid4()),
        athlete_id=athlete_id,
        date=day,
        status=data.status.value,
        note=data.note,
        created_at=utcnow(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["athlete_id", "date"],
        set_={"status": stmt.excluded.status, "note": stmt.excluded.note},
    )
    db.execute(stmt)
    db.expire_all()
    logger.info("attendance_upserted", extra={"athlete_id": athlete_id, "day": day.isoformat(), "status": data.status.value})
    return get_attendance(db, athlete_id, day)


def list_attendance(db: Session, day: Optional[date] = None) -> list[CoachAttendanceRow]:
    q = (
        select(AttendanceRecord, Profile)
        .outerjoin(Profile, Profile.id == AttendanceRecord.athlete_id)
        .order_by(AttendanceRecord.date.desc(), AttendanceRecord.created_at.desc())
    )
    if day is not None:
        q = q.where(AttendanceRecord.date == day)
    return [CoachAttendanceRow(record=rec, profile=prof) for rec, prof in db.execute(q).all()]
