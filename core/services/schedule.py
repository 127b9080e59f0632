from __future__ import annotations

import logging
from datetime import date, time
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from core.errors import NotFoundError
from core.models import EventType, ScheduleEvent
from core.validators import ScheduleEventInput

logger = logging.getLogger(__name__)


def _ordered():
    return select(ScheduleEvent).order_by(ScheduleEvent.date.asc(), ScheduleEvent.start_time.asc().nulls_last())


def list_events(db: Session) -> list[ScheduleEvent]:
    return list(db.execute(_ordered()).scalars().all())


def next_event(db: Session, today: Optional[date] = None) -> Optional[ScheduleEvent]:
    today = today or date.today()
    return db.execute(_ordered().where(ScheduleEvent.date >= today).limit(1)).scalars().first()


def event_label(event_type: str) -> str:
    return "MEET" if event_type == EventType.MEET.value else "PRACTICE"


def format_time(value: Optional[time]) -> str:
    """Clock time as HH:MM, empty when the event has no start time."""
    if value is None:
        return ""
    return value.strftime("%H:%M")


def _apply(row: ScheduleEvent, data: ScheduleEventInput) -> None:
    row.date = data.date
    row.start_time = data.start_time
    row.type = data.type.value
    row.title = data.title
    row.location = data.location
    row.notes = data.notes


def create_event(db: Session, data: ScheduleEventInput, created_by: str) -> ScheduleEvent:
    row = ScheduleEvent(created_by=created_by)
    _apply(row, data)
    db.add(row)
    db.flush()
    logger.info("schedule_event_created", extra={"event_id": row.id, "date": row.date.isoformat(), "type": row.type})
    return row


def update_event(db: Session, event_id: str, data: ScheduleEventInput) -> ScheduleEvent:
    row = db.get(ScheduleEvent, event_id)
    if row is None:
        raise NotFoundError("Event not found.")
    _apply(row, data)
    db.flush()
    logger.info("schedule_event_updated", extra={"event_id": row.id})
    return row


def delete_event(db: Session, event_id: str) -> None:
    result = db.execute(delete(ScheduleEvent).where(ScheduleEvent.id == event_id))
    if result.rowcount == 0:
        raise NotFoundError("Event not found.")
    logger.info("schedule_event_deleted", extra={"event_id": event_id})
