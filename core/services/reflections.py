from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.errors import DuplicateSubmissionError, NotFoundError
from core.models import Profile, Reflection
from core.services.profiles import display_name, profiles_by_id
from core.validators import ReflectionInput

logger = logging.getLogger(__name__)

ALREADY_SUBMITTED = "You already submitted a reflection for this date."


@dataclass
class ReflectionView:
    reflection: Reflection
    athlete_name: str
    event_group: Optional[str]

    @property
    def preview(self) -> str:
        summary = (self.reflection.workout_summary or "").strip()
        if summary:
            return summary
        if self.reflection.effort is not None:
            return f"Effort: {self.reflection.effort}/10"
        return ""


def _view(reflection: Reflection, profile: Optional[Profile]) -> ReflectionView:
    return ReflectionView(
        reflection=reflection,
        athlete_name=display_name(profile, reflection.athlete_id),
        event_group=profile.event_group if profile is not None else None,
    )


def _exists(db: Session, athlete_id: str, day: date) -> bool:
    q = select(Reflection.id).where(Reflection.athlete_id == athlete_id, Reflection.date == day)
    return db.execute(q).first() is not None


def submit_reflection(db: Session, athlete_id: str, data: ReflectionInput) -> Reflection:
    """One reflection per athlete per day.

    The existence check gives the friendly error; the unique constraint on
    (athlete_id, date) catches submissions that race past it.
    """
    if _exists(db, athlete_id, data.date):
        raise DuplicateSubmissionError(ALREADY_SUBMITTED)
    row = Reflection(
        athlete_id=athlete_id,
        date=data.date,
        workout_summary=data.workout_summary,
        effort=data.effort,
        energy=data.energy,
    )
    db.add(row)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        logger.info("reflection_duplicate_rejected", extra={"athlete_id": athlete_id, "day": data.date.isoformat()})
        raise DuplicateSubmissionError(ALREADY_SUBMITTED) from exc
    logger.info("reflection_submitted", extra={"reflection_id": row.id, "athlete_id": athlete_id})
    return row


def list_for_athlete(db: Session, athlete_id: str, limit: int) -> list[Reflection]:
    q = (
        select(Reflection)
        .where(Reflection.athlete_id == athlete_id)
        .order_by(Reflection.date.desc())
        .limit(limit)
    )
    return list(db.execute(q).scalars().all())


def list_reflections(
    db: Session,
    limit: int,
    athlete_id: Optional[str] = None,
    day: Optional[date] = None,
) -> list[ReflectionView]:
    q = select(Reflection).order_by(Reflection.date.desc(), Reflection.created_at.desc())
    if athlete_id:
        q = q.where(Reflection.athlete_id == athlete_id)
    if day is not None:
        q = q.where(Reflection.date == day)
    rows = list(db.execute(q.limit(limit)).scalars().all())
    profiles = profiles_by_id(db, (r.athlete_id for r in rows))
    return [_view(r, profiles.get(r.athlete_id)) for r in rows]


def get_reflection(db: Session, reflection_id: str) -> ReflectionView:
    row = db.get(Reflection, reflection_id)
    if row is None:
        raise NotFoundError("Could not load that reflection.")
    return _view(row, db.get(Profile, row.athlete_id))
