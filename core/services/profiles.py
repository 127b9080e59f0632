from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.models import Profile


def profiles_by_id(db: Session, ids: Iterable[str]) -> dict[str, Profile]:
    unique_ids = sorted(set(ids))
    if not unique_ids:
        return {}
    rows = db.execute(select(Profile).where(Profile.id.in_(unique_ids))).scalars().all()
    return {p.id: p for p in rows}


def display_name(profile: Optional[Profile], athlete_id: str) -> str:
    """Full name when the profile has one, otherwise a short id tag."""
    if profile is not None and (profile.first_name or profile.last_name):
        return " ".join(part for part in (profile.first_name, profile.last_name) if part)
    return f"Athlete ({athlete_id[:6]}…)"
