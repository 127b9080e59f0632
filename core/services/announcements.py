from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from core.errors import NotFoundError
from core.models import Announcement, utcnow
from core.validators import AnnouncementInput

logger = logging.getLogger(__name__)


def list_announcements(db: Session, limit: int) -> list[Announcement]:
    """Pinned posts first, newest first within each group."""
    q = (
        select(Announcement)
        .order_by(Announcement.pinned.desc(), Announcement.published_at.desc())
        .limit(limit)
    )
    return list(db.execute(q).scalars().all())


def split_pinned(rows: list[Announcement]) -> tuple[list[Announcement], list[Announcement]]:
    return [r for r in rows if r.pinned], [r for r in rows if not r.pinned]


def latest_announcement(db: Session) -> Optional[Announcement]:
    rows = list_announcements(db, limit=1)
    return rows[0] if rows else None


def create_announcement(db: Session, data: AnnouncementInput, created_by: str) -> Announcement:
    row = Announcement(
        title=data.title,
        body=data.body,
        pinned=data.pinned,
        published_at=utcnow(),
        created_by=created_by,
    )
    db.add(row)
    db.flush()
    logger.info("announcement_created", extra={"announcement_id": row.id, "pinned": row.pinned})
    return row


def set_pinned(db: Session, announcement_id: str, pinned: bool) -> None:
    result = db.execute(update(Announcement).where(Announcement.id == announcement_id).values(pinned=pinned))
    if result.rowcount == 0:
        raise NotFoundError("Announcement not found.")
    db.flush()


def delete_announcement(db: Session, announcement_id: str) -> None:
    result = db.execute(delete(Announcement).where(Announcement.id == announcement_id))
    if result.rowcount == 0:
        raise NotFoundError("Announcement not found.")
    logger.info("announcement_deleted", extra={"announcement_id": announcement_id})
