from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from conftest import COACH_ID
from core.errors import NotFoundError
from core.models import Announcement
from core.services.announcements import (
    create_announcement,
    delete_announcement,
    latest_announcement,
    list_announcements,
    set_pinned,
    split_pinned,
)
from core.validators import AnnouncementInput

BASE = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _seed(db):
    db.add_all(
        [
            Announcement(id="old", title="Old", body="b", pinned=False, published_at=BASE),
            Announcement(id="new", title="New", body="b", pinned=False, published_at=BASE + timedelta(days=2)),
            Announcement(id="pin-old", title="Pinned old", body="b", pinned=True, published_at=BASE - timedelta(days=5)),
            Announcement(id="pin-new", title="Pinned new", body="b", pinned=True, published_at=BASE + timedelta(days=1)),
        ]
    )
    db.commit()


def test_list_orders_pinned_first_then_newest(db):
    _seed(db)
    assert [a.id for a in list_announcements(db, limit=50)] == ["pin-new", "pin-old", "new", "old"]


def test_list_respects_limit(db):
    _seed(db)
    assert len(list_announcements(db, limit=2)) == 2


def test_split_pinned_keeps_order(db):
    _seed(db)
    pinned, regular = split_pinned(list_announcements(db, limit=50))
    assert [a.id for a in pinned] == ["pin-new", "pin-old"]
    assert [a.id for a in regular] == ["new", "old"]


def test_latest_announcement(db):
    assert latest_announcement(db) is None
    _seed(db)
    assert latest_announcement(db).id == "pin-new"


def test_create_announcement_stamps_author_and_time(db):
    row = create_announcement(db, AnnouncementInput(title="Bus", body="Leaves at 6", pinned=True), created_by=COACH_ID)
    db.commit()
    assert row.id
    assert row.created_by == COACH_ID
    assert row.published_at is not None
    assert list_announcements(db, limit=5)[0].id == row.id


def test_set_pinned_toggles(db):
    _seed(db)
    set_pinned(db, "old", True)
    db.commit()
    db.expire_all()
    assert db.get(Announcement, "old").pinned is True


def test_set_pinned_missing(db):
    with pytest.raises(NotFoundError):
        set_pinned(db, "nope", True)


def test_delete_announcement(db):
    _seed(db)
    delete_announcement(db, "new")
    db.commit()
    assert [a.id for a in list_announcements(db, limit=50)] == ["pin-new", "pin-old", "old"]
    with pytest.raises(NotFoundError):
        delete_announcement(db, "new")
