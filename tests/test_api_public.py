"""Public pages: no session required."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from core.models import Announcement, DocumentRecord, ScheduleEvent
from core.services.documents import BUCKET


def test_health_echoes_request_id(client):
    resp = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Request-ID"] == "abc123"


def test_request_id_is_generated(client):
    resp = client.get("/health")
    assert len(resp.headers["X-Request-ID"]) == 32


def test_home_shows_next_event_and_latest_announcement(client, db):
    today = date.today()
    db.add_all(
        [
            ScheduleEvent(id="past", date=today - timedelta(days=1), type="practice", title="Yesterday"),
            ScheduleEvent(id="soon", date=today + timedelta(days=2), start_time=time(9, 30), type="meet", title="Invite Meet"),
            ScheduleEvent(id="later", date=today + timedelta(days=9), type="practice", title="Practice"),
            Announcement(id="a1", title="Welcome", body="Season starts", pinned=False),
        ]
    )
    db.commit()

    body = client.get("/").json()
    assert body["next_event"]["id"] == "soon"
    assert body["next_event"]["label"] == "MEET"
    assert body["next_event"]["time"] == "09:30"
    assert body["latest_announcement"]["title"] == "Welcome"
    assert body["links"]["login"] == "/login"


def test_home_with_nothing_scheduled(client):
    body = client.get("/").json()
    assert body["next_event"] is None
    assert body["latest_announcement"] is None


def test_schedule_lists_every_event_in_order(client, db):
    db.add_all(
        [
            ScheduleEvent(id="meet", date=date(2026, 3, 12), start_time=time(9, 0), type="meet", title="Invite Meet", location="City Stadium"),
            ScheduleEvent(id="untimed", date=date(2026, 3, 12), type="practice", title="Optional shakeout"),
            ScheduleEvent(id="first", date=date(2026, 3, 10), start_time=time(15, 30), type="practice", title="Practice"),
        ]
    )
    db.commit()

    items = client.get("/schedule").json()["items"]
    assert [i["id"] for i in items] == ["first", "meet", "untimed"]
    meet = items[1]
    assert meet["label"] == "MEET"
    assert meet["title"] == "Invite Meet"
    assert meet["date"] == "2026-03-12"
    assert items[2]["time"] == ""


def test_announcements_split_pinned(client, db):
    base = datetime(2026, 3, 1, tzinfo=timezone.utc)
    db.add_all(
        [
            Announcement(id="p", title="Pinned", body="b", pinned=True, published_at=base),
            Announcement(id="n1", title="Newer", body="b", pinned=False, published_at=base + timedelta(days=2)),
            Announcement(id="n0", title="Older", body="b", pinned=False, published_at=base + timedelta(days=1)),
        ]
    )
    db.commit()

    body = client.get("/announcements").json()
    assert [a["id"] for a in body["pinned"]] == ["p"]
    assert [a["id"] for a in body["regular"]] == ["n1", "n0"]


def test_docs_page_groups_required_first(client, db, storage):
    storage.upload(BUCKET, "coach_uploads/form.pdf", b"x" * 2048, "application/pdf")
    db.add_all(
        [
            DocumentRecord(id="form", title="Physical", category="Athletic Forms", is_required=True,
                           file_path="coach_uploads/form.pdf", file_size=2048),
            DocumentRecord(id="sheet", title="Heat sheet", category="Meet Day", is_required=False),
            DocumentRecord(id="gone", title="Old", category="Meet Day", deleted_at=datetime.now(timezone.utc)),
        ]
    )
    db.commit()

    body = client.get("/docs").json()
    assert body["categories"] == ["All", "Athletic Forms", "Handbooks", "Meet Day", "Other"]
    assert body["selected_category"] == "All"
    assert [d["id"] for d in body["required"]] == ["form"]
    assert [d["id"] for d in body["other"]] == ["sheet"]
    assert body["required"][0]["size_label"] == "2.0 KB"
    assert body["required"][0]["download_url"] == "/docs/form/download"
    assert body["other"][0]["download_url"] is None

    filtered = client.get("/docs", params={"category": "Meet Day"}).json()
    assert filtered["selected_category"] == "Meet Day"
    assert filtered["required"] == []


def test_docs_path_is_the_documents_page_not_the_api_reference(client):
    resp = client.get("/docs")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json()["required"] == []

    reference = client.get("/api/docs")
    assert reference.status_code == 200
    assert reference.headers["content-type"].startswith("text/html")
    assert client.get("/api/openapi.json").json()["info"]["title"] == "Track Team Portal"


def test_download_redirects_to_signed_url(client, db, storage):
    storage.upload(BUCKET, "coach_uploads/form.pdf", b"x", "application/pdf")
    db.add(DocumentRecord(id="form", title="Physical", category="Athletic Forms", file_path="coach_uploads/form.pdf"))
    db.commit()

    resp = client.get("/docs/form/download")
    assert resp.status_code == 303
    assert resp.headers["location"].startswith("https://storage.test/documents/coach_uploads/form.pdf")
    assert "expires_in=60" in resp.headers["location"]


def test_download_unknown_document(client):
    resp = client.get("/docs/nope/download")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Document not found."}


def test_download_when_storage_fails(client, db):
    db.add(DocumentRecord(id="form", title="Physical", category="Other", file_path="coach_uploads/missing.pdf"))
    db.commit()

    resp = client.get("/docs/form/download")
    assert resp.status_code == 502
    assert resp.json() == {"error": "Object not found"}
