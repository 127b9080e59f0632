"""Team documents: object storage plus a metadata row per file.

The metadata row owns the stored object. Upload stores the object first and
removes it again if the row cannot be written; delete is two-phase (mark,
remove object, drop row) so a live row never points at a missing object.
`reconcile_documents` finishes interrupted deletes and clears objects that
no row references.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.backend.base import ObjectStorage
from core.errors import BackendError, NotFoundError, ValidationError
from core.models import DocumentRecord, utcnow

logger = logging.getLogger(__name__)

BUCKET = "documents"
UPLOAD_PREFIX = "coach_uploads"
SIGNED_URL_TTL_SECONDS = 60
DEFAULT_MIME_TYPE = "application/octet-stream"
ORPHAN_GRACE = timedelta(minutes=10)

CATEGORIES = ("Athletic Forms", "Handbooks", "Meet Day", "Other")
DEFAULT_CATEGORY = "Other"
ALL_CATEGORIES = "All"


@dataclass
class DocumentListing:
    selected_category: str
    required: list[DocumentRecord] = field(default_factory=list)
    other: list[DocumentRecord] = field(default_factory=list)


@dataclass
class ReconcileReport:
    finished_deletes: int = 0
    orphans_removed: int = 0
    recent_skipped: int = 0
    failures: int = 0


def format_bytes(size: Optional[int]) -> str:
    if not size or size <= 0:
        return ""
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    idx = 0
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024
        idx += 1
    if idx == 0:
        return f"{int(value)} {units[idx]}"
    return f"{value:.1f} {units[idx]}"


def storage_key(file_name: str) -> str:
    """Collision-free object path that keeps the original extension."""
    _, ext = os.path.splitext(file_name)
    return f"{UPLOAD_PREFIX}/{uuid4()}{ext.lower()}"


def normalize_category(category: Optional[str]) -> str:
    value = (category or "").strip()
    if not value:
        return DEFAULT_CATEGORY
    if value not in CATEGORIES:
        raise ValidationError(f"Unknown category: {value}.")
    return value


def _live():
    return select(DocumentRecord).where(DocumentRecord.deleted_at.is_(None))


def list_documents(db: Session, category: Optional[str] = None) -> DocumentListing:
    selected = (category or "").strip()
    q = _live().order_by(DocumentRecord.is_required.desc(), DocumentRecord.created_at.desc())
    if selected and selected != ALL_CATEGORIES:
        q = q.where(DocumentRecord.category == selected)
    rows = db.execute(q).scalars().all()
    listing = DocumentListing(selected_category=selected or ALL_CATEGORIES)
    for row in rows:
        (listing.required if row.is_required else listing.other).append(row)
    return listing


def get_document(db: Session, document_id: str) -> DocumentRecord:
    row = db.execute(_live().where(DocumentRecord.id == document_id)).scalar_one_or_none()
    if row is None:
        raise NotFoundError("Document not found.")
    return row


def download_url(storage: ObjectStorage, row: DocumentRecord) -> str:
    if not row.file_path:
        raise NotFoundError("This document has no file attached.")
    return storage.create_signed_url(BUCKET, row.file_path, SIGNED_URL_TTL_SECONDS)


def _remove_quietly(storage: ObjectStorage, path: str) -> None:
    try:
        storage.remove(BUCKET, [path])
    except BackendError as exc:
        # The orphan is left for reconcile_documents.
        logger.error("upload_compensation_failed", extra={"file_path": path, "error": exc.message})
    else:
        logger.info("upload_compensated", extra={"file_path": path})


def upload_document(
    db: Session,
    storage: ObjectStorage,
    *,
    created_by: str,
    title: Optional[str],
    category: Optional[str],
    description: Optional[str],
    is_required: bool,
    data: Optional[bytes],
    file_name: Optional[str],
    mime_type: Optional[str],
) -> DocumentRecord:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required.")
    if data is None or not file_name:
        raise ValidationError("File is required.")
    category = normalize_category(category)

    path = storage_key(file_name)
    storage.upload(BUCKET, path, data, mime_type or DEFAULT_MIME_TYPE, upsert=False)

    row = DocumentRecord(
        title=title,
        category=category,
        description=(description or "").strip() or None,
        is_required=bool(is_required),
        file_path=path,
        file_name=file_name,
        mime_type=mime_type or None,
        file_size=len(data),
        created_by=created_by,
    )
    try:
        db.add(row)
        db.commit()
    except Exception:
        db.rollback()
        _remove_quietly(storage, path)
        raise
    logger.info("document_uploaded", extra={"document_id": row.id, "file_path": path, "file_size": row.file_size})
    return row


def delete_document(db: Session, storage: ObjectStorage, document_id: str) -> None:
    row = db.get(DocumentRecord, document_id)
    if row is None:
        raise NotFoundError("Document not found.")

    if row.deleted_at is None:
        row.deleted_at = utcnow()
        db.commit()

    if row.file_path:
        storage.remove(BUCKET, [row.file_path])

    db.delete(row)
    db.commit()
    logger.info("document_deleted", extra={"document_id": document_id})


def reconcile_documents(
    db: Session,
    storage: ObjectStorage,
    grace: timedelta = ORPHAN_GRACE,
    now: Optional[datetime] = None,
) -> ReconcileReport:
    """Finish marked deletes, then remove stored objects no row references.

    Storage is listed before the referenced paths are read, so an upload that
    commits in between is seen as referenced. Objects younger than `grace`
    are left alone in case their row is still being written.
    """
    report = ReconcileReport()
    now = now or utcnow()

    pending = db.execute(select(DocumentRecord).where(DocumentRecord.deleted_at.is_not(None))).scalars().all()
    for row in pending:
        try:
            if row.file_path:
                storage.remove(BUCKET, [row.file_path])
        except BackendError as exc:
            report.failures += 1
            logger.warning("pending_delete_failed", extra={"document_id": row.id, "error": exc.message})
            continue
        db.delete(row)
        db.commit()
        report.finished_deletes += 1

    try:
        stored = storage.list(BUCKET, UPLOAD_PREFIX)
    except BackendError as exc:
        report.failures += 1
        logger.warning("storage_listing_failed", extra={"error": exc.message})
        return report

    referenced = set(
        db.execute(select(DocumentRecord.file_path).where(DocumentRecord.file_path.is_not(None))).scalars().all()
    )
    orphans = []
    for obj in stored:
        if obj.path in referenced:
            continue
        if obj.created_at is not None and now - obj.created_at < grace:
            report.recent_skipped += 1
            continue
        orphans.append(obj.path)
    orphans.sort()

    if orphans:
        try:
            storage.remove(BUCKET, orphans)
            report.orphans_removed = len(orphans)
        except BackendError as exc:
            report.failures += 1
            logger.warning("orphan_removal_failed", extra={"count": len(orphans), "error": exc.message})

    logger.info(
        "documents_reconciled",
        extra={
            "finished_deletes": report.finished_deletes,
            "orphans_removed": report.orphans_removed,
            "recent_skipped": report.recent_skipped,
            "failures": report.failures,
        },
    )
    return report
