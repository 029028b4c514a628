# backend/app/services/document_service.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import Principal
from ..config import settings
from ..domain import access
from ..domain.bid_lifecycle import ensure_editable
from ..domain.errors import AuthorizationError, DependencyError, ValidationError
from ..models import Bid, Document
from .ownership import must_get_bid, must_get_document, must_get_project
from .storage import get_storage, make_locator

log = logging.getLogger("bidding.documents")


def upload_document(
    db: Session,
    p: Principal,
    *,
    file_name: str,
    content_type: Optional[str],
    data: bytes,
    project_id: Optional[int] = None,
    bid_id: Optional[int] = None,
) -> Document:
    if (project_id is None) == (bid_id is None):
        raise ValidationError("exactly one of project_id or bid_id is required")
    if not data:
        raise ValidationError("file is empty")
    if len(data) > int(settings.max_upload_bytes):
        raise ValidationError(f"file exceeds {settings.max_upload_bytes} bytes")
    if access.is_admin(p):
        raise AuthorizationError("admins cannot upload documents")

    if project_id is not None:
        must_get_project(db, p, project_id, action=access.UPDATE)
        parent_kind, parent_id = "project", int(project_id)
    else:
        bid = must_get_bid(db, p, int(bid_id), action=access.UPDATE)
        ensure_editable(bid.status)
        parent_kind, parent_id = "bid", int(bid_id)

    storage = get_storage()
    locator = make_locator(uploader_id=p.user_id, parent_kind=parent_kind, parent_id=parent_id, file_name=file_name)
    mime = content_type or "application/octet-stream"

    storage.put(locator, data, mime)

    try:
        doc = Document(
            project_id=project_id,
            bid_id=bid_id,
            uploaded_by=p.user_id,
            file_name=file_name or "file",
            locator=locator,
            file_size=len(data),
            mime_type=mime,
            created_at=datetime.utcnow(),
        )
        db.add(doc)
        db.commit()
    except Exception as e:
        db.rollback()
        _compensate(storage, locator)
        if isinstance(e, SQLAlchemyError):
            raise DependencyError("failed to save document metadata") from e
        raise

    db.refresh(doc)
    log.info("document uploaded", extra={"user_id": p.user_id, "document_id": doc.id})
    return doc


def _compensate(storage, locator: str) -> None:
    try:
        storage.remove(locator)
    except Exception:
        log.error("payload cleanup failed after metadata error", exc_info=True, extra={"event": locator})


def get_document_link(db: Session, p: Principal, document_id: int) -> tuple[Document, str, datetime]:
    doc = must_get_document(db, p, document_id)
    ttl = int(settings.signed_url_ttl_seconds)
    url = get_storage().create_temporary_access_link(doc.locator, ttl)
    return doc, url, datetime.utcnow() + timedelta(seconds=ttl)


def delete_document(db: Session, p: Principal, document_id: int) -> None:
    doc = must_get_document(db, p, document_id, action=access.DELETE)

    # a missing blob must not keep the record alive
    try:
        get_storage().remove(doc.locator)
    except Exception:
        log.warning("payload removal failed; deleting record anyway", exc_info=True, extra={"document_id": doc.id})

    db.delete(doc)
    db.commit()


def locators_for_projects(db: Session, project_ids: Iterable[int]) -> list[str]:
    """Every payload hanging off these projects, directly or through their bids."""
    ids = list(project_ids)
    if not ids:
        return []
    q = select(Document.locator).where(
        or_(
            Document.project_id.in_(ids),
            Document.bid_id.in_(select(Bid.id).where(Bid.project_id.in_(ids))),
        )
    )
    return list(db.scalars(q).all())


def locators_for_bid(db: Session, bid_id: int) -> list[str]:
    return list(db.scalars(select(Document.locator).where(Document.bid_id == bid_id)).all())


def remove_payloads(locators: Iterable[str]) -> None:
    """Best-effort blob cleanup after the metadata rows are gone."""
    storage = get_storage()
    for loc in locators:
        try:
            storage.remove(loc)
        except Exception:
            log.warning("orphaned document payload", exc_info=True, extra={"event": loc})
