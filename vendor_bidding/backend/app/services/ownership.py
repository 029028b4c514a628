# backend/app/services/ownership.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain import access
from ..domain.errors import AuthorizationError, NotFoundError
from ..models import Bid, Document, Message, Notification, Project, Property


def _enforce(readable: bool, allowed: bool, what: str) -> None:
    # unreadable -> hide existence; readable but not permitted -> deny
    if not readable:
        raise NotFoundError(f"{what} not found")
    if not allowed:
        raise AuthorizationError(f"access denied to {what}")


def vendor_has_bid(db: Session, *, vendor_id: int, project_id: int) -> bool:
    return db.scalar(select(Bid.id).where(Bid.project_id == project_id, Bid.vendor_id == vendor_id)) is not None


def must_get_property(db: Session, p: Principal, property_id: int, *, action: str = access.READ) -> Property:
    row = db.get(Property, property_id)
    if row is None:
        raise NotFoundError("property not found")
    _enforce(access.property_allows(p, row, access.READ), access.property_allows(p, row, action), "property")
    return row


def must_get_project(
    db: Session,
    p: Principal,
    project_id: int,
    *,
    action: str = access.READ,
    for_update: bool = False,
) -> Project:
    q = select(Project).where(Project.id == project_id)
    if for_update:
        q = q.with_for_update()
    row = db.scalar(q)
    if row is None:
        raise NotFoundError("project not found")

    has_bid = access.is_vendor(p) and vendor_has_bid(db, vendor_id=p.user_id, project_id=row.id)
    _enforce(
        access.project_allows(p, row, access.READ, vendor_has_bid=has_bid),
        access.project_allows(p, row, action, vendor_has_bid=has_bid),
        "project",
    )
    return row


def must_get_bid(db: Session, p: Principal, bid_id: int, *, action: str = access.READ) -> Bid:
    row = db.get(Bid, bid_id)
    if row is None:
        raise NotFoundError("bid not found")
    manager_id = int(row.project.manager_id)
    _enforce(
        access.bid_allows(p, row, access.READ, project_manager_id=manager_id),
        access.bid_allows(p, row, action, project_manager_id=manager_id),
        "bid",
    )
    return row


def document_parties(doc: Document) -> tuple[Optional[int], Optional[int]]:
    """(manager of the linked project, vendor of the linked bid)."""
    if doc.project_id is not None:
        return int(doc.project.manager_id), None
    bid = doc.bid
    return int(bid.project.manager_id), int(bid.vendor_id)


def must_get_document(db: Session, p: Principal, document_id: int, *, action: str = access.READ) -> Document:
    row = db.get(Document, document_id)
    if row is None:
        raise NotFoundError("document not found")
    manager_id, vendor_id = document_parties(row)
    _enforce(
        access.document_allows(p, row, access.READ, project_manager_id=manager_id, bid_vendor_id=vendor_id),
        access.document_allows(p, row, action, project_manager_id=manager_id, bid_vendor_id=vendor_id),
        "document",
    )
    return row


def must_get_message(db: Session, p: Principal, message_id: int, *, action: str = access.READ) -> Message:
    row = db.get(Message, message_id)
    if row is None:
        raise NotFoundError("message not found")
    _enforce(access.message_allows(p, row, access.READ), access.message_allows(p, row, action), "message")
    return row


def must_get_notification(
    db: Session, p: Principal, notification_id: int, *, action: str = access.READ
) -> Notification:
    row = db.get(Notification, notification_id)
    if row is None:
        raise NotFoundError("notification not found")
    _enforce(
        access.notification_allows(p, row, access.READ),
        access.notification_allows(p, row, action),
        "notification",
    )
    return row
