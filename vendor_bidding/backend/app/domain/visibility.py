# backend/app/domain/visibility.py
"""
Role-based projections.

The same Project looks different to its manager and to a bidding vendor: a
vendor never sees competitors' bids, only how many there are. These helpers
turn ORM rows into plain dicts for the viewer and never touch the session, so
they can be tested without a database.
"""
from __future__ import annotations

from typing import Any, Iterable, Optional

from ..auth import Principal
from ..models import Bid, Document, Message, Project, Property, User
from .access import is_vendor


def user_summary(u: Optional[User]) -> Optional[dict[str, Any]]:
    if u is None:
        return None
    return {
        "id": u.id,
        "first_name": u.first_name,
        "last_name": u.last_name,
        "company": u.company,
    }


def property_summary(prop: Optional[Property]) -> Optional[dict[str, Any]]:
    if prop is None:
        return None
    return {
        "id": prop.id,
        "name": prop.name,
        "address": prop.address,
        "city": prop.city,
        "state": prop.state,
        "zip_code": prop.zip_code,
    }


def document_view(doc: Document) -> dict[str, Any]:
    return {
        "id": doc.id,
        "file_name": doc.file_name,
        "file_size": doc.file_size,
        "mime_type": doc.mime_type,
        "project_id": doc.project_id,
        "bid_id": doc.bid_id,
        "uploaded_by": doc.uploaded_by,
        "created_at": doc.created_at,
    }


def bid_view(bid: Bid, viewer: Principal, *, vendor: Optional[User] = None) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": bid.id,
        "project_id": bid.project_id,
        "vendor_id": bid.vendor_id,
        "amount": bid.amount,
        "description": bid.description,
        "timeline": bid.timeline,
        "notes": bid.notes,
        "status": bid.status,
        "created_at": bid.created_at,
        "updated_at": bid.updated_at,
    }
    # a vendor already knows who they are
    if not is_vendor(viewer):
        out["vendor"] = user_summary(vendor)
    return out


def project_view(
    project: Project,
    viewer: Principal,
    *,
    prop: Optional[Property] = None,
    bids: Iterable[Bid] = (),
    documents: Iterable[Document] = (),
) -> dict[str, Any]:
    bids = list(bids)

    out: dict[str, Any] = {
        "id": project.id,
        "title": project.title,
        "description": project.description,
        "type": project.type,
        "status": project.status,
        "budget": project.budget,
        "timeline": project.timeline,
        "deadline": project.deadline,
        "property_id": project.property_id,
        "manager_id": project.manager_id,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
        "property": property_summary(prop),
        "bid_count": len(bids),
    }

    if is_vendor(viewer):
        own = [b for b in bids if b.vendor_id == viewer.user_id]
        out["bids"] = [bid_view(b, viewer) for b in own]
        out["documents"] = []
    else:
        out["bids"] = [bid_view(b, viewer, vendor=b.vendor) for b in bids]
        out["documents"] = [document_view(d) for d in documents]
    return out


def message_view(msg: Message) -> dict[str, Any]:
    project = msg.project
    return {
        "id": msg.id,
        "sender_id": msg.sender_id,
        "receiver_id": msg.receiver_id,
        "project_id": msg.project_id,
        "content": msg.content,
        "read": bool(msg.read),
        "created_at": msg.created_at,
        "sender": user_summary(msg.sender),
        "receiver": user_summary(msg.receiver),
        "project": {"id": project.id, "title": project.title} if project is not None else None,
    }
