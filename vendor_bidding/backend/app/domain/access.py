# backend/app/domain/access.py
"""
Authorization rules for the marketplace.

Every function here is pure: it receives the principal, the resource row and
whatever related facts the rule needs (e.g. "does this vendor hold a bid on the
project?") and returns a bool. Loading rows and raising is the job of
services/ownership.py, which applies one uniform policy:

  - actor cannot READ the resource      -> NotFoundError (existence hidden)
  - actor can read but not do ACTION    -> AuthorizationError

Admin bypasses ownership for read and delete, never for create or for
message content.
"""
from __future__ import annotations

from typing import Optional

from ..auth import Principal
from ..models import Bid, Document, Message, Notification, Project, ProjectStatus, Property, Role

READ = "read"
UPDATE = "update"
DELETE = "delete"
DECIDE = "decide"  # accept / reject a bid


def is_admin(p: Principal) -> bool:
    return p.role == Role.ADMIN


def is_manager(p: Principal) -> bool:
    return p.role == Role.PROPERTY_MANAGER


def is_vendor(p: Principal) -> bool:
    return p.role == Role.VENDOR


# -----------------------------
# Properties
# -----------------------------
def property_allows(p: Principal, prop: Property, action: str) -> bool:
    owner = is_manager(p) and prop.manager_id == p.user_id
    if action in (READ, DELETE):
        return owner or is_admin(p)
    return owner


# -----------------------------
# Projects
# -----------------------------
def project_allows(p: Principal, project: Project, action: str, *, vendor_has_bid: bool = False) -> bool:
    owner = is_manager(p) and project.manager_id == p.user_id
    if action == READ:
        if owner or is_admin(p):
            return True
        if is_vendor(p):
            return project.status == ProjectStatus.OPEN or vendor_has_bid
        return False
    if action == DELETE:
        return owner or is_admin(p)
    return owner


# -----------------------------
# Bids
# -----------------------------
def bid_allows(p: Principal, bid: Bid, action: str, *, project_manager_id: int) -> bool:
    submitter = is_vendor(p) and bid.vendor_id == p.user_id
    manages_project = is_manager(p) and project_manager_id == p.user_id

    if action == READ:
        return submitter or manages_project or is_admin(p)
    if action == DECIDE:
        return manages_project
    if action == DELETE:
        return submitter or is_admin(p)
    # update / withdraw
    return submitter


# -----------------------------
# Documents
# -----------------------------
def document_allows(
    p: Principal,
    doc: Document,
    action: str,
    *,
    project_manager_id: Optional[int],
    bid_vendor_id: Optional[int],
) -> bool:
    """
    project_manager_id: manager of the linked project (for a bid document, the
    manager of the bid's project). bid_vendor_id: vendor of the linked bid, or
    None for project documents.
    """
    uploader = doc.uploaded_by == p.user_id
    manages = is_manager(p) and project_manager_id == p.user_id
    bid_vendor = is_vendor(p) and bid_vendor_id is not None and bid_vendor_id == p.user_id

    if action == READ:
        return uploader or manages or bid_vendor or is_admin(p)
    if action == DELETE:
        on_project = doc.project_id is not None
        return uploader or is_admin(p) or (manages and on_project)
    return uploader


def can_attach_to_project(p: Principal, project: Project) -> bool:
    return is_manager(p) and project.manager_id == p.user_id


def can_attach_to_bid(p: Principal, bid: Bid) -> bool:
    return is_vendor(p) and bid.vendor_id == p.user_id


# -----------------------------
# Messages / Notifications
# -----------------------------
def message_allows(p: Principal, msg: Message, action: str) -> bool:
    # no admin override on message content
    if action == READ:
        return p.user_id in (msg.sender_id, msg.receiver_id)
    if action == UPDATE:  # mark as read
        return msg.receiver_id == p.user_id
    return False


def notification_allows(p: Principal, n: Notification, action: str) -> bool:
    if n.user_id == p.user_id:
        return True
    return action in (READ, DELETE) and is_admin(p)
