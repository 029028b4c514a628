# backend/app/services/bid_service.py
"""
Bid lifecycle operations.

Acceptance is the one multi-row mutation in the system. It runs as a single
transaction built from conditional UPDATEs, so two managers racing on the same
project cannot both win: whichever commits second finds the project no longer
awardable (or its bid no longer PENDING), sees rowcount 0 and gets a
ConflictError.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal
from ..domain import access
from ..domain import notify
from ..domain.bid_lifecycle import (
    AWARDABLE_PROJECT_STATUSES,
    ensure_editable,
    ensure_project_accepts_bids,
    ensure_transition,
)
from ..domain.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..models import Bid, BidStatus, Project, ProjectStatus, User
from .document_service import locators_for_bid, remove_payloads
from .ownership import must_get_bid, must_get_project

log = logging.getLogger("bidding.bids")


def _amount(v: Any) -> float:
    try:
        a = float(v)
    except (TypeError, ValueError):
        raise ValidationError("amount must be a number")
    if a <= 0:
        raise ValidationError("amount must be greater than zero")
    return a


def _required(payload: dict[str, Any], key: str) -> str:
    v = str(payload.get(key) or "").strip()
    if not v:
        raise ValidationError(f"{key} is required")
    return v


def _project_link(project_id: int) -> str:
    return f"/projects/{project_id}"


# -----------------------------
# Queries
# -----------------------------
def list_bids(db: Session, p: Principal, *, project_id: Optional[int] = None, limit: int = 200) -> list[Bid]:
    q = (
        select(Bid)
        .options(selectinload(Bid.vendor), selectinload(Bid.project))
        .order_by(desc(Bid.created_at), desc(Bid.id))
    )

    if project_id is not None:
        must_get_project(db, p, project_id)
        q = q.where(Bid.project_id == project_id)

    if access.is_vendor(p):
        q = q.where(Bid.vendor_id == p.user_id)
    elif access.is_manager(p):
        q = q.join(Project, Project.id == Bid.project_id).where(Project.manager_id == p.user_id)
    elif not access.is_admin(p):
        return []

    return list(db.scalars(q.limit(limit)).all())


def get_bid(db: Session, p: Principal, bid_id: int) -> Bid:
    return must_get_bid(db, p, bid_id)


# -----------------------------
# Vendor actions
# -----------------------------
def submit_bid(db: Session, p: Principal, payload: dict[str, Any]) -> Bid:
    if not access.is_vendor(p):
        raise AuthorizationError("only vendors can submit bids")

    project = db.get(Project, int(payload.get("project_id") or 0))
    if project is None:
        raise NotFoundError("project not found")
    # status is checked before visibility so a closed project always reads as a conflict
    ensure_project_accepts_bids(project.status)
    must_get_project(db, p, project.id, for_update=True)

    existing = db.scalar(select(Bid.id).where(Bid.project_id == project.id, Bid.vendor_id == p.user_id))
    if existing is not None:
        raise ConflictError("you have already bid on this project")

    bid = Bid(
        project_id=project.id,
        vendor_id=p.user_id,
        amount=_amount(payload.get("amount")),
        description=_required(payload, "description"),
        timeline=_required(payload, "timeline"),
        notes=payload.get("notes") or None,
        status=BidStatus.PENDING.value,
    )

    vendor = db.get(User, p.user_id)
    who = vendor.display_name if vendor is not None else p.email

    try:
        # re-check OPEN inside the insert transaction; an award committed since the read wins
        still_open = db.execute(
            update(Project)
            .where(Project.id == project.id, Project.status == ProjectStatus.OPEN.value)
            .values(updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if still_open.rowcount != 1:
            raise ConflictError("project is no longer accepting bids")

        db.add(bid)
        db.flush()
        notify.notify_user(
            db,
            user_id=project.manager_id,
            type=notify.BID_RECEIVED,
            title="New bid received",
            message=f'{who} submitted a bid of ${bid.amount:,.2f} on "{project.title}".',
            link=_project_link(project.id),
        )
        db.commit()
    except IntegrityError:
        # lost a race against our own duplicate submission
        db.rollback()
        raise ConflictError("you have already bid on this project")
    except Exception:
        db.rollback()
        raise

    db.refresh(bid)
    log.info("bid submitted", extra={"user_id": p.user_id, "project_id": project.id, "bid_id": bid.id})
    return bid


def update_bid(db: Session, p: Principal, bid_id: int, payload: dict[str, Any]) -> Bid:
    bid = must_get_bid(db, p, bid_id, action=access.UPDATE)
    ensure_editable(bid.status)

    if payload.get("amount") is not None:
        bid.amount = _amount(payload["amount"])
    for k in ("description", "timeline"):
        if payload.get(k) is not None:
            setattr(bid, k, _required(payload, k))
    if "notes" in payload:
        bid.notes = payload.get("notes") or None

    db.add(bid)
    db.commit()
    db.refresh(bid)
    return bid


def withdraw_bid(db: Session, p: Principal, bid_id: int) -> Bid:
    bid = must_get_bid(db, p, bid_id, action=access.UPDATE)
    ensure_transition(bid.status, BidStatus.WITHDRAWN)
    _move(db, bid, BidStatus.WITHDRAWN)
    db.commit()
    db.refresh(bid)
    log.info("bid withdrawn", extra={"user_id": p.user_id, "bid_id": bid.id})
    return bid


def delete_bid(db: Session, p: Principal, bid_id: int) -> None:
    bid = must_get_bid(db, p, bid_id, action=access.DELETE)
    if not access.is_admin(p):
        ensure_editable(bid.status)

    locators = locators_for_bid(db, bid.id)
    db.delete(bid)
    db.commit()
    log.info("bid deleted", extra={"user_id": p.user_id, "bid_id": bid_id})

    remove_payloads(locators)


# -----------------------------
# Manager decisions
# -----------------------------
def _move(db: Session, bid: Bid, target: BidStatus) -> None:
    """Conditional PENDING -> target; a concurrent decision makes this a conflict."""
    res = db.execute(
        update(Bid)
        .where(Bid.id == bid.id, Bid.status == BidStatus.PENDING.value)
        .values(status=target.value, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        db.rollback()
        raise ConflictError("bid was already decided")


def reject_bid(db: Session, p: Principal, bid_id: int) -> Bid:
    bid = must_get_bid(db, p, bid_id, action=access.DECIDE)
    ensure_transition(bid.status, BidStatus.REJECTED)
    project = bid.project

    try:
        _move(db, bid, BidStatus.REJECTED)
        notify.notify_user(
            db,
            user_id=bid.vendor_id,
            type=notify.BID_REJECTED,
            title="Bid rejected",
            message=f'Your bid on "{project.title}" was rejected.',
            link=_project_link(project.id),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(bid)
    log.info("bid rejected", extra={"user_id": p.user_id, "project_id": project.id, "bid_id": bid.id})
    return bid


def accept_bid(db: Session, p: Principal, bid_id: int) -> Bid:
    bid = must_get_bid(db, p, bid_id, action=access.DECIDE)
    ensure_transition(bid.status, BidStatus.ACCEPTED)
    project = bid.project
    now = datetime.utcnow()

    try:
        awarded = db.execute(
            update(Project)
            .where(
                Project.id == project.id,
                Project.status.in_(sorted(AWARDABLE_PROJECT_STATUSES)),
                ~select(Bid.id)
                .where(Bid.project_id == project.id, Bid.status == BidStatus.ACCEPTED.value)
                .exists(),
            )
            .values(status=ProjectStatus.AWARDED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if awarded.rowcount != 1:
            raise ConflictError("project is no longer open for a decision")

        _move(db, bid, BidStatus.ACCEPTED)

        losers = list(
            db.scalars(
                select(Bid).where(
                    Bid.project_id == project.id,
                    Bid.id != bid.id,
                    Bid.status == BidStatus.PENDING.value,
                )
            ).all()
        )
        if losers:
            db.execute(
                update(Bid)
                .where(Bid.id.in_([b.id for b in losers]), Bid.status == BidStatus.PENDING.value)
                .values(status=BidStatus.REJECTED.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )

        notify.notify_user(
            db,
            user_id=bid.vendor_id,
            type=notify.BID_ACCEPTED,
            title="Bid accepted",
            message=f'Your bid on "{project.title}" was accepted.',
            link=_project_link(project.id),
        )
        for other in losers:
            notify.notify_user(
                db,
                user_id=other.vendor_id,
                type=notify.BID_REJECTED,
                title="Bid not selected",
                message=f'Another bid was accepted for "{project.title}"; your bid was rejected.',
                link=_project_link(project.id),
            )

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(bid)
    db.refresh(project)
    for other in losers:
        db.refresh(other)

    log.info(
        "bid accepted",
        extra={"user_id": p.user_id, "project_id": project.id, "bid_id": bid.id, "event": f"auto_rejected={len(losers)}"},
    )
    return bid
