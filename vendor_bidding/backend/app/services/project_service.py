# backend/app/services/project_service.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import desc, or_, select, update
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal
from ..domain import access
from ..domain.errors import AuthorizationError, ConflictError, ValidationError
from ..models import Bid, BidStatus, Project, ProjectStatus, ProjectType
from .document_service import locators_for_projects, remove_payloads
from .ownership import must_get_project, must_get_property

log = logging.getLogger("bidding.projects")

PROJECT_TYPES = {t.value for t in ProjectType}
PROJECT_STATUSES = {s.value for s in ProjectStatus}

# a manager may not pick these by hand; AWARDED only comes from accepting a bid
_AWARD_ONLY = {ProjectStatus.AWARDED.value}
_FINAL = {ProjectStatus.COMPLETED.value, ProjectStatus.CANCELLED.value}
_BIDDING = {ProjectStatus.DRAFT.value, ProjectStatus.OPEN.value, ProjectStatus.IN_REVIEW.value}


def _text(payload: dict[str, Any], key: str) -> Optional[str]:
    v = payload.get(key)
    if v is None:
        return None
    v = str(v).strip()
    if not v:
        raise ValidationError(f"{key} cannot be blank")
    return v


def _budget(v: Any) -> Optional[float]:
    if v is None:
        return None
    try:
        b = float(v)
    except (TypeError, ValueError):
        raise ValidationError("budget must be a number")
    if b < 0:
        raise ValidationError("budget cannot be negative")
    return b


def _deadline(v: Any) -> Optional[datetime]:
    if v is None or isinstance(v, datetime):
        return v
    try:
        return datetime.fromisoformat(str(v))
    except ValueError:
        raise ValidationError("deadline must be an ISO datetime")


def _check_status_change(current: str, target: str, *, awarded: bool = False) -> None:
    if target not in PROJECT_STATUSES:
        raise ValidationError(f"unknown project status {target}")
    if target == current:
        return
    if target in _AWARD_ONLY:
        raise ValidationError("a project is awarded by accepting a bid")
    if current in _FINAL:
        raise ConflictError(f"project is {current}")
    if target in _BIDDING and (awarded or current == ProjectStatus.AWARDED.value):
        raise ConflictError("an awarded project cannot reopen for bidding")


def has_accepted_bid(db: Session, project_id: int) -> bool:
    return (
        db.scalar(select(Bid.id).where(Bid.project_id == project_id, Bid.status == BidStatus.ACCEPTED.value).limit(1))
        is not None
    )


def _move_status(db: Session, row: Project, target: str) -> None:
    """Conditional write on the status we read; a concurrent award makes this a conflict."""
    res = db.execute(
        update(Project)
        .where(Project.id == row.id, Project.status == row.status)
        .values(status=target, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        db.rollback()
        raise ConflictError("project status changed concurrently")


def create_project(db: Session, p: Principal, payload: dict[str, Any]) -> Project:
    if not access.is_manager(p):
        raise AuthorizationError("only property managers can create projects")

    prop = must_get_property(db, p, int(payload.get("property_id") or 0), action=access.UPDATE)

    title = _text(payload, "title")
    description = _text(payload, "description")
    if not title or not description:
        raise ValidationError("title and description are required")

    ptype = str(payload.get("type") or ProjectType.OTHER.value)
    if ptype not in PROJECT_TYPES:
        raise ValidationError(f"type must be one of {sorted(PROJECT_TYPES)}")

    status = str(payload.get("status") or ProjectStatus.OPEN.value)
    if status not in (ProjectStatus.DRAFT.value, ProjectStatus.OPEN.value):
        raise ValidationError("a new project starts as DRAFT or OPEN")

    row = Project(
        property_id=prop.id,
        manager_id=prop.manager_id,
        title=title,
        description=description,
        type=ptype,
        status=status,
        budget=_budget(payload.get("budget")),
        timeline=payload.get("timeline") or None,
        deadline=_deadline(payload.get("deadline")),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    log.info("project created", extra={"user_id": p.user_id, "project_id": row.id})
    return row


def list_projects(db: Session, p: Principal, *, status: Optional[str] = None, limit: int = 200) -> list[Project]:
    q = (
        select(Project)
        .options(selectinload(Project.property), selectinload(Project.bids).selectinload(Bid.vendor))
        .order_by(desc(Project.created_at), desc(Project.id))
    )

    if access.is_manager(p):
        q = q.where(Project.manager_id == p.user_id)
    elif access.is_vendor(p):
        own_bids = select(Bid.project_id).where(Bid.vendor_id == p.user_id)
        q = q.where(or_(Project.status == ProjectStatus.OPEN.value, Project.id.in_(own_bids)))
    elif not access.is_admin(p):
        return []

    if status:
        if status not in PROJECT_STATUSES:
            raise ValidationError(f"unknown project status {status}")
        q = q.where(Project.status == status)

    return list(db.scalars(q.limit(limit)).all())


def get_project(db: Session, p: Principal, project_id: int) -> Project:
    return must_get_project(db, p, project_id)


def update_project(db: Session, p: Principal, project_id: int, payload: dict[str, Any]) -> Project:
    row = must_get_project(db, p, project_id, action=access.UPDATE)

    target = None
    if payload.get("status") is not None:
        target = str(payload["status"])
        _check_status_change(row.status, target, awarded=has_accepted_bid(db, row.id))

    try:
        for k in ("title", "description"):
            v = _text(payload, k)
            if v is not None:
                setattr(row, k, v)

        if payload.get("type") is not None:
            if payload["type"] not in PROJECT_TYPES:
                raise ValidationError(f"type must be one of {sorted(PROJECT_TYPES)}")
            row.type = payload["type"]

        if "budget" in payload:
            row.budget = _budget(payload.get("budget"))
        if payload.get("timeline") is not None:
            row.timeline = payload["timeline"]
        if payload.get("deadline") is not None:
            row.deadline = _deadline(payload["deadline"])

        db.add(row)
        if target is not None and target != row.status:
            _move_status(db, row, target)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(row)
    return row


def delete_project(db: Session, p: Principal, project_id: int) -> None:
    row = must_get_project(db, p, project_id, action=access.DELETE)
    locators = locators_for_projects(db, [row.id])

    db.delete(row)
    db.commit()
    log.info("project deleted", extra={"user_id": p.user_id, "project_id": project_id})

    remove_payloads(locators)
