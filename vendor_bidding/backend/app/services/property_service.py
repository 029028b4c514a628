# backend/app/services/property_service.py
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain import access
from ..domain.errors import AuthorizationError, ValidationError
from ..models import Project, Property
from .ownership import must_get_property
from .document_service import locators_for_projects, remove_payloads

log = logging.getLogger("bidding.properties")

EDITABLE = ("name", "address", "city", "state", "zip_code")


def _clean(payload: dict[str, Any], *, partial: bool) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k in EDITABLE:
        if k not in payload or payload[k] is None:
            if not partial:
                raise ValidationError(f"{k} is required")
            continue
        v = str(payload[k]).strip()
        if not v:
            raise ValidationError(f"{k} cannot be blank")
        out[k] = v
    return out


def create_property(db: Session, p: Principal, payload: dict[str, Any]) -> Property:
    if not access.is_manager(p):
        raise AuthorizationError("only property managers can create properties")

    row = Property(**_clean(payload, partial=False), manager_id=p.user_id)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def list_properties(db: Session, p: Principal, *, limit: int = 200) -> list[tuple[Property, int]]:
    """(property, project_count) newest first; managers see their own, admins all."""
    if not (access.is_manager(p) or access.is_admin(p)):
        raise AuthorizationError("only property managers can list properties")

    counts = (
        select(Project.property_id, func.count(Project.id).label("n"))
        .group_by(Project.property_id)
        .subquery()
    )
    q = (
        select(Property, func.coalesce(counts.c.n, 0))
        .outerjoin(counts, counts.c.property_id == Property.id)
        .order_by(desc(Property.created_at), desc(Property.id))
        .limit(limit)
    )
    if not access.is_admin(p):
        q = q.where(Property.manager_id == p.user_id)
    return [(row, int(n)) for row, n in db.execute(q).all()]


def get_property(db: Session, p: Principal, property_id: int) -> Property:
    return must_get_property(db, p, property_id)


def update_property(db: Session, p: Principal, property_id: int, payload: dict[str, Any]) -> Property:
    row = must_get_property(db, p, property_id, action=access.UPDATE)
    for k, v in _clean(payload, partial=True).items():
        setattr(row, k, v)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def delete_property(db: Session, p: Principal, property_id: int) -> None:
    row = must_get_property(db, p, property_id, action=access.DELETE)

    project_ids = [pr.id for pr in row.projects]
    locators = locators_for_projects(db, project_ids)

    db.delete(row)
    db.commit()
    log.info("property deleted", extra={"user_id": p.user_id, "project_id": project_ids})

    remove_payloads(locators)

