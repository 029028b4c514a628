# backend/app/routers/projects.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.visibility import project_view
from ..schemas import OkOut, ProjectCreate, ProjectUpdate
from ..services import project_service as svc

router = APIRouter(prefix="/projects", tags=["projects"])


def _view(row, p: Principal) -> dict:
    return project_view(row, p, prop=row.property, bids=row.bids, documents=row.documents)


@router.get("", response_model=list[dict])
def list_projects(
    status: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    """
    Managers: their own projects. Vendors: OPEN projects plus any they bid on.
    Vendors only ever see their own bid and a bid_count.
    """
    return [project_view(r, p, prop=r.property, bids=r.bids) for r in svc.list_projects(db, p, status=status)]


@router.post("", response_model=dict, status_code=201)
def create_project(payload: ProjectCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return _view(svc.create_project(db, p, payload.model_dump()), p)


@router.get("/{project_id}", response_model=dict)
def get_project(project_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return _view(svc.get_project(db, p, project_id), p)


@router.put("/{project_id}", response_model=dict)
def update_project(
    project_id: int,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return _view(svc.update_project(db, p, project_id, payload.model_dump(exclude_unset=True)), p)


@router.delete("/{project_id}", response_model=OkOut)
def delete_project(project_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    svc.delete_project(db, p, project_id)
    return {"ok": True}
