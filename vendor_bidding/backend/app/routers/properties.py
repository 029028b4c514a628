# backend/app/routers/properties.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import OkOut, PropertyCreate, PropertyOut, PropertyUpdate
from ..services import property_service as svc

router = APIRouter(prefix="/properties", tags=["properties"])


@router.get("", response_model=list[PropertyOut])
def list_properties(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    out = []
    for row, n in svc.list_properties(db, p):
        item = PropertyOut.model_validate(row, from_attributes=True)
        item.project_count = n
        out.append(item)
    return out


@router.post("", response_model=PropertyOut, status_code=201)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return svc.create_property(db, p, payload.model_dump())


@router.get("/{property_id}", response_model=PropertyOut)
def get_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = svc.get_property(db, p, property_id)
    item = PropertyOut.model_validate(row, from_attributes=True)
    item.project_count = len(row.projects)
    return item


@router.put("/{property_id}", response_model=PropertyOut)
def update_property(
    property_id: int,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return svc.update_property(db, p, property_id, payload.model_dump(exclude_unset=True))


@router.delete("/{property_id}", response_model=OkOut)
def delete_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    svc.delete_property(db, p, property_id)
    return {"ok": True}
