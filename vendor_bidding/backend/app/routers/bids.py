# backend/app/routers/bids.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.visibility import bid_view
from ..schemas import BidCreate, BidUpdate, OkOut
from ..services import bid_service as svc

router = APIRouter(prefix="/bids", tags=["bids"])


def _view(bid, p: Principal) -> dict:
    return bid_view(bid, p, vendor=bid.vendor)


@router.get("", response_model=list[dict])
def list_bids(
    project_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return [_view(b, p) for b in svc.list_bids(db, p, project_id=project_id)]


@router.post("", response_model=dict, status_code=201)
def submit_bid(payload: BidCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return _view(svc.submit_bid(db, p, payload.model_dump()), p)


@router.get("/{bid_id}", response_model=dict)
def get_bid(bid_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return _view(svc.get_bid(db, p, bid_id), p)


@router.put("/{bid_id}", response_model=dict)
def update_bid(bid_id: int, payload: BidUpdate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return _view(svc.update_bid(db, p, bid_id, payload.model_dump(exclude_unset=True)), p)


@router.post("/{bid_id}/withdraw", response_model=dict)
def withdraw_bid(bid_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return _view(svc.withdraw_bid(db, p, bid_id), p)


@router.post("/{bid_id}/accept", response_model=dict)
def accept_bid(bid_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    """Awards the project; every other PENDING bid on it is rejected in the same transaction."""
    return _view(svc.accept_bid(db, p, bid_id), p)


@router.post("/{bid_id}/reject", response_model=dict)
def reject_bid(bid_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return _view(svc.reject_bid(db, p, bid_id), p)


@router.delete("/{bid_id}", response_model=OkOut)
def delete_bid(bid_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    svc.delete_bid(db, p, bid_id)
    return {"ok": True}
