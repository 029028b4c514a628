# backend/app/routers/notifications.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import CountOut, NotificationOut, OkOut
from ..services import notification_service as svc

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=svc.DEFAULT_LIMIT, ge=1, le=200),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return svc.list_notifications(db, p, unread_only=unread_only, limit=limit)


@router.get("/unread-count", response_model=CountOut)
def unread_count(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return {"count": svc.unread_count(db, p)}


@router.post("/mark-all-read", response_model=OkOut)
def mark_all_read(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return {"ok": True, "updated": svc.mark_all_read(db, p)}


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return svc.mark_read(db, p, notification_id)


@router.delete("/{notification_id}", response_model=OkOut)
def delete_notification(notification_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    svc.delete_notification(db, p, notification_id)
    return {"ok": True}
