# backend/app/services/notification_service.py
from __future__ import annotations

from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain import access
from ..models import Notification
from .ownership import must_get_notification

DEFAULT_LIMIT = 50


def list_notifications(
    db: Session, p: Principal, *, unread_only: bool = False, limit: int = DEFAULT_LIMIT
) -> list[Notification]:
    q = select(Notification).where(Notification.user_id == p.user_id)
    if unread_only:
        q = q.where(Notification.read.is_(False))
    q = q.order_by(desc(Notification.created_at), desc(Notification.id)).limit(max(1, min(int(limit), 200)))
    return list(db.scalars(q).all())


def unread_count(db: Session, p: Principal) -> int:
    n = db.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == p.user_id, Notification.read.is_(False)
        )
    )
    return int(n or 0)


def mark_read(db: Session, p: Principal, notification_id: int) -> Notification:
    row = must_get_notification(db, p, notification_id, action=access.UPDATE)
    if not row.read:
        row.read = True
        db.add(row)
        db.commit()
        db.refresh(row)
    return row


def mark_all_read(db: Session, p: Principal) -> int:
    res = db.execute(
        update(Notification)
        .where(Notification.user_id == p.user_id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return int(res.rowcount or 0)


def delete_notification(db: Session, p: Principal, notification_id: int) -> None:
    row = must_get_notification(db, p, notification_id, action=access.DELETE)
    db.delete(row)
    db.commit()
