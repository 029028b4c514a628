# backend/app/domain/notify.py
"""
Notification dispatch: persist, then publish.

notify_user() adds the Notification row to the caller's session (flush only,
never commits) and queues a live push on session.info. The queued pushes are
handed to the publisher only from the session's after_commit hook, so a
client can never receive a push whose row is not yet durable. A rollback
drops the queue.

Delivery is best effort. Publisher failures are logged and swallowed; the
stored row stays the source of truth and clients re-sync by listing
notifications.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session

from ..config import settings
from ..db import SessionLocal
from ..models import Notification
from ..services.realtime import get_publisher, user_channel

log = logging.getLogger("bidding.notify")

_OUTBOX_KEY = "realtime_outbox"

# notification.type values
BID_RECEIVED = "bid_received"
BID_ACCEPTED = "bid_accepted"
BID_REJECTED = "bid_rejected"
NEW_MESSAGE = "message"


@dataclass(frozen=True)
class PendingPush:
    channel: str
    event: str
    payload: dict[str, Any]


def notification_payload(n: Notification) -> dict[str, Any]:
    return {
        "id": n.id,
        "type": n.type,
        "title": n.title,
        "message": n.message,
        "link": n.link,
        "read": bool(n.read),
        "created_at": n.created_at,
    }


def queue_push(db: Session, *, user_id: int, event_name: str, payload: dict[str, Any]) -> None:
    db.info.setdefault(_OUTBOX_KEY, []).append(
        PendingPush(channel=user_channel(user_id), event=event_name, payload=dict(payload))
    )


def pending_pushes(db: Session) -> list[PendingPush]:
    return list(db.info.get(_OUTBOX_KEY, ()))


def notify_user(
    db: Session,
    *,
    user_id: int,
    type: str,
    title: str,
    message: str,
    link: Optional[str] = None,
) -> Notification:
    """
    NOTE:
    - Does NOT commit. Adds + flushes only; the caller's commit publishes.
    """
    row = Notification(
        user_id=int(user_id),
        type=str(type),
        title=str(title),
        message=str(message),
        link=link,
        read=False,
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.flush()

    queue_push(db, user_id=user_id, event_name="notification", payload=notification_payload(row))
    return row


# -----------------------------
# Delivery
# -----------------------------
def deliver(push: PendingPush) -> None:
    mode = (settings.notify_dispatch or "inline").strip().lower()
    try:
        if mode == "celery":
            from ..workers.notification_tasks import deliver_event

            deliver_event.delay(push.channel, push.event, push.payload)
        else:
            get_publisher().publish(push.channel, push.event, push.payload)
    except Exception:
        log.warning(
            "realtime push failed",
            exc_info=True,
            extra={"channel": push.channel, "event": push.event},
        )


def flush_outbox(session: Session) -> int:
    pushes = session.info.pop(_OUTBOX_KEY, None) or []
    for push in pushes:
        deliver(push)
    return len(pushes)


@event.listens_for(SessionLocal, "after_commit")
def _publish_after_commit(session: Session) -> None:
    flush_outbox(session)


@event.listens_for(SessionLocal, "after_soft_rollback")
def _discard_on_rollback(session: Session, previous_transaction) -> None:
    if not previous_transaction.nested:
        session.info.pop(_OUTBOX_KEY, None)
