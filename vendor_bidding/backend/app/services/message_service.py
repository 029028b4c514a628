# backend/app/services/message_service.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal
from ..domain import access, notify
from ..domain.conversations import Conversation, group_conversations
from ..domain.errors import NotFoundError, ValidationError
from ..domain.visibility import message_view
from ..models import Message, User
from .ownership import must_get_message, must_get_project

log = logging.getLogger("bidding.messages")

_WITH_PARTIES = (
    selectinload(Message.sender),
    selectinload(Message.receiver),
    selectinload(Message.project),
)


def send_message(
    db: Session,
    p: Principal,
    *,
    receiver_id: int,
    content: str,
    project_id: Optional[int] = None,
) -> Message:
    content = (content or "").strip()
    if not content:
        raise ValidationError("content is required")
    if int(receiver_id) == p.user_id:
        raise ValidationError("cannot message yourself")

    receiver = db.get(User, int(receiver_id))
    if receiver is None:
        raise NotFoundError("receiver not found")
    if project_id is not None:
        must_get_project(db, p, int(project_id))

    sender = db.get(User, p.user_id)
    who = sender.display_name if sender is not None else p.email

    msg = Message(sender_id=p.user_id, receiver_id=receiver.id, project_id=project_id, content=content, read=False)
    db.add(msg)
    db.flush()
    db.refresh(msg)

    notify.queue_push(db, user_id=receiver.id, event_name="message", payload=message_view(msg))
    notify.notify_user(
        db,
        user_id=receiver.id,
        type=notify.NEW_MESSAGE,
        title="New message",
        message=f"{who} sent you a message",
        link=f"/messages/{p.user_id}",
    )
    db.commit()

    log.info("message sent", extra={"user_id": p.user_id, "project_id": project_id})
    return msg


def list_conversations(db: Session, p: Principal) -> list[tuple[Conversation, Optional[User]]]:
    """Conversations newest first, each paired with the counterpart user."""
    rows = db.scalars(
        select(Message)
        .options(*_WITH_PARTIES)
        .where(or_(Message.sender_id == p.user_id, Message.receiver_id == p.user_id))
    ).all()

    convs = group_conversations(rows, user_id=p.user_id)
    partners = {}
    if convs:
        ids = [c.partner_id for c in convs]
        partners = {u.id: u for u in db.scalars(select(User).where(User.id.in_(ids))).all()}
    return [(c, partners.get(c.partner_id)) for c in convs]


def read_thread(db: Session, p: Principal, partner_id: int) -> list[Message]:
    """
    Messages between the caller and partner_id, oldest first.

    Side effect: everything the partner sent the caller that was unread is
    marked read. Running it again changes nothing.
    """
    pair = or_(
        and_(Message.sender_id == p.user_id, Message.receiver_id == partner_id),
        and_(Message.sender_id == partner_id, Message.receiver_id == p.user_id),
    )
    res = db.execute(
        update(Message)
        .where(Message.sender_id == partner_id, Message.receiver_id == p.user_id, Message.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if res.rowcount:
        log.info("thread read", extra={"user_id": p.user_id, "event": f"marked={res.rowcount}"})

    return list(
        db.scalars(
            select(Message)
            .options(*_WITH_PARTIES)
            .where(pair)
            .order_by(Message.created_at.asc(), Message.id.asc())
            .execution_options(populate_existing=True)
        ).all()
    )


def mark_message_read(db: Session, p: Principal, message_id: int) -> Message:
    msg = must_get_message(db, p, message_id, action=access.UPDATE)
    if not msg.read:
        msg.read = True
        db.add(msg)
        db.commit()
        db.refresh(msg)
    return msg
