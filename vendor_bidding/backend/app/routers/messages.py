# backend/app/routers/messages.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.visibility import message_view, user_summary
from ..schemas import ConversationOut, MessageCreate
from ..services import message_service as svc

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/conversations", response_model=list[ConversationOut])
def conversations(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return [
        {
            "partner_id": c.partner_id,
            "partner": user_summary(partner),
            "last_message": message_view(c.last_message),
            "unread_count": c.unread_count,
        }
        for c, partner in svc.list_conversations(db, p)
    ]


@router.get("/with/{user_id}", response_model=list[dict])
def thread(user_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    """Oldest first. Marks the counterpart's unread messages as read."""
    return [message_view(m) for m in svc.read_thread(db, p, user_id)]


@router.post("", response_model=dict, status_code=201)
def send(payload: MessageCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    msg = svc.send_message(
        db,
        p,
        receiver_id=payload.receiver_id,
        content=payload.content,
        project_id=payload.project_id,
    )
    return message_view(msg)


@router.patch("/{message_id}/read", response_model=dict)
def mark_read(message_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return message_view(svc.mark_message_read(db, p, message_id))
