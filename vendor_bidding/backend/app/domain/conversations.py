# backend/app/domain/conversations.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..models import Message


@dataclass
class Conversation:
    partner_id: int
    last_message: Message
    unread_count: int = 0


def _recency_key(m: Message) -> tuple:
    return (m.created_at, m.id)


def group_conversations(messages: Iterable[Message], *, user_id: int) -> list[Conversation]:
    """
    Fold every message involving `user_id` into one Conversation per
    counterpart. unread_count only counts messages the user received and has
    not read. Result is ordered newest conversation first; input order does
    not matter.
    """
    by_partner: dict[int, Conversation] = {}

    for m in messages:
        partner_id = m.receiver_id if m.sender_id == user_id else m.sender_id

        conv = by_partner.get(partner_id)
        if conv is None:
            conv = Conversation(partner_id=partner_id, last_message=m)
            by_partner[partner_id] = conv
        elif _recency_key(m) > _recency_key(conv.last_message):
            conv.last_message = m

        if m.receiver_id == user_id and not m.read:
            conv.unread_count += 1

    return sorted(by_partner.values(), key=lambda c: _recency_key(c.last_message), reverse=True)
