# backend/app/routers/realtime.py
"""
WebSocket relay for per-user live events.

Connect to /api/ws?token=<bearer token>. Every event published on the
caller's user_{id} channel is forwarded as {"event", "data", "ts"}.

Client -> server:
    {"type": "ping"}                                          -> {"event": "pong"}
    {"type": "typing", "receiver_id": 7, "is_typing": true}   -> user_typing on user_7
"""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from ..auth import Principal, principal_for_token
from ..db import SessionLocal
from ..domain.errors import AuthenticationError
from ..services.realtime import get_publisher, user_channel

log = logging.getLogger("bidding.ws")

router = APIRouter(tags=["realtime"])

WS_UNAUTHORIZED = 4001


def _authenticate(token: str) -> Principal:
    db = SessionLocal()
    try:
        return principal_for_token(db, token)
    finally:
        db.close()


@router.websocket("/ws")
async def ws(websocket: WebSocket, token: str = Query(default="")):
    try:
        p = await run_in_threadpool(_authenticate, token)
    except AuthenticationError as e:
        await websocket.close(code=WS_UNAUTHORIZED, reason=e.detail)
        return

    await websocket.accept()
    publisher = get_publisher()
    channel = user_channel(p.user_id)
    log.info("ws connected", extra={"user_id": p.user_id, "channel": channel})

    async def relay() -> None:
        async for msg in publisher.listen(channel):
            await websocket.send_json(msg)

    async def receive() -> None:
        try:
            while True:
                data = await websocket.receive_json()
                kind = data.get("type") if isinstance(data, dict) else None
                if kind == "ping":
                    await websocket.send_json({"event": "pong"})
                elif kind == "typing" and data.get("receiver_id") is not None:
                    await run_in_threadpool(
                        publisher.publish,
                        user_channel(int(data["receiver_id"])),
                        "user_typing",
                        {"user_id": p.user_id, "is_typing": bool(data.get("is_typing"))},
                    )
        except WebSocketDisconnect:
            pass

    relay_task = asyncio.create_task(relay())
    receive_task = asyncio.create_task(receive())
    try:
        done, pending = await asyncio.wait([relay_task, receive_task], return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        for task in done:
            if task.exception() is not None:
                log.warning("ws relay stopped", exc_info=task.exception(), extra={"user_id": p.user_id})
    finally:
        log.info("ws disconnected", extra={"user_id": p.user_id, "channel": channel})
