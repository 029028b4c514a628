# backend/app/services/realtime.py
"""
Per-user live event channels.

Publishers expose:
    publish(channel, event, payload) -> int   # receivers reached, best effort
    listen(channel)                           # async iterator of messages

Channel naming: user_{user_id}. Wire message: {"event": ..., "data": ..., "ts": ...}.

InMemoryPublisher fans out to WebSocket connections held by this process
(single-worker/local/tests). RedisPublisher uses redis pub/sub so any API or
Celery worker can reach a client connected to any API process.
"""
from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections import deque
from datetime import date, datetime
from typing import Any, AsyncIterator, Optional

import redis
import redis.asyncio as aioredis

from ..config import settings

log = logging.getLogger("bidding.realtime")


def user_channel(user_id: int) -> str:
    return f"user_{int(user_id)}"


def _jsonable(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {k: _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(x) for x in obj]
    return obj


def build_message(event: str, payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "event": str(event),
        "data": _jsonable(payload),
        "ts": datetime.utcnow().isoformat() + "Z",
    }


class InMemoryPublisher:
    """
    publish() may be called from any thread (sync FastAPI handlers run in a
    threadpool); each subscriber queue belongs to an event loop, so delivery
    goes through loop.call_soon_threadsafe.
    """

    def __init__(self, history_size: int = 500) -> None:
        self._lock = threading.Lock()
        self._subs: dict[str, set[tuple[asyncio.AbstractEventLoop, asyncio.Queue]]] = {}
        self.history: deque[tuple[str, dict[str, Any]]] = deque(maxlen=history_size)

    def publish(self, channel: str, event: str, payload: dict[str, Any]) -> int:
        msg = build_message(event, payload)
        self.history.append((channel, msg))

        with self._lock:
            targets = list(self._subs.get(channel, ()))

        delivered = 0
        for loop, q in targets:
            if loop.is_closed():
                continue
            loop.call_soon_threadsafe(q.put_nowait, msg)
            delivered += 1
        return delivered

    def sent_to(self, channel: str) -> list[dict[str, Any]]:
        return [m for ch, m in self.history if ch == channel]

    def subscriber_count(self, channel: str) -> int:
        with self._lock:
            return len(self._subs.get(channel, ()))

    async def listen(self, channel: str) -> AsyncIterator[dict[str, Any]]:
        entry = (asyncio.get_running_loop(), asyncio.Queue())
        with self._lock:
            self._subs.setdefault(channel, set()).add(entry)
        try:
            while True:
                yield await entry[1].get()
        finally:
            with self._lock:
                subs = self._subs.get(channel)
                if subs is not None:
                    subs.discard(entry)
                    if not subs:
                        self._subs.pop(channel, None)


class RedisPublisher:
    def __init__(self, url: str) -> None:
        self._url = url
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis.from_url(self._url, decode_responses=True)
            log.info("redis publisher initialized", extra={"channel": self._url})
        return self._client

    def publish(self, channel: str, event: str, payload: dict[str, Any]) -> int:
        return int(self.client.publish(channel, json.dumps(build_message(event, payload))))

    async def listen(self, channel: str) -> AsyncIterator[dict[str, Any]]:
        client = aioredis.from_url(self._url, decode_responses=True)
        pubsub = client.pubsub()
        await pubsub.subscribe(channel)
        try:
            async for raw in pubsub.listen():
                if raw.get("type") != "message":
                    continue
                try:
                    yield json.loads(raw["data"])
                except (TypeError, ValueError):
                    log.warning("dropping malformed realtime message", extra={"channel": channel})
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
            await client.aclose()


_publisher = None


def _build_publisher():
    backend = (settings.realtime_backend or "memory").strip().lower()
    if backend == "redis":
        return RedisPublisher(settings.redis_url)
    if backend == "memory":
        return InMemoryPublisher()
    raise ValueError(f"unknown realtime_backend: {backend}")


def get_publisher():
    """FastAPI dependency / shared accessor."""
    global _publisher
    if _publisher is None:
        _publisher = _build_publisher()
    return _publisher


def set_publisher(publisher) -> None:
    global _publisher
    _publisher = publisher
