# backend/app/workers/notification_tasks.py
from __future__ import annotations

import logging
import random
from typing import Any

from ..config import settings
from ..services.realtime import get_publisher
from .celery_app import celery_app

log = logging.getLogger("bidding.workers.notify")


def _backoff_seconds(retries: int) -> int:
    """
    Exponential backoff with jitter.
    retries is the current retry count (0 for first retry attempt).
    """
    base = int(settings.notify_retry_base_seconds or 2)
    cap = int(settings.notify_retry_max_seconds or 60)

    delay = min(cap, base * (2 ** max(0, int(retries))))

    # jitter: +/- 20%
    jitter = int(delay * 0.2)
    if jitter > 0:
        delay = max(1, delay + random.randint(-jitter, jitter))
    return delay


@celery_app.task(
    bind=True,
    max_retries=None,  # bounded by settings.notify_max_retries below
    name="app.workers.notification_tasks.deliver_event",
)
def deliver_event(self, channel: str, event: str, payload: dict[str, Any]) -> dict:
    """
    Publish one live event to a user channel.

    The notification row is already committed when this runs, so giving up
    loses nothing but the live push; after the last retry the failure is
    logged and the task finishes normally.
    """
    try:
        receivers = get_publisher().publish(channel, event, payload)
        return {"ok": True, "receivers": int(receivers)}
    except Exception as e:
        if self.request.retries < int(settings.notify_max_retries):
            raise self.retry(exc=e, countdown=_backoff_seconds(self.request.retries))
        log.warning(
            "giving up on realtime push",
            exc_info=True,
            extra={"channel": channel, "event": event},
        )
        return {"ok": False, "error": str(e)}
