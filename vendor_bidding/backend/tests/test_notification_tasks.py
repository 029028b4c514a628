# backend/tests/test_notification_tasks.py
from __future__ import annotations

from app.config import settings
from app.services.realtime import user_channel
from app.workers.notification_tasks import _backoff_seconds, deliver_event


def test_backoff_grows_and_is_capped():
    assert 1 <= _backoff_seconds(0) <= 3
    assert _backoff_seconds(20) <= int(settings.notify_retry_max_seconds * 1.2) + 1


def test_deliver_event_publishes(publisher):
    res = deliver_event.apply(args=(user_channel(5), "notification", {"id": 1})).get()

    assert res["ok"] is True
    assert publisher.sent_to(user_channel(5))[0]["data"] == {"id": 1}
