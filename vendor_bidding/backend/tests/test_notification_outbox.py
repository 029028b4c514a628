# backend/tests/test_notification_outbox.py
from __future__ import annotations

from sqlalchemy import func, select

from app.config import settings
from app.domain import notify
from app.models import Notification
from app.services import bid_service
from app.services.realtime import set_publisher, user_channel


class _BrokenPublisher:
    def publish(self, channel, event, payload):
        raise ConnectionError("redis down")


def test_push_follows_committed_row(db, market, publisher):
    bid_service.submit_bid(
        db, market.v1, {"project_id": market.project.id, "amount": 10, "description": "a", "timeline": "1w"}
    )

    pushes = publisher.sent_to(user_channel(market.manager.user_id))
    assert [m["event"] for m in pushes] == ["notification"]

    stored = db.scalar(select(Notification).where(Notification.id == pushes[0]["data"]["id"]))
    assert stored is not None
    assert stored.type == "bid_received"


def test_nothing_is_pushed_before_commit(db, market, publisher):
    notify.notify_user(db, user_id=market.v1.user_id, type="bid_accepted", title="t", message="m")
    assert publisher.sent_to(user_channel(market.v1.user_id)) == []
    assert len(notify.pending_pushes(db)) == 1

    db.commit()
    assert len(publisher.sent_to(user_channel(market.v1.user_id))) == 1
    assert notify.pending_pushes(db) == []


def test_rollback_discards_row_and_push(db, market, publisher):
    notify.notify_user(db, user_id=market.v1.user_id, type="bid_accepted", title="t", message="m")
    db.rollback()

    assert notify.pending_pushes(db) == []
    assert publisher.sent_to(user_channel(market.v1.user_id)) == []
    assert db.scalar(select(func.count(Notification.id)).where(Notification.user_id == market.v1.user_id)) == 0


def test_publisher_failure_never_fails_the_mutation(db, market, caplog):
    set_publisher(_BrokenPublisher())

    bid = bid_service.submit_bid(
        db, market.v1, {"project_id": market.project.id, "amount": 10, "description": "a", "timeline": "1w"}
    )

    assert bid.id is not None
    assert db.scalar(select(func.count(Notification.id)).where(Notification.user_id == market.manager.user_id)) == 1
    assert any("realtime push failed" in r.getMessage() for r in caplog.records)


def test_celery_dispatch_enqueues_instead_of_publishing(db, market, publisher, monkeypatch):
    from app.workers.notification_tasks import deliver_event

    queued = []
    monkeypatch.setattr(settings, "notify_dispatch", "celery")
    monkeypatch.setattr(deliver_event, "delay", lambda *args: queued.append(args))

    notify.notify_user(db, user_id=market.v1.user_id, type="bid_accepted", title="t", message="m")
    db.commit()

    assert publisher.sent_to(user_channel(market.v1.user_id)) == []
    assert [(ch, ev) for ch, ev, _ in queued] == [(user_channel(market.v1.user_id), "notification")]
