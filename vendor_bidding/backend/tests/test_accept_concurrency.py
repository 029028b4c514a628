# backend/tests/test_accept_concurrency.py
from __future__ import annotations

import threading

import pytest
from sqlalchemy import select

from app.db import SessionLocal
from app.domain.errors import ConflictError
from app.models import Bid, Project
from app.services import bid_service


def test_two_simultaneous_acceptances_one_wins(db, market):
    b1 = bid_service.submit_bid(
        db, market.v1, {"project_id": market.project.id, "amount": 5000, "description": "a", "timeline": "1w"}
    )
    b2 = bid_service.submit_bid(
        db, market.v2, {"project_id": market.project.id, "amount": 4500, "description": "b", "timeline": "2w"}
    )

    barrier = threading.Barrier(2)
    outcomes: dict[int, str] = {}

    def attempt(bid_id: int) -> None:
        s = SessionLocal()
        try:
            barrier.wait(timeout=10)
            bid_service.accept_bid(s, market.manager, bid_id)
            outcomes[bid_id] = "accepted"
        except ConflictError:
            outcomes[bid_id] = "conflict"
        finally:
            s.close()

    threads = [threading.Thread(target=attempt, args=(b,)) for b in (b1.id, b2.id)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(outcomes.values()) == ["accepted", "conflict"]

    check = SessionLocal()
    try:
        assert check.scalar(select(Project.status).where(Project.id == market.project.id)) == "AWARDED"
        statuses = check.scalars(select(Bid.status).where(Bid.project_id == market.project.id)).all()
        assert sorted(statuses) == ["ACCEPTED", "REJECTED"]
    finally:
        check.close()


def test_award_between_open_check_and_insert_rejects_the_late_bid(db, market, monkeypatch):
    b1 = bid_service.submit_bid(
        db, market.v1, {"project_id": market.project.id, "amount": 5000, "description": "a", "timeline": "1w"}
    )
    real = bid_service.must_get_project

    def award_meanwhile(*args, **kwargs):
        row = real(*args, **kwargs)
        other = SessionLocal()
        try:
            bid_service.accept_bid(other, market.manager, b1.id)
        finally:
            other.close()
        return row

    # v2 has already passed the OPEN check when the award commits
    monkeypatch.setattr(bid_service, "must_get_project", award_meanwhile)

    with pytest.raises(ConflictError):
        bid_service.submit_bid(
            db, market.v2, {"project_id": market.project.id, "amount": 4500, "description": "b", "timeline": "2w"}
        )

    check = SessionLocal()
    try:
        assert check.scalar(select(Project.status).where(Project.id == market.project.id)) == "AWARDED"
        rows = check.execute(select(Bid.vendor_id, Bid.status).where(Bid.project_id == market.project.id)).all()
        assert [tuple(r) for r in rows] == [(market.v1.user_id, "ACCEPTED")]
    finally:
        check.close()
