# backend/tests/test_visibility.py
from __future__ import annotations

from datetime import datetime

from app.auth import Principal
from app.domain.visibility import bid_view, project_view
from app.models import Bid, Document, Project, User

MANAGER = Principal(user_id=1, email="m@t", role="PROPERTY_MANAGER")
VENDOR = Principal(user_id=3, email="v@t", role="VENDOR")

NOW = datetime(2026, 1, 1)


def _project():
    return Project(
        id=1, property_id=1, manager_id=1, title="Roof Repair", description="d", type="MAINTENANCE",
        status="OPEN", created_at=NOW, updated_at=NOW,
    )


def _bids():
    v3 = User(id=3, first_name="Val", last_name="V", email="v@t", role="VENDOR")
    v4 = User(id=4, first_name="Vic", last_name="W", email="w@t", role="VENDOR")
    return [
        Bid(id=10, project_id=1, vendor_id=3, amount=5000, description="a", timeline="1w", status="PENDING", vendor=v3),
        Bid(id=11, project_id=1, vendor_id=4, amount=4500, description="b", timeline="2w", status="PENDING", vendor=v4),
    ]


def test_vendor_sees_only_own_bid_and_a_count():
    docs = [Document(id=1, project_id=1, uploaded_by=1, file_name="plan.pdf", file_size=3, mime_type="application/pdf")]
    out = project_view(_project(), VENDOR, bids=_bids(), documents=docs)

    assert out["bid_count"] == 2
    assert [b["id"] for b in out["bids"]] == [10]
    assert out["documents"] == []
    assert all(b["amount"] != 4500 for b in out["bids"])


def test_manager_sees_every_bid_with_vendor():
    out = project_view(_project(), MANAGER, bids=_bids())
    assert out["bid_count"] == 2
    assert [b["id"] for b in out["bids"]] == [10, 11]
    assert out["bids"][1]["vendor"]["first_name"] == "Vic"


def test_bid_view_hides_vendor_block_from_vendors():
    bid = _bids()[0]
    assert "vendor" not in bid_view(bid, VENDOR)
    assert bid_view(bid, MANAGER, vendor=bid.vendor)["vendor"]["id"] == 3
