# backend/tests/test_access_rules.py
from __future__ import annotations

from app.auth import Principal
from app.domain import access
from app.models import Bid, Document, Message, Notification, Project, Property

MANAGER = Principal(user_id=1, email="m@t", role="PROPERTY_MANAGER")
OTHER_MANAGER = Principal(user_id=2, email="m2@t", role="PROPERTY_MANAGER")
VENDOR = Principal(user_id=3, email="v@t", role="VENDOR")
OTHER_VENDOR = Principal(user_id=4, email="v2@t", role="VENDOR")
ADMIN = Principal(user_id=9, email="a@t", role="ADMIN")


def test_property_is_owner_only_except_admin_read_delete():
    prop = Property(id=10, manager_id=1)
    assert access.property_allows(MANAGER, prop, access.UPDATE)
    assert not access.property_allows(OTHER_MANAGER, prop, access.READ)
    assert not access.property_allows(VENDOR, prop, access.READ)
    assert access.property_allows(ADMIN, prop, access.READ)
    assert access.property_allows(ADMIN, prop, access.DELETE)
    assert not access.property_allows(ADMIN, prop, access.UPDATE)


def test_vendor_project_visibility_depends_on_status_and_bid():
    open_project = Project(id=1, manager_id=1, status="OPEN")
    awarded = Project(id=2, manager_id=1, status="AWARDED")

    assert access.project_allows(VENDOR, open_project, access.READ)
    assert not access.project_allows(VENDOR, awarded, access.READ)
    assert access.project_allows(VENDOR, awarded, access.READ, vendor_has_bid=True)

    # bidding never grants write access
    assert not access.project_allows(VENDOR, open_project, access.UPDATE, vendor_has_bid=True)


def test_project_manager_scope():
    project = Project(id=1, manager_id=1, status="DRAFT")
    assert access.project_allows(MANAGER, project, access.UPDATE)
    assert not access.project_allows(OTHER_MANAGER, project, access.READ)
    assert access.project_allows(ADMIN, project, access.DELETE)
    assert not access.project_allows(ADMIN, project, access.UPDATE)


def test_bid_rules():
    bid = Bid(id=5, project_id=1, vendor_id=3, status="PENDING")

    assert access.bid_allows(VENDOR, bid, access.UPDATE, project_manager_id=1)
    assert not access.bid_allows(OTHER_VENDOR, bid, access.READ, project_manager_id=1)

    assert access.bid_allows(MANAGER, bid, access.READ, project_manager_id=1)
    assert access.bid_allows(MANAGER, bid, access.DECIDE, project_manager_id=1)
    assert not access.bid_allows(MANAGER, bid, access.UPDATE, project_manager_id=1)
    assert not access.bid_allows(OTHER_MANAGER, bid, access.DECIDE, project_manager_id=1)

    # vendors cannot decide their own bids
    assert not access.bid_allows(VENDOR, bid, access.DECIDE, project_manager_id=1)
    assert access.bid_allows(ADMIN, bid, access.DELETE, project_manager_id=1)
    assert not access.bid_allows(ADMIN, bid, access.DECIDE, project_manager_id=1)


def test_document_readers():
    on_bid = Document(id=1, bid_id=5, uploaded_by=3)
    assert access.document_allows(VENDOR, on_bid, access.READ, project_manager_id=1, bid_vendor_id=3)
    assert access.document_allows(MANAGER, on_bid, access.READ, project_manager_id=1, bid_vendor_id=3)
    assert not access.document_allows(OTHER_VENDOR, on_bid, access.READ, project_manager_id=1, bid_vendor_id=3)
    assert not access.document_allows(OTHER_MANAGER, on_bid, access.READ, project_manager_id=1, bid_vendor_id=3)
    assert access.document_allows(ADMIN, on_bid, access.DELETE, project_manager_id=1, bid_vendor_id=3)

    # a manager cannot delete a vendor's bid attachment
    assert not access.document_allows(MANAGER, on_bid, access.DELETE, project_manager_id=1, bid_vendor_id=3)

    on_project = Document(id=2, project_id=1, uploaded_by=1)
    assert access.document_allows(MANAGER, on_project, access.DELETE, project_manager_id=1, bid_vendor_id=None)
    assert not access.document_allows(VENDOR, on_project, access.READ, project_manager_id=1, bid_vendor_id=None)


def test_messages_have_no_admin_override():
    msg = Message(id=1, sender_id=1, receiver_id=3, content="hi", read=False)
    assert access.message_allows(MANAGER, msg, access.READ)
    assert access.message_allows(VENDOR, msg, access.READ)
    assert not access.message_allows(ADMIN, msg, access.READ)

    # only the receiver flips the read flag
    assert access.message_allows(VENDOR, msg, access.UPDATE)
    assert not access.message_allows(MANAGER, msg, access.UPDATE)


def test_notifications_belong_to_recipient():
    n = Notification(id=1, user_id=3, type="bid_accepted", title="t", message="m", read=False)
    assert access.notification_allows(VENDOR, n, access.UPDATE)
    assert not access.notification_allows(OTHER_VENDOR, n, access.READ)
    assert access.notification_allows(ADMIN, n, access.READ)
    assert not access.notification_allows(ADMIN, n, access.UPDATE)
