# backend/tests/test_documents.py
from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.config import settings
from app.domain.errors import AuthorizationError, DependencyError, NotFoundError, ValidationError
from app.models import Document, Role
from app.services import bid_service, document_service, project_service


def _files(storage) -> list:
    return [p for p in storage.root.rglob("*") if p.is_file()] if storage.root.exists() else []


def test_failed_metadata_insert_leaves_no_payload(db, market, storage, monkeypatch):
    stored = []
    real_put = storage.put

    def spy_put(locator, data, content_type):
        stored.append(locator)
        real_put(locator, data, content_type)

    def broken_commit():
        raise OperationalError("INSERT INTO documents", {}, Exception("database is locked"))

    monkeypatch.setattr(storage, "put", spy_put)
    monkeypatch.setattr(db, "commit", broken_commit)

    with pytest.raises(DependencyError):
        document_service.upload_document(
            db, market.manager, file_name="scope.pdf", content_type="application/pdf", data=b"%PDF",
            project_id=market.project.id,
        )

    assert len(stored) == 1
    assert not storage.exists(stored[0])
    assert _files(storage) == []


def test_upload_link_and_delete(db, market, storage):
    doc = document_service.upload_document(
        db, market.manager, file_name="../../etc/scope v1.pdf", content_type="application/pdf", data=b"%PDF-1.4",
        project_id=market.project.id,
    )

    assert doc.locator.startswith(f"{market.manager.user_id}/project-{market.project.id}/")
    assert doc.locator.endswith("-scope_v1.pdf")
    assert storage.read(doc.locator) == b"%PDF-1.4"

    _, url, _ = document_service.get_document_link(db, market.manager, doc.id)
    assert url.startswith("http://testserver/api/documents/blob/")
    assert doc.locator not in url

    document_service.delete_document(db, market.manager, doc.id)
    assert not storage.exists(doc.locator)
    assert db.scalar(select(func.count(Document.id))) == 0


def test_missing_payload_does_not_block_delete(db, market, storage):
    doc = document_service.upload_document(
        db, market.manager, file_name="a.txt", content_type="text/plain", data=b"x", project_id=market.project.id
    )
    storage.remove(doc.locator)

    document_service.delete_document(db, market.manager, doc.id)
    assert db.get(Document, doc.id) is None


def test_exactly_one_parent_and_size_cap(db, market, monkeypatch):
    with pytest.raises(ValidationError):
        document_service.upload_document(db, market.manager, file_name="a", content_type=None, data=b"x")

    monkeypatch.setattr(settings, "max_upload_bytes", 4)
    with pytest.raises(ValidationError):
        document_service.upload_document(
            db, market.manager, file_name="a", content_type=None, data=b"12345", project_id=market.project.id
        )


def test_bid_documents_scope(db, market, mk_user, mk_admin):
    bid = bid_service.submit_bid(
        db, market.v1, {"project_id": market.project.id, "amount": 100, "description": "a", "timeline": "1w"}
    )
    doc = document_service.upload_document(
        db, market.v1, file_name="quote.pdf", content_type="application/pdf", data=b"q", bid_id=bid.id
    )

    # manager of the project and the bid's vendor can read it; a competitor cannot
    document_service.get_document_link(db, market.manager, doc.id)
    document_service.get_document_link(db, market.v1, doc.id)
    with pytest.raises(NotFoundError):
        document_service.get_document_link(db, market.v2, doc.id)

    # only the vendor attaches to their own bid, and never through someone else's
    with pytest.raises(AuthorizationError):
        document_service.upload_document(
            db, market.manager, file_name="x", content_type=None, data=b"x", bid_id=bid.id
        )
    with pytest.raises(AuthorizationError):
        document_service.upload_document(
            db, mk_admin(), file_name="x", content_type=None, data=b"x", project_id=market.project.id
        )

    with pytest.raises(AuthorizationError):
        document_service.delete_document(db, market.manager, doc.id)


def test_deleting_project_removes_payloads(db, market, storage):
    bid = bid_service.submit_bid(
        db, market.v1, {"project_id": market.project.id, "amount": 100, "description": "a", "timeline": "1w"}
    )
    document_service.upload_document(
        db, market.manager, file_name="p.txt", content_type="text/plain", data=b"p", project_id=market.project.id
    )
    document_service.upload_document(
        db, market.v1, file_name="b.txt", content_type="text/plain", data=b"b", bid_id=bid.id
    )
    assert len(_files(storage)) == 2

    project_service.delete_project(db, market.manager, market.project.id)

    assert _files(storage) == []
    assert db.scalar(select(func.count(Document.id))) == 0
