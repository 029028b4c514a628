# backend/app/routers/documents.py
from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..config import settings
from ..db import get_db
from ..domain.errors import NotFoundError
from ..models import Document
from ..schemas import DocumentLinkOut, DocumentOut, OkOut
from ..services import document_service as svc
from ..services.storage import LocalObjectStorage, get_storage, safe_file_name

router = APIRouter(prefix="/documents", tags=["documents"])


def _disposition(file_name: str) -> str:
    # header values are latin-1; the real name travels RFC 5987 encoded
    return f"attachment; filename=\"{safe_file_name(file_name)}\"; filename*=UTF-8''{quote(file_name, safe='')}"


@router.post("/upload", response_model=DocumentOut, status_code=201)
def upload(
    file: UploadFile = File(...),
    project_id: Optional[int] = Form(default=None),
    bid_id: Optional[int] = Form(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    # read one byte past the cap so oversize files are rejected without buffering them whole
    data = file.file.read(int(settings.max_upload_bytes) + 1)
    return svc.upload_document(
        db,
        p,
        file_name=file.filename or "file",
        content_type=file.content_type,
        data=data,
        project_id=project_id,
        bid_id=bid_id,
    )


@router.get("/blob/{token}")
def blob(token: str, db: Session = Depends(get_db), storage=Depends(get_storage)):
    """
    Serves payloads for the local backend. The signed token is the capability;
    MinIO deployments hand out presigned URLs instead and never hit this route.
    """
    if not isinstance(storage, LocalObjectStorage):
        raise NotFoundError("not found")

    locator = storage.resolve_link_token(token)
    doc = db.scalar(select(Document).where(Document.locator == locator))
    if doc is None:
        raise NotFoundError("document not found")

    return Response(
        content=storage.read(locator),
        media_type=doc.mime_type,
        headers={"Content-Disposition": _disposition(doc.file_name)},
    )


@router.get("/{document_id}", response_model=DocumentLinkOut)
def get_document(document_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    doc, url, expires_at = svc.get_document_link(db, p, document_id)
    out = DocumentOut.model_validate(doc, from_attributes=True).model_dump()
    return {**out, "url": url, "expires_at": expires_at}


@router.delete("/{document_id}", response_model=OkOut)
def delete_document(document_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    svc.delete_document(db, p, document_id)
    return {"ok": True}
