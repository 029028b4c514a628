# backend/app/services/storage.py
"""
Object storage for document payloads.

Interface (both backends):
    put(locator, data, content_type)
    remove(locator)
    exists(locator) -> bool
    create_temporary_access_link(locator, ttl_seconds) -> url

A locator is an opaque key, never a public URL. Callers hand out only the
temporary link.
"""
from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timedelta
from io import BytesIO
from pathlib import Path
from typing import Optional

import jwt  # PyJWT, signs local download links
from minio import Minio
from minio.error import S3Error

from ..config import settings
from ..domain.errors import DependencyError, NotFoundError

log = logging.getLogger("bidding.storage")

_SAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


def safe_file_name(name: str) -> str:
    base = Path(name or "file").name
    cleaned = _SAFE_NAME.sub("_", base).strip("._") or "file"
    return cleaned[:120]


def make_locator(*, uploader_id: int, parent_kind: str, parent_id: int, file_name: str) -> str:
    """{uploader}/{project|bid}-{id}/{uuid}-{name}: unique, scoped under the uploader."""
    return f"{int(uploader_id)}/{parent_kind}-{int(parent_id)}/{uuid.uuid4().hex}-{safe_file_name(file_name)}"


class LocalObjectStorage:
    """
    Filesystem backend for local runs and tests. Temporary links point at
    /api/documents/blob/{token}; the token is a short-lived signed JWT naming
    the locator.
    """

    def __init__(self, root: str, *, base_url: str, secret: str) -> None:
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")
        self._secret = secret

    def _path(self, locator: str) -> Path:
        p = (self.root / locator).resolve()
        if self.root not in p.parents:
            raise NotFoundError("object not found")
        return p

    def put(self, locator: str, data: bytes, content_type: str) -> None:
        p = self._path(locator)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(data)
        except OSError as e:
            raise DependencyError(f"storage write failed: {e}") from e

    def remove(self, locator: str) -> None:
        p = self._path(locator)
        if not p.exists():
            raise NotFoundError("object not found")
        try:
            p.unlink()
        except OSError as e:
            raise DependencyError(f"storage delete failed: {e}") from e

    def exists(self, locator: str) -> bool:
        return self._path(locator).is_file()

    def read(self, locator: str) -> bytes:
        p = self._path(locator)
        if not p.is_file():
            raise NotFoundError("object not found")
        return p.read_bytes()

    def create_temporary_access_link(self, locator: str, ttl_seconds: int) -> str:
        exp = datetime.utcnow() + timedelta(seconds=int(ttl_seconds))
        token = jwt.encode({"loc": locator, "exp": int(exp.timestamp())}, self._secret, algorithm="HS256")
        return f"{self.base_url}/api/documents/blob/{token}"

    def resolve_link_token(self, token: str) -> str:
        try:
            claims = jwt.decode(token, self._secret, algorithms=["HS256"])
        except jwt.InvalidTokenError:
            # expired or tampered links look the same as missing objects
            raise NotFoundError("link expired or invalid")
        return str(claims.get("loc") or "")


class MinioObjectStorage:
    def __init__(self, *, endpoint: str, access_key: str, secret_key: str, secure: bool, bucket: str) -> None:
        self.endpoint = endpoint
        self.bucket = bucket
        self._access_key = access_key
        self._secret_key = secret_key
        self._secure = secure
        self._client: Optional[Minio] = None
        self._bucket_ready = False

    @property
    def client(self) -> Minio:
        if self._client is None:
            self._client = Minio(
                endpoint=self.endpoint,
                access_key=self._access_key,
                secret_key=self._secret_key,
                secure=self._secure,
            )
            log.info(f"MinIO client initialized (endpoint={self.endpoint}, secure={self._secure})")
        return self._client

    def _ensure_bucket(self) -> None:
        if self._bucket_ready:
            return
        if not self.client.bucket_exists(self.bucket):
            self.client.make_bucket(self.bucket)
        self._bucket_ready = True

    def put(self, locator: str, data: bytes, content_type: str) -> None:
        try:
            self._ensure_bucket()
            self.client.put_object(self.bucket, locator, BytesIO(data), length=len(data), content_type=content_type)
        except S3Error as e:
            raise DependencyError(f"storage write failed: {e.code}") from e

    def remove(self, locator: str) -> None:
        try:
            self.client.remove_object(self.bucket, locator)
        except S3Error as e:
            raise DependencyError(f"storage delete failed: {e.code}") from e

    def exists(self, locator: str) -> bool:
        try:
            self.client.stat_object(self.bucket, locator)
            return True
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject", "NoSuchBucket"):
                return False
            raise DependencyError(f"storage stat failed: {e.code}") from e

    def create_temporary_access_link(self, locator: str, ttl_seconds: int) -> str:
        try:
            return self.client.presigned_get_object(self.bucket, locator, expires=timedelta(seconds=int(ttl_seconds)))
        except S3Error as e:
            raise DependencyError(f"presign failed: {e.code}") from e


_storage = None


def _build_storage():
    backend = (settings.storage_backend or "local").strip().lower()
    if backend == "minio":
        return MinioObjectStorage(
            endpoint=settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_secure,
            bucket=settings.minio_bucket,
        )
    if backend == "local":
        return LocalObjectStorage(
            settings.local_storage_dir,
            base_url=settings.public_base_url,
            secret=settings.jwt_secret,
        )
    raise ValueError(f"unknown storage_backend: {backend}")


def get_storage():
    """FastAPI dependency / shared accessor."""
    global _storage
    if _storage is None:
        _storage = _build_storage()
    return _storage


def set_storage(storage) -> None:
    global _storage
    _storage = storage
