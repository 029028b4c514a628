# backend/tests/conftest.py
from __future__ import annotations

import itertools
import os
import tempfile
from types import SimpleNamespace

# settings are read at import time; point them at a throwaway sqlite file first
_TMP = tempfile.mkdtemp(prefix="bidding-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["APP_ENV"] = "test"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["REALTIME_BACKEND"] = "memory"
os.environ["NOTIFY_DISPATCH"] = "inline"

import pytest
from fastapi.testclient import TestClient

from app.auth import Principal
from app.db import Base, SessionLocal, engine
from app.models import Role
from app.services import project_service, property_service
from app.services.identity_service import register_user
from app.services.realtime import InMemoryPublisher, set_publisher
from app.services.storage import LocalObjectStorage, set_storage

_seq = itertools.count(1)


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def publisher():
    pub = InMemoryPublisher()
    set_publisher(pub)
    return pub


@pytest.fixture(autouse=True)
def storage(tmp_path):
    st = LocalObjectStorage(str(tmp_path / "blobs"), base_url="http://testserver", secret="test-secret")
    set_storage(st)
    return st


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def mk_user(db):
    """mk_user(role) -> (Principal, token)"""

    def _mk(role: Role, *, first: str = "Test", last: str = "User") -> tuple[Principal, str]:
        n = next(_seq)
        user, token = register_user(
            db,
            email=f"{role.value.lower()}{n}@test.local",
            password="secret-pass",
            first_name=first,
            last_name=f"{last}{n}",
            role=role.value,
        )
        return Principal(user_id=int(user.id), email=user.email, role=user.role), token

    return _mk


@pytest.fixture
def mk_admin(db):
    # admins are never self-registered
    from app.models import User

    def _mk() -> Principal:
        n = next(_seq)
        u = User(email=f"admin{n}@test.local", first_name="Ada", last_name="Admin", role=Role.ADMIN.value)
        db.add(u)
        db.commit()
        db.refresh(u)
        return Principal(user_id=int(u.id), email=u.email, role=u.role)

    return _mk


@pytest.fixture
def market(db, mk_user):
    """Manager with "Oak Tower" / "Roof Repair" (OPEN) and two vendors who have not bid yet."""
    manager, manager_token = mk_user(Role.PROPERTY_MANAGER, first="Morgan")
    v1, v1_token = mk_user(Role.VENDOR, first="Val")
    v2, v2_token = mk_user(Role.VENDOR, first="Vic")

    prop = property_service.create_property(
        db,
        manager,
        {"name": "Oak Tower", "address": "100 Oak St", "city": "Springfield", "state": "IL", "zip_code": "62701"},
    )
    project = project_service.create_project(
        db,
        manager,
        {"property_id": prop.id, "title": "Roof Repair", "description": "Fix the roof", "type": "MAINTENANCE"},
    )
    return SimpleNamespace(
        manager=manager,
        v1=v1,
        v2=v2,
        tokens={"manager": manager_token, "v1": v1_token, "v2": v2_token},
        property=prop,
        project=project,
    )


@pytest.fixture
def client():
    from app.main import create_app

    with TestClient(create_app()) as c:
        yield c


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def bearer():
    return auth
