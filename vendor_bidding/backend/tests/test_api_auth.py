# backend/tests/test_api_auth.py
from __future__ import annotations


def _register(client, email="pm@test.local", role="PROPERTY_MANAGER", password="secret-pass"):
    return client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "first_name": "Pat", "last_name": "Manager", "role": role},
    )


def test_register_login_me(client, bearer):
    r = _register(client)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["user"]["role"] == "PROPERTY_MANAGER"
    assert "password_hash" not in body["user"]

    r = client.post("/api/auth/login", json={"email": "PM@test.local", "password": "secret-pass"})
    assert r.status_code == 200
    token = r.json()["token"]

    me = client.get("/api/auth/me", headers=bearer(token))
    assert me.status_code == 200
    assert me.json()["email"] == "pm@test.local"


def test_register_errors(client):
    assert _register(client).status_code == 201

    dup = _register(client)
    assert dup.status_code == 409
    assert dup.json()["error"] == "conflict"

    short = _register(client, email="x@test.local", password="123")
    assert short.status_code == 400
    assert short.json()["error"] == "validation_error"

    admin = _register(client, email="y@test.local", role="ADMIN")
    assert admin.status_code == 400


def test_bad_credentials_and_tokens(client, bearer):
    _register(client)

    r = client.post("/api/auth/login", json={"email": "pm@test.local", "password": "wrong-pass"})
    assert r.status_code == 401
    assert r.json() == {"error": "not_authenticated", "detail": "invalid credentials"}

    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers=bearer("not-a-jwt")).status_code == 401


def test_profile_update_cannot_change_role(client, bearer):
    token = _register(client, role="VENDOR").json()["token"]

    r = client.put("/api/users/profile", json={"company": "Acme Roofing", "phone": "555-0100"}, headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["company"] == "Acme Roofing"

    r = client.put("/api/users/profile", json={"role": "ADMIN"}, headers=bearer(token))
    assert r.status_code == 422
    assert client.get("/api/users/profile", headers=bearer(token)).json()["role"] == "VENDOR"


def test_request_id_is_echoed(client):
    r = client.get("/api/health", headers={"X-Request-ID": "abc123"})
    assert r.status_code == 200
    assert r.headers["X-Request-ID"] == "abc123"
    assert client.get("/api/health").headers["X-Request-ID"]
