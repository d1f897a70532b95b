"""Tests for the HTTP auth bridge"""

import pytest
from fastapi.testclient import TestClient

from fintrack.utils.config import Settings, StorageSettings
from web.app import create_app


@pytest.fixture
def client(auth_service, data_dir):
    settings = Settings(storage=StorageSettings(data_dir=data_dir))
    app = create_app(settings=settings, auth_service=auth_service)
    with TestClient(app) as c:
        yield c


def register(client, email="ana@example.com", password="longenough1", name="Ana"):
    return client.post(
        "/auth/register", data={"name": name, "email": email, "password": password}
    )


def test_register_and_session(client):
    res = register(client)
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["success"] is True
    assert body["session"]["email"] == "ana@example.com"
    assert "password" not in str(body)

    res_session = client.get("/auth/session")
    assert res_session.status_code == 200
    assert res_session.json()["session"]["id"] == body["session"]["id"]


def test_duplicate_register_conflicts(client):
    assert register(client).status_code == 201
    res = register(client, email="ANA@example.com")
    assert res.status_code == 409
    assert res.json()["error_code"] == "duplicate_email"


def test_register_validation(client):
    res = register(client, password="short")
    assert res.status_code == 400
    assert res.json()["error_code"] == "validation_error"


def test_login_and_logout(client):
    register(client)
    client.post("/auth/logout")
    assert client.get("/auth/session").status_code == 401

    bad = client.post("/auth/login", data={"email": "ana@example.com", "password": "nope-nope"})
    assert bad.status_code == 401
    assert bad.json()["message"] == "Invalid email or password"

    ok = client.post("/auth/login", data={"email": "ANA@example.com", "password": "longenough1"})
    assert ok.status_code == 200
    assert ok.json()["session"]["email"] == "ana@example.com"

    out = client.post("/auth/logout")
    assert out.status_code == 200
    assert client.post("/auth/logout").status_code == 200


def test_restore_endpoint(client):
    assert client.post("/auth/restore").status_code == 401
    register(client)
    res = client.post("/auth/restore")
    assert res.status_code == 200
    assert res.json()["session"]["name"] == "Ana"


def test_health(client):
    register(client)
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    assert body["users"] == 1
    assert body["auth_state"] == "authenticated"
