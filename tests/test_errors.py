"""Tests for the global error responses."""

from fastapi.testclient import TestClient

from config import settings
from main import app
from modules.catalog.service import category_service

API = "/api/v1"


def test_unknown_route(client):
    response = client.get(f"{API}/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"status": "fail", "message": f"Can't find this route: {API}/nothing-here"}


def test_validation_error_lists_fields(client):
    response = client.post(f"{API}/auth/login", json={"email": "not-an-email"})
    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "fail"
    fields = {e["field"] for e in body["errors"]}
    assert {"email", "password"} <= fields


def test_unexpected_error_is_hidden_in_production(db, client, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(category_service, "get_all", boom)
    response = TestClient(app, raise_server_exceptions=False).get(f"{API}/categories")
    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Something went very wrong!"}


def test_unexpected_error_detail_in_development(db, client, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(category_service, "get_all", boom)
    monkeypatch.setattr(settings, "APP_ENV", "development")
    response = TestClient(app, raise_server_exceptions=False).get(f"{API}/categories")
    assert response.status_code == 500
    body = response.json()
    assert body["message"] == "database on fire"
    assert body["error"] == "RuntimeError"
    assert body["stack"]


def test_root_and_health(client):
    assert client.get("/").json() == {"message": "Welcome to the E-shop API"}
    assert client.get("/health").json()["status"] == "ok"
