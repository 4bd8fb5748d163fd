import mongomock
from fastapi.testclient import TestClient

import database
import progress
from main import app


def test_root_and_health(client):
    assert client.get("/").json() == {"message": "EduMate Backend Running"}
    body = client.get("/api/health").json()
    assert body["status"] == "OK"
    assert body["timestamp"]


def test_database_diagnostics(client, mongo):
    mongo["user"].insert_one({"username": "x"})
    body = client.get("/test").json()
    assert body["backend"] == "✅ Running"
    assert body["database"] == "✅ Connected & Working"
    assert "user" in body["collections"]


def test_unknown_route_uses_error_shape(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_unexpected_errors_become_500(mongo, auth_headers, monkeypatch):
    def explode(user_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(progress, "user_stats", explode)
    client = TestClient(app, raise_server_exceptions=False)
    resp = client.get("/api/study/progress/stats", headers=auth_headers)
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Internal server error"}


def test_startup_creates_user_indexes(monkeypatch):
    db = mongomock.MongoClient()["edumate_startup"]
    monkeypatch.setattr(database, "db", db)
    with TestClient(app) as client:
        assert client.get("/api/health").status_code == 200
    keys = [index["key"] for index in db["user"].index_information().values()]
    assert [("username", 1)] in keys
    assert [("email", 1)] in keys


def test_startup_survives_missing_database(monkeypatch):
    monkeypatch.setattr(database, "db", None)
    with TestClient(app) as client:
        assert client.get("/").status_code == 200
