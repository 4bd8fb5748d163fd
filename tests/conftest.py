import os

# Provider keys are blanked before any app module reads its configuration,
# so every generation request takes the template path.
for _key in ("GROQ_API_KEY", "GEMINI_API_KEY", "OPENAI_API_KEY"):
    os.environ[_key] = ""
os.environ["JWT_SECRET"] = "test-secret"

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app


@pytest.fixture
def mongo(monkeypatch):
    db = mongomock.MongoClient()["edumate_test"]
    monkeypatch.setattr(database, "db", db)
    database.ensure_indexes()
    return db


@pytest.fixture
def client(mongo):
    return TestClient(app)


def register(client, username="alice", email=None, password="secret123"):
    resp = client.post("/api/auth/register", json={
        "username": username,
        "first_name": username.title(),
        "last_name": "Tester",
        "email": email or f"{username}@example.com",
        "password": password,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(client):
    return bearer(register(client)["token"])


@pytest.fixture
def other_headers(client):
    return bearer(register(client, "bob")["token"])


@pytest.fixture
def plan(client, auth_headers):
    resp = client.post("/api/study/plans", headers=auth_headers, json={
        "subject": "Python",
        "level": "beginner",
        "duration": "1 week",
        "learning_style": "visual",
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["study_plan"]
