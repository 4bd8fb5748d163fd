from datetime import datetime

import ai_service as ai_module
from ai_service import StructuredResult


def test_create_plan_uses_template_when_providers_unavailable(plan):
    assert plan["title"] == "Python - 1 week Study Plan"
    assert plan["status"] == "active"
    assert plan["estimated_duration"] == 7
    assert plan["generation_source"] == "template"
    assert plan["ai_generated"] is False
    assert [t["title"] for t in plan["topics"]] == ["Getting Started"]
    assert len(plan["daily_content"]) == 7
    assert plan["progress"]["total_topics"] == 1
    assert plan["progress"]["percentage"] == 0


def test_daily_content_dates_follow_start(plan):
    start = datetime.fromisoformat(plan["schedule"]["start_date"])
    for entry in plan["daily_content"]:
        date = datetime.fromisoformat(entry["date"])
        assert (date.date() - start.date()).days == entry["day"] - 1


def test_create_plan_maps_provider_days(client, auth_headers, monkeypatch):
    days = [
        {"day": 1, "title": "Variables", "objectives": ["Learn"], "keyPoints": ["names"], "overview": "Intro",
         "totalTime": 45},
        {"title": "Loops", "content": {"overview": "Repeat", "key_points": ["for"]}},
    ]
    monkeypatch.setattr(
        ai_module.ai_service, "generate_detailed_study_plan",
        lambda *args: StructuredResult(data=days, source="groq"),
    )
    resp = client.post("/api/study/plans", headers=auth_headers, json={"subject": "Python", "duration": "2 days"})
    assert resp.status_code == 201
    created = resp.json()["study_plan"]
    assert created["generation_source"] == "groq"
    assert created["ai_generated"] is True
    first, second = created["daily_content"]
    assert first["content"]["key_points"] == ["names"]
    assert first["total_time"] == 45
    assert second["day"] == 2
    assert second["content"]["overview"] == "Repeat"
    assert second["total_time"] == 90


def test_plan_validation(client, auth_headers):
    resp = client.post("/api/study/plans", headers=auth_headers, json={"subject": "", "duration": "1 week"})
    assert resp.status_code == 400
    resp = client.post("/api/study/plans", headers=auth_headers, json={"subject": "X", "level": "expert"})
    assert resp.status_code == 400


def test_plans_are_owner_scoped(client, auth_headers, other_headers, plan):
    assert len(client.get("/api/study/plans", headers=auth_headers).json()["study_plans"]) == 1
    assert client.get("/api/study/plans", headers=other_headers).json()["study_plans"] == []
    assert client.get(f"/api/study/plans/{plan['id']}", headers=other_headers).status_code == 404
    assert client.get("/api/study/plans/not-an-id", headers=auth_headers).status_code == 404


def test_update_plan_whitelists_fields(client, auth_headers, other_headers, plan):
    resp = client.put(f"/api/study/plans/{plan['id']}", headers=auth_headers,
                      json={"title": "Renamed", "status": "paused", "user_id": "someone-else"})
    assert resp.status_code == 200
    updated = resp.json()["study_plan"]
    assert updated["title"] == "Renamed"
    assert updated["status"] == "paused"
    assert updated["user_id"] == plan["user_id"]

    resp = client.put(f"/api/study/plans/{plan['id']}", headers=other_headers, json={"title": "Mine"})
    assert resp.status_code == 404


def test_delete_plan(client, auth_headers, other_headers, plan):
    assert client.delete(f"/api/study/plans/{plan['id']}", headers=other_headers).status_code == 404
    assert client.delete(f"/api/study/plans/{plan['id']}", headers=auth_headers).status_code == 200
    assert client.get(f"/api/study/plans/{plan['id']}", headers=auth_headers).status_code == 404


def test_topic_status_recomputes_progress(client, auth_headers, plan):
    topic_id = plan["topics"][0]["id"]
    resp = client.put(f"/api/study/plans/{plan['id']}/topics/{topic_id}", headers=auth_headers,
                      json={"status": "completed"})
    assert resp.status_code == 200
    updated = resp.json()["study_plan"]
    assert updated["topics"][0]["status"] == "completed"
    assert updated["topics"][0]["completed_at"] is not None
    assert updated["progress"] == {**updated["progress"], "completed_topics": 1, "total_topics": 1, "percentage": 100}

    resp = client.put(f"/api/study/plans/{plan['id']}/topics/missing", headers=auth_headers,
                      json={"status": "completed"})
    assert resp.status_code == 404


def test_topic_content_by_day_then_topic(client, auth_headers, plan):
    resp = client.get(f"/api/study/plans/{plan['id']}/topics/3/content", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["content"]["day"] == 3

    topic_id = plan["topics"][0]["id"]
    resp = client.get(f"/api/study/plans/{plan['id']}/topics/{topic_id}/content", headers=auth_headers)
    assert resp.status_code == 200
    content = resp.json()["content"]
    assert content["title"] == "Getting Started"
    assert content["total_time"] == 60

    resp = client.get(f"/api/study/plans/{plan['id']}/topics/99/content", headers=auth_headers)
    assert resp.status_code == 404


def test_generate_topic_content_falls_back_and_saves_day(client, auth_headers, mongo, plan):
    resp = client.post(f"/api/study/plans/{plan['id']}/topics/2/generate", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["fallback"] is True
    assert body["source"] == "template"
    assert body["content"]["overview"].startswith("Learn about Day 2")
    assert len(body["resources"]) == 2

    stored = mongo["studyplan"].find_one({})
    assert stored["daily_content"][1]["content"] == body["content"]


def test_next_topic(client, auth_headers, plan):
    resp = client.get(f"/api/study/plans/{plan['id']}/next-topic", headers=auth_headers)
    assert resp.json()["topic"]["title"] == "Getting Started"

    topic_id = plan["topics"][0]["id"]
    client.put(f"/api/study/plans/{plan['id']}/topics/{topic_id}", headers=auth_headers, json={"status": "completed"})
    resp = client.get(f"/api/study/plans/{plan['id']}/next-topic", headers=auth_headers)
    assert resp.json()["topic"] is None


def test_explain_concept_and_flashcards(client, auth_headers):
    resp = client.post("/api/study/explain-concept", headers=auth_headers, json={"concept": "Recursion"})
    assert resp.status_code == 200
    assert resp.json()["explanation"].startswith("# Understanding Recursion (intermediate)")

    resp = client.post("/api/study/generate-flashcards", headers=auth_headers, json={"topic": "Sets", "count": 3})
    assert resp.status_code == 200
    assert len(resp.json()["flashcards"]) == 3
    assert resp.json()["fallback"] is True


def test_study_routes_require_auth(client):
    assert client.get("/api/study/plans").status_code == 401
