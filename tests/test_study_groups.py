from datetime import datetime

import study_groups
from tests.conftest import bearer, register

BASE = "/api/study-groups"


def create_group(client, headers, **overrides):
    body = {"name": "Calculus Crew", "subject": "Math", "description": "Limits and more", "tags": ["exam"]}
    body.update(overrides)
    resp = client.post(BASE, headers=headers, json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["group"]


def test_create_group_makes_creator_admin(client, auth_headers):
    group = create_group(client, auth_headers)
    assert group["members"][0]["role"] == "admin"
    assert group["stats"] == {"total_members": 1, "active_members": 1, "total_messages": 0}
    assert "messages" not in group


def test_create_group_requires_name_and_subject(client, auth_headers):
    resp = client.post(BASE, headers=auth_headers, json={"name": "  ", "subject": "Math"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Name and subject are required"
    assert client.post(BASE, headers=auth_headers, json={"name": "X"}).status_code == 400


def test_list_filters(client, auth_headers, other_headers):
    create_group(client, auth_headers)
    create_group(client, auth_headers, name="Cell Biology", subject="Biology", description="", tags=["lab"])
    create_group(client, auth_headers, name="Secret", subject="Math", settings={"is_private": True})

    names = [g["name"] for g in client.get(BASE, headers=other_headers).json()["groups"]]
    assert names == ["Cell Biology", "Calculus Crew"]

    names = [g["name"] for g in client.get(BASE, headers=auth_headers).json()["groups"]]
    assert names == ["Secret", "Cell Biology", "Calculus Crew"]

    groups = client.get(BASE, params={"subject": "math", "is_private": False}, headers=other_headers).json()["groups"]
    assert [g["name"] for g in groups] == ["Calculus Crew"]

    groups = client.get(BASE, params={"search": "lab"}, headers=other_headers).json()["groups"]
    assert [g["name"] for g in groups] == ["Cell Biology"]

    groups = client.get(BASE, params={"search": "limits"}, headers=other_headers).json()["groups"]
    assert [g["name"] for g in groups] == ["Calculus Crew"]


def test_join_leave_and_my_groups(client, auth_headers, other_headers):
    group = create_group(client, auth_headers)
    url = f"{BASE}/{group['id']}"

    resp = client.post(f"{url}/join", headers=other_headers)
    assert resp.status_code == 200
    assert resp.json()["group"]["stats"]["total_members"] == 2
    assert client.post(f"{url}/join", headers=other_headers).status_code == 400

    assert len(client.get(f"{BASE}/my-groups", headers=other_headers).json()["groups"]) == 1

    assert client.post(f"{url}/leave", headers=other_headers).status_code == 200
    assert client.post(f"{url}/leave", headers=other_headers).status_code == 400
    assert client.get(f"{BASE}/my-groups", headers=other_headers).json()["groups"] == []

    resp = client.post(f"{url}/leave", headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Group creator cannot leave")


def test_join_rejects_full_and_private_groups(client, auth_headers, other_headers):
    full = create_group(client, auth_headers, settings={"max_members": 2})
    client.post(f"{BASE}/{full['id']}/join", headers=other_headers)
    third = bearer(register(client, "carol")["token"])
    resp = client.post(f"{BASE}/{full['id']}/join", headers=third)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Study group is full"

    private = create_group(client, auth_headers, name="Hidden", settings={"is_private": True})
    assert client.post(f"{BASE}/{private['id']}/join", headers=other_headers).status_code == 403
    assert client.get(f"{BASE}/{private['id']}", headers=other_headers).status_code == 403


def test_update_and_delete_permissions(client, auth_headers, other_headers):
    group = create_group(client, auth_headers)
    url = f"{BASE}/{group['id']}"
    client.post(f"{url}/join", headers=other_headers)

    assert client.put(url, headers=other_headers, json={"name": "Hijacked"}).status_code == 403
    resp = client.put(url, headers=auth_headers, json={"name": "Calculus II"})
    assert resp.status_code == 200
    assert resp.json()["group"]["name"] == "Calculus II"

    assert client.delete(url, headers=other_headers).status_code == 403
    assert client.delete(url, headers=auth_headers).status_code == 200
    assert client.get(url, headers=auth_headers).status_code == 404


def test_messages_are_members_only(client, auth_headers, other_headers):
    group = create_group(client, auth_headers)
    url = f"{BASE}/{group['id']}/messages"

    assert client.post(url, headers=other_headers, json={"content": "hi"}).status_code == 403
    assert client.get(url, headers=other_headers).status_code == 403

    for text in ("one", "two", "three"):
        assert client.post(url, headers=auth_headers, json={"content": text}).status_code == 201

    messages = client.get(url, params={"limit": 2}, headers=auth_headers).json()["messages"]
    assert [m["content"] for m in messages] == ["two", "three"]

    group = client.get(f"{BASE}/{group['id']}", headers=auth_headers).json()["group"]
    assert group["stats"]["total_messages"] == 3


def test_messages_before_filter(client, auth_headers, mongo):
    group = create_group(client, auth_headers)
    url = f"{BASE}/{group['id']}/messages"
    client.post(url, headers=auth_headers, json={"content": "old"})
    mongo["studygroup"].update_one({}, {"$set": {"messages.0.created_at": datetime(2020, 1, 1)}})
    client.post(url, headers=auth_headers, json={"content": "new"})

    messages = client.get(url, params={"before": "2021-01-01T00:00:00"}, headers=auth_headers).json()["messages"]
    assert [m["content"] for m in messages] == ["old"]


def test_private_filter_hides_groups_from_non_members(client, auth_headers, other_headers):
    create_group(client, auth_headers)
    create_group(client, auth_headers, name="Secret", settings={"is_private": True})

    params = {"is_private": True}
    assert client.get(BASE, params=params, headers=other_headers).json()["groups"] == []
    groups = client.get(BASE, params=params, headers=auth_headers).json()["groups"]
    assert [g["name"] for g in groups] == ["Secret"]


def test_list_is_capped(client, auth_headers, monkeypatch):
    monkeypatch.setattr(study_groups, "GROUP_LIST_LIMIT", 2)
    for name in ("First", "Second", "Third"):
        create_group(client, auth_headers, name=name)

    groups = client.get(BASE, headers=auth_headers).json()["groups"]
    assert [g["name"] for g in groups] == ["Third", "Second"]


def test_update_merges_settings(client, auth_headers, other_headers):
    group = create_group(client, auth_headers, settings={"max_members": 5})
    url = f"{BASE}/{group['id']}"

    resp = client.put(url, headers=auth_headers, json={"settings": {"require_approval": True}})
    assert resp.status_code == 200
    assert resp.json()["group"]["settings"] == {"max_members": 5, "is_private": False, "require_approval": True}

    client.post(f"{url}/join", headers=other_headers)
    third = bearer(register(client, "carol")["token"])
    client.post(f"{url}/join", headers=third)
    resp = client.put(url, headers=auth_headers, json={"settings": {"max_members": 2}})
    assert resp.status_code == 400
    assert resp.json()["message"] == "max_members cannot be below the current member count"

    resp = client.put(url, headers=auth_headers, json={"settings": {"is_private": True}})
    assert resp.json()["group"]["settings"]["max_members"] == 5
    assert resp.json()["group"]["settings"]["require_approval"] is True
