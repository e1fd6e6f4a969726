"""
Tests for the cover letter template library.
"""

import pytest


@pytest.fixture
def shared_template(app):
    db = app.extensions["ats_db"]
    with db.connection() as conn:
        return conn.insert(
            "INSERT INTO cover_letter_templates (user_id, name, industry, category, content, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (None, "Classic", "General", "Formal", "Dear Hiring Manager,", "2000-01-01T00:00:00+00:00"),
        )


def _create(client, user, **overrides):
    payload = {"name": "Startup pitch", "industry": "Technology", "content": "  Hi there  "}
    payload.update(overrides)
    response = client.post("/api/cover-letter/templates", json=payload, headers=user["headers"])
    assert response.status_code == 201, response.get_json()
    return response.get_json()["template"]


def _names(client, user):
    templates = client.get("/api/cover-letter/templates", headers=user["headers"]).get_json()["templates"]
    return [t["name"] for t in templates]


def test_create_template(client, user):
    template = _create(client, user)

    assert template["category"] == "Formal"
    assert template["content"] == "Hi there"
    assert template["is_custom"] is True
    assert (template["view_count"], template["use_count"]) == (0, 0)


@pytest.mark.parametrize("missing", ["name", "industry", "content"])
def test_create_requires_name_industry_content(client, user, missing):
    payload = {"name": "A", "industry": "B", "content": "C", missing: "  "}
    response = client.post("/api/cover-letter/templates", json=payload, headers=user["headers"])

    assert response.status_code == 400
    assert response.get_json()["error"] == "Name, industry, and content are required."
    assert _names(client, user) == []


def test_list_shows_shared_and_own_templates(client, make_user, shared_template):
    alice, bob = make_user(), make_user()
    _create(client, alice, name="Alice's")

    assert _names(client, alice) == ["Alice's", "Classic"]
    assert _names(client, bob) == ["Classic"]

    templates = client.get("/api/cover-letter/templates", headers=bob["headers"]).get_json()["templates"]
    assert templates[0]["is_custom"] is False


def test_track_view_and_use(client, user, shared_template):
    _create(client, user)
    url = f"/api/cover-letter/templates/{shared_template}"

    client.post(f"{url}/track-view", headers=user["headers"])
    response = client.post(f"{url}/track-view", headers=user["headers"])
    assert response.status_code == 200
    assert response.get_json()["ok"] is True
    client.post(f"{url}/track-use", headers=user["headers"])

    template = client.get(url, headers=user["headers"]).get_json()["template"]
    assert (template["view_count"], template["use_count"]) == (2, 1)
    # Tracking touches the template, so it sorts first
    assert _names(client, user)[0] == "Classic"


def test_other_users_templates_cannot_be_seen_or_tracked(client, make_user):
    alice, bob = make_user(), make_user()
    template = _create(client, alice)
    url = f"/api/cover-letter/templates/{template['id']}"

    assert client.get(url, headers=bob["headers"]).status_code == 404
    assert client.post(f"{url}/track-view", headers=bob["headers"]).status_code == 404
    assert client.post(f"{url}/track-use", headers=bob["headers"]).status_code == 404

    mine = client.get(url, headers=alice["headers"]).get_json()["template"]
    assert mine["view_count"] == 0


def test_track_unknown_template(client, user):
    response = client.post("/api/cover-letter/templates/999/track-use", headers=user["headers"])
    assert response.status_code == 404
    assert response.get_json() == {"error": "Template not found", "code": "NOT_FOUND"}
