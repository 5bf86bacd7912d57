from __future__ import annotations


def test_user_profile(client):
    r = client.get("/api/users/2")
    assert r.status_code == 200
    user = r.json()
    assert user["username"] == "traveler_jane"
    assert user["isVerified"] is True
    assert user["postCount"] == 1
    assert "email" not in user
    assert "password_hash" not in r.text


def test_unknown_user(client):
    r = client.get("/api/users/999")
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}


def test_search_users_by_username_or_name(client):
    by_name = client.get("/api/users/search", params={"q": "ADVENTURE"}).json()["users"]
    assert [u["username"] for u in by_name] == ["adventure_mike"]
    no_match = client.get("/api/users/search", params={"q": "trav jane"}).json()["users"]
    assert no_match == []
    by_display = client.get("/api/users/search", params={"q": "Jane Traveler"}).json()["users"]
    assert [u["username"] for u in by_display] == ["traveler_jane"]


def test_search_users_needs_query(client):
    r = client.get("/api/users/search")
    assert r.status_code == 400
    assert r.json() == {"error": "Search query is required"}
