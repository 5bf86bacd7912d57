from __future__ import annotations

import logging
import re
from functools import partial

import pytest

import tourismcam.core.runtime as runtime
from tourismcam.core.routes import SESSION_COOKIE, TOKEN_COOKIE
from tourismcam.core.security import SESSION_PREFIX, TOKEN_PREFIX, verify_password


def test_health(client):
    r = client.get("/api/auth/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_healthz_reports_store(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "redis": {"connected": True}}


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "new@example.com", "password": "secret1", "name": "Al"},
        {"email": "x@y.io", "password": "123456", "name": "Some One", "phone": "+237 (6) 12-34"},
        {"email": "  spaced@example.org", "password": "longer password", "name": "  Bea  "},
    ],
)
def test_register_returns_public_user(client, payload):
    r = client.post("/api/auth/register", json=payload)
    assert r.status_code == 201
    body = r.json()
    user = body["user"]
    assert set(user) == {"id", "email", "name"}
    assert user["email"] == payload["email"].strip()
    assert user["name"] == payload["name"].strip()
    assert "password" not in r.text
    assert "Please verify your email" in body["message"]


@pytest.mark.parametrize(
    "payload,message",
    [
        ({"email": "not-an-email", "password": "secret1", "name": "Al"}, "Please enter a valid email address"),
        ({"email": "a@b.co", "password": "12345", "name": "Al"}, "Password must be at least 6 characters long"),
        ({"email": "a@b.co", "password": "secret1", "name": "A"}, "Name must be at least 2 characters long"),
        ({"email": "a@b.co", "password": "secret1", "name": "   "}, "Name is required and cannot be empty"),
        ({"email": "a@b.co", "password": "secret1", "name": "Al", "phone": "call me"}, "Please enter a valid phone number"),
        ({"email": "a@b.co", "password": "secret1"}, "Email, password, and name are required"),
        ({"email": "", "password": "secret1", "name": "Al"}, "Email, password, and name are required"),
        ({"name": "Al"}, "Email, password, and name are required"),
    ],
)
def test_register_validation(client, payload, message):
    r = client.post("/api/auth/register", json=payload)
    assert r.status_code == 400
    assert r.json() == {"error": message}


def test_register_duplicate_email(client):
    r = client.post("/api/auth/register", json={"email": "DEMO@example.com", "password": "secret1", "name": "Dupe"})
    assert r.status_code == 409
    assert r.json() == {"error": "An account with this email already exists"}


def test_login_demo_user(client):
    r = client.post("/api/auth/login", json={"email": "demo@example.com", "password": "password123"})
    assert r.status_code == 200
    body = r.json()
    assert body["token"].startswith(TOKEN_PREFIX)
    assert body["sessionId"].startswith(SESSION_PREFIX)
    assert body["user"]["email"] == "demo@example.com"
    assert body["user"]["name"] == "Demo User"
    assert "password_hash" not in r.text
    assert r.cookies.get(TOKEN_COOKIE) == body["token"]
    assert r.cookies.get(SESSION_COOKIE) == body["sessionId"]


@pytest.mark.parametrize(
    "email,password",
    [
        ("demo@example.com", "wrong-password"),
        ("nobody@example.com", "password123"),
        ("jane@example.com", "nope-nope"),
        ("jane@example.com", "password123"),
        ("mike@example.com", "password123"),
        ("DEMO@example.com", "password123 "),
    ],
)
def test_login_rejects_other_credentials(client, email, password):
    r = client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid email or password"}


def test_registered_user_cannot_log_in(client):
    client.post("/api/auth/register", json={"email": "fresh@example.com", "password": "secret1", "name": "Fresh"})
    r = client.post("/api/auth/login", json={"email": "fresh@example.com", "password": "secret1"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid email or password"}


def test_demo_login_ignores_email_case(login_as):
    assert login_as("  Demo@Example.com ", "password123")["user"]["username"] == "demo_user"


def test_me_requires_header(client):
    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json() == {"error": "Authorization token is required"}


@pytest.mark.parametrize("token", ["garbage", "mock_jwt_token_unknown"])
def test_me_rejects_bad_tokens(client, token):
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid or expired token"}


def test_me_returns_session_user(client, auth_headers):
    r = client.get("/api/auth/me", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["user"]["username"] == "demo_user"


def test_update_profile_then_me(client, auth_headers):
    r = client.put(
        "/api/auth/profile",
        headers=auth_headers,
        json={"name": "Demo Renamed", "phone": "+237 600 000", "bio": "Hiking Mount Cameroon"},
    )
    assert r.status_code == 200
    me = client.get("/api/auth/me", headers=auth_headers).json()["user"]
    assert me["name"] == "Demo Renamed"
    assert me["phone"] == "+237 600 000"
    assert me["bio"] == "Hiking Mount Cameroon"


def test_update_profile_bio_limit(client, auth_headers):
    r = client.put("/api/auth/profile", headers=auth_headers, json={"name": "Demo", "bio": "x" * 501})
    assert r.status_code == 400
    assert r.json() == {"error": "Bio cannot exceed 500 characters"}


def test_update_profile_keeps_omitted_fields(client, auth_headers):
    before = client.get("/api/auth/me", headers=auth_headers).json()["user"]
    r = client.put("/api/auth/profile", headers=auth_headers, json={"name": "Demo"})
    assert r.status_code == 200
    after = client.get("/api/auth/me", headers=auth_headers).json()["user"]
    assert after["name"] == "Demo"
    assert after["phone"] == before["phone"] == "+1234567890"
    assert after["bio"] == before["bio"]
    assert after["bio"].startswith("🌍 Travel enthusiast")


def test_logout_invalidates_token(client, login_as):
    body = login_as()
    headers = body["headers"]
    r = client.post("/api/auth/logout", headers=headers, json={"sessionId": body["sessionId"]})
    assert r.status_code == 200
    assert r.json() == {"message": "Logout successful"}
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_logout_requires_session_id(client, auth_headers):
    r = client.post("/api/auth/logout", headers=auth_headers, json={})
    assert r.status_code == 400
    assert r.json() == {"error": "Session ID is required"}


def test_password_reset_flow(client, caplog):
    caplog.set_level(logging.INFO, logger="tourismcam.api.v1.endpoints.auth")
    r = client.post("/api/auth/password/reset-request", json={"email": "jane@example.com"})
    assert r.status_code == 200
    match = re.search(r"Password reset for user (\S+): secret=(\S+)", caplog.text)
    assert match is not None
    user_id, secret = match.groups()

    mismatch = client.post(
        "/api/auth/password/reset-complete",
        json={"userId": user_id, "secret": secret, "password": "newpass1", "passwordAgain": "newpass2"},
    )
    assert mismatch.status_code == 400
    assert mismatch.json() == {"error": "Passwords do not match"}

    done = client.post(
        "/api/auth/password/reset-complete",
        json={"userId": user_id, "secret": secret, "password": "newpass1", "passwordAgain": "newpass1"},
    )
    assert done.status_code == 200
    jane = client.portal.call(partial(runtime.repository.get_user_by_id, user_id))
    assert verify_password("newpass1", jane["password_hash"])
    assert client.post("/api/auth/login", json={"email": "jane@example.com", "password": "newpass1"}).status_code == 401

    replay = client.post(
        "/api/auth/password/reset-complete",
        json={"userId": user_id, "secret": secret, "password": "newpass1", "passwordAgain": "newpass1"},
    )
    assert replay.status_code == 400


def test_password_reset_unknown_email_looks_the_same(client):
    r = client.post("/api/auth/password/reset-request", json={"email": "ghost@example.com"})
    assert r.status_code == 200
    assert r.json() == {"message": "Password reset email sent"}


def test_email_verification(client, session_for, caplog):
    caplog.set_level(logging.INFO, logger="tourismcam.api.v1.endpoints.auth")
    client.post("/api/auth/register", json={"email": "verify@example.com", "password": "secret1", "name": "Vera"})
    user_id, secret = re.search(r"Email verification for user (\S+): secret=(\S+)", caplog.text).groups()

    assert client.post("/api/auth/email/verify", json={"userId": user_id, "secret": "wrong"}).status_code == 400
    r = client.post("/api/auth/email/verify", json={"userId": user_id, "secret": secret})
    assert r.status_code == 200
    headers = session_for(user_id)
    assert client.get("/api/auth/me", headers=headers).json()["user"]["isVerified"] is True
