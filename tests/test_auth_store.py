from __future__ import annotations

import json

import httpx
import pytest

from tourismcam.client.guards import ProtectedRoute
from tourismcam.client.http import AuthSession
from tourismcam.client.services.auth import AuthService
from tourismcam.client.storage import CredentialStore, MemoryStorage
from tourismcam.client.stores.auth import AuthStore


pytestmark = pytest.mark.anyio

BASE = "http://testserver/api"


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(asgi_transport, storage) -> AuthStore:
    service = AuthService(AuthSession(), base_url=BASE, transport=asgi_transport)
    return AuthStore(service, storage)


async def test_login_success(store, storage):
    assert store.state.status == "anonymous"
    assert await store.login("demo@example.com", "password123") is True
    state = store.state
    assert state.status == "authenticated"
    assert state.user["username"] == "demo_user"
    assert state.token.startswith("mock_jwt_token_")
    assert state.session_id.startswith("session_")
    assert store.service.session.credentials.token == state.token

    persisted = json.loads(storage.get_item("auth-storage"))
    assert persisted["version"] == 0
    assert persisted["state"]["isAuthenticated"] is True
    assert persisted["state"]["user"]["email"] == "demo@example.com"
    assert state.token not in storage.get_item("auth-storage")


async def test_login_failure(store):
    assert await store.login("demo@example.com", "nope") is False
    assert store.state.status == "error"
    assert store.state.error == "Invalid email or password"
    store.clear_error()
    assert store.state.status == "anonymous"


async def test_rehydrate_restores_identity_only(store, storage, asgi_transport):
    await store.login("demo@example.com", "password123")
    reloaded = AuthStore(AuthService(AuthSession(), base_url=BASE, transport=asgi_transport), storage)
    reloaded.rehydrate()
    assert reloaded.state.is_authenticated is True
    assert reloaded.state.user["username"] == "demo_user"
    assert reloaded.state.token is None


async def test_reload_keeps_session_from_shared_storage(asgi_transport, storage):
    service = AuthService(AuthSession(CredentialStore(storage)), base_url=BASE, transport=asgi_transport)
    first = AuthStore(service, storage)
    assert await first.login("demo@example.com", "password123") is True

    session = AuthSession(CredentialStore(storage))
    reloaded = AuthStore(AuthService(session, base_url=BASE, transport=asgi_transport), storage)
    reloaded.rehydrate()
    await reloaded.check_auth_status()
    assert reloaded.state.status == "authenticated"
    assert reloaded.state.user["username"] == "demo_user"
    assert session.credentials.token == first.state.token

    await reloaded.logout()
    assert CredentialStore(storage).token is None


async def test_register_does_not_sign_in(store):
    assert await store.register("new@example.com", "secret1", "Newcomer") is True
    assert store.state.is_authenticated is False
    assert await store.register("new@example.com", "secret1", "Newcomer") is False
    assert store.state.error == "An account with this email already exists"


async def test_check_auth_status_without_token_signs_out(store):
    store.set_state(user={"id": "1"}, is_authenticated=True)
    await store.check_auth_status()
    assert store.state.status == "anonymous"
    assert store.state.user is None


async def test_check_auth_status_refetches_user(store):
    await store.login("demo@example.com", "password123")
    store.set_state(user=None)
    await store.check_auth_status()
    assert store.state.status == "authenticated"
    assert store.state.user["name"] == "Demo User"


async def test_check_auth_status_is_not_reentrant():
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"user": {"id": "1"}})

    session = AuthSession()
    session.credentials.save("mock_jwt_token_1", "session_1")
    store = AuthStore(AuthService(session, base_url=BASE, transport=httpx.MockTransport(handler)))
    store.set_loading(True)
    await store.check_auth_status()
    assert calls == []
    store.set_loading(False)
    await store.check_auth_status()
    assert calls == ["/api/auth/me"]


async def test_expired_session_resets_state(store):
    await store.login("demo@example.com", "password123")
    store.service.session.credentials.save("mock_jwt_token_revoked", "session_gone")
    await store.get_current_user()
    assert store.state.status == "anonymous"
    assert store.state.token is None
    assert store.service.session.credentials.token is None


async def test_update_profile_refetches(store):
    await store.login("demo@example.com", "password123")
    assert await store.update_profile(name="Demo Traveller", bio="Kribi next") is True
    assert store.state.user["name"] == "Demo Traveller"
    assert store.state.user["bio"] == "Kribi next"
    assert store.state.is_loading is False

    assert await store.update_profile(name="X") is False
    assert store.state.error == "Name must be at least 2 characters long"


async def test_logout_clears_everything(store):
    await store.login("demo@example.com", "password123")
    token = store.state.token
    await store.logout()
    assert store.state.status == "anonymous"
    assert store.service.session.credentials.token is None
    assert store.state.token is None
    assert token


async def test_logout_clears_state_even_when_server_fails():
    session = AuthSession()
    session.credentials.save("mock_jwt_token_1", "session_1")
    service = AuthService(session, base_url=BASE, transport=httpx.MockTransport(lambda r: httpx.Response(503)))
    store = AuthStore(service)
    store.set_state(user={"id": "1"}, token="mock_jwt_token_1", is_authenticated=True)
    await store.logout()
    assert store.state.status == "anonymous"
    assert session.credentials.token is None


async def test_password_reset_request(store):
    assert await store.request_password_reset("demo@example.com") is True
    assert await store.request_password_reset("not-an-email") is False
    assert store.state.error == "Please enter a valid email address"
    assert await store.verify_email("1", "bad-secret") is False
    assert await store.complete_password_reset("1", "bad", "secret1", "secret1") is False
    assert store.state.error == "Invalid or expired reset link"


async def test_protected_route(store):
    navigated: list[str] = []
    guard = ProtectedRoute(store, navigated.append)
    store.set_loading(True)
    assert guard.evaluate() == "wait"
    assert navigated == []

    guard.watch()
    store.set_loading(False)
    assert navigated == ["/auth/login"]

    await store.login("demo@example.com", "password123")
    assert guard.evaluate() == "allow"
    guard.stop()
