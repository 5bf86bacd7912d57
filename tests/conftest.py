from __future__ import annotations

from functools import partial
from typing import Any, Callable

import httpx
import pytest
from fastapi.testclient import TestClient

import tourismcam.core.runtime as runtime
from tourismcam.core.memory_redis import AsyncMemoryRedis
from tourismcam.db.repository import Repository
from tourismcam.db.seed import DEMO_EMAIL, DEMO_PASSWORD, seed_demo_data
from tourismcam.main import app


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("USE_FAKE_REDIS", "1")
    monkeypatch.setenv("SEED_DEMO_DATA", "1")
    with TestClient(app) as c:
        yield c


@pytest.fixture
def login_as(client: TestClient) -> Callable[..., dict[str, Any]]:
    def _login(email: str = DEMO_EMAIL, password: str = DEMO_PASSWORD) -> dict[str, Any]:
        r = client.post("/api/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        body = r.json()
        body["headers"] = {"Authorization": f"Bearer {body['token']}"}
        return body

    return _login


@pytest.fixture
def session_for(client: TestClient) -> Callable[[str], dict[str, str]]:
    """Auth headers for any stored user; only the demo account can log in."""

    def _open(user_id: str) -> dict[str, str]:
        token, _ = client.portal.call(partial(runtime.repository.create_session, user_id, 3600))
        return {"Authorization": f"Bearer {token}"}

    return _open


@pytest.fixture
def auth_headers(login_as) -> dict[str, str]:
    return login_as()["headers"]


@pytest.fixture
def repo() -> Repository:
    return Repository(AsyncMemoryRedis())


@pytest.fixture
async def live_app():
    """The app wired to a freshly seeded store without running the lifespan."""
    store = Repository(AsyncMemoryRedis())
    await seed_demo_data(store)
    runtime.repository = store
    try:
        yield app
    finally:
        runtime.repository = None


@pytest.fixture
def asgi_transport(live_app) -> httpx.ASGITransport:
    return httpx.ASGITransport(app=live_app)
