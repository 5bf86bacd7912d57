from __future__ import annotations

import httpx
import pytest

from tourismcam.client.http import (
    NETWORK_ERROR,
    SERVER_ERROR,
    TIMEOUT_ERROR,
    UNEXPECTED_ERROR,
    ApiClient,
    AuthSession,
)
from tourismcam.client.services.posts import PostsService
from tourismcam.client.services.search import MISSING_PARAMS_ERROR, SearchService
from tourismcam.client.storage import CredentialStore


pytestmark = pytest.mark.anyio

BASE = "http://api.test/api"


def _session(token: str | None = "mock_jwt_token_1") -> AuthSession:
    credentials = CredentialStore()
    if token:
        credentials.save(token, "session_1")
    return AuthSession(credentials)


def _replying(status: int, **kwargs) -> httpx.MockTransport:
    return httpx.MockTransport(lambda request: httpx.Response(status, **kwargs))


def _raising(exc_type: type[httpx.RequestError]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type("boom", request=request)

    return httpx.MockTransport(handler)


async def test_attaches_bearer_token_at_send_time():
    seen: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization"))
        return httpx.Response(200, json={"ok": True})

    session = _session(token=None)
    async with ApiClient(BASE, session, transport=httpx.MockTransport(handler)) as api:
        await api.get("/posts")
        session.credentials.save("mock_jwt_token_2", "session_2")
        result = await api.get("/posts")
    assert seen == [None, "Bearer mock_jwt_token_2"]
    assert result.ok and result.data == {"ok": True} and result.status == 200


async def test_drops_none_params():
    captured: list[httpx.URL] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request.url)
        return httpx.Response(200, json={})

    async with ApiClient(BASE, _session(), transport=httpx.MockTransport(handler)) as api:
        await api.get("/posts", params={"page": 2, "userId": None})
    assert captured[0].path == "/api/posts"
    assert dict(captured[0].params) == {"page": "2"}


@pytest.mark.parametrize(
    "transport,expected",
    [
        (_replying(400, json={"error": "caption is required"}), "caption is required"),
        (_replying(404, json={"error": "Post not found"}), "Post not found"),
        (_replying(502), SERVER_ERROR),
        (_replying(500, text="<html>oops</html>"), SERVER_ERROR),
        (_replying(418, json={"detail": "teapot"}), UNEXPECTED_ERROR),
        (_raising(httpx.ReadTimeout), TIMEOUT_ERROR),
        (_raising(httpx.ConnectError), NETWORK_ERROR),
    ],
)
async def test_error_messages(transport, expected):
    async with ApiClient(BASE, _session(), transport=transport) as api:
        result = await api.get("/posts/1")
    assert not result.ok
    assert result.data is None
    assert result.error == expected


async def test_401_invalidates_once_per_response():
    session = _session()
    calls: list[str] = []
    navigated: list[str] = []
    session.on_invalidate(lambda: calls.append("auth-store"))
    session.navigate = navigated.append

    service = PostsService(session, base_url=BASE, transport=_replying(401, json={"error": "Invalid or expired token"}))
    result = await service.get_saved_posts()
    await service.aclose()

    assert result.status == 401
    assert result.error == "Invalid or expired token"
    assert calls == ["auth-store"]
    assert navigated == ["/auth/login"]
    assert session.credentials.token is None


async def test_unsubscribed_listener_is_not_called():
    session = _session()
    calls: list[int] = []
    unsubscribe = session.on_invalidate(lambda: calls.append(1))
    unsubscribe()
    async with ApiClient(BASE, session, transport=_replying(401)) as api:
        await api.get("/posts/saved")
    assert calls == []


async def test_search_only_warns_on_401(caplog):
    session = _session()
    service = SearchService(session, base_url=BASE, transport=_replying(401, json={"error": "Invalid or expired token"}))
    result = await service.search_by_tags(["beach"])
    await service.aclose()
    assert result.status == 401
    assert session.credentials.token == "mock_jwt_token_1"
    assert "expired or invalid" in caplog.text


async def test_search_validates_before_sending():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={})

    service = SearchService(_session(), base_url=BASE, transport=httpx.MockTransport(handler))
    result = await service.search_posts()
    assert result.error == MISSING_PARAMS_ERROR
    assert requests == []

    await service.search_by_tags(["beach", "coast"], sort_by="popular")
    await service.aclose()
    assert requests[0].url.params["tags"] == '["beach", "coast"]'
    assert requests[0].url.params["sortBy"] == "popular"
