from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

import httpx

from ..core.routes import LOGIN_PATH
from .storage import CredentialStore


logger = logging.getLogger(__name__)

T = TypeVar("T")

TIMEOUT_ERROR = "Request timeout. Please try again."
NETWORK_ERROR = "Network error. Please check your connection."
SERVER_ERROR = "Server error. Please try again later."
UNEXPECTED_ERROR = "An unexpected error occurred. Please try again."


@dataclass
class ApiResult(Generic[T]):
    data: Optional[T] = None
    error: Optional[str] = None
    status: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AuthSession:
    """Credentials shared by every client plus the listeners told about a 401."""

    def __init__(
        self,
        credentials: CredentialStore | None = None,
        navigate: Callable[[str], None] | None = None,
    ) -> None:
        self.credentials = credentials or CredentialStore()
        self.navigate = navigate
        self._listeners: list[Callable[[], None]] = []

    def on_invalidate(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def invalidate(self) -> None:
        logger.info("Credentials rejected; clearing local session")
        self.credentials.clear()
        for listener in list(self._listeners):
            listener()
        if self.navigate is not None:
            self.navigate(LOGIN_PATH)


def error_message(status: int, body: Any) -> str:
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    if status >= 500:
        return SERVER_ERROR
    return UNEXPECTED_ERROR


class ApiClient:
    """
    One ``httpx.AsyncClient`` per REST area. The request hook attaches the
    bearer token read from the shared credentials at send time; the response
    hook turns a 401 into a session invalidation.
    """

    def __init__(
        self,
        base_url: str,
        session: AuthSession,
        *,
        timeout: float = 10.0,
        invalidate_on_401: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.session = session
        self.invalidate_on_401 = invalidate_on_401
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
            event_hooks={"request": [self._attach_token], "response": [self._check_unauthorized]},
        )

    async def _attach_token(self, request: httpx.Request) -> None:
        token = self.session.credentials.token
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    async def _check_unauthorized(self, response: httpx.Response) -> None:
        if response.status_code != 401:
            return
        if self.invalidate_on_401:
            self.session.invalidate()
        else:
            logger.warning("Authentication token expired or invalid for %s", response.request.url.path)

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> ApiResult[Any]:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            response = await self._client.request(method, url, json=json, params=params)
        except httpx.TimeoutException:
            return ApiResult(error=TIMEOUT_ERROR)
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            return ApiResult(error=NETWORK_ERROR)

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None
        if response.is_success:
            return ApiResult(data=body, status=response.status_code)
        return ApiResult(error=error_message(response.status_code, body), status=response.status_code)

    async def get(self, url: str, **kwargs: Any) -> ApiResult[Any]:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> ApiResult[Any]:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> ApiResult[Any]:
        return await self.request("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> ApiResult[Any]:
        return await self.request("DELETE", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
