from __future__ import annotations

from typing import Any, Optional

import httpx

from ..config import API_URL, DEFAULT_TIMEOUT
from ..http import ApiClient, ApiResult, AuthSession


class AuthService:
    def __init__(
        self,
        session: AuthSession,
        *,
        base_url: str = API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.session = session
        self.api = ApiClient(base_url, session, timeout=DEFAULT_TIMEOUT, transport=transport)

    @property
    def token(self) -> Optional[str]:
        return self.session.credentials.token

    def is_authenticated(self) -> bool:
        return self.token is not None

    async def health_check(self) -> ApiResult[Any]:
        return await self.api.get("/auth/health")

    async def register(self, email: str, password: str, name: str, phone: Optional[str] = None) -> ApiResult[Any]:
        payload: dict[str, Any] = {"email": email, "password": password, "name": name}
        if phone:
            payload["phone"] = phone
        return await self.api.post("/auth/register", json=payload)

    async def login(self, email: str, password: str) -> ApiResult[Any]:
        result = await self.api.post("/auth/login", json={"email": email, "password": password})
        if result.ok and result.data:
            self.session.credentials.save(result.data["token"], result.data["sessionId"])
        return result

    async def get_current_user(self) -> ApiResult[Any]:
        return await self.api.get("/auth/me")

    async def update_profile(self, **fields: Any) -> ApiResult[Any]:
        return await self.api.put("/auth/profile", json=fields)

    async def logout(self) -> ApiResult[Any]:
        session_id = self.session.credentials.session_id
        if not session_id:
            self.session.credentials.clear()
            return ApiResult(data={"message": "Logged out successfully"})
        result = await self.api.post("/auth/logout", json={"sessionId": session_id})
        # credentials go regardless of the server answer
        self.session.credentials.clear()
        return result

    async def request_password_reset(self, email: str) -> ApiResult[Any]:
        return await self.api.post("/auth/password/reset-request", json={"email": email})

    async def complete_password_reset(
        self, user_id: str, secret: str, password: str, password_again: str
    ) -> ApiResult[Any]:
        payload = {"userId": user_id, "secret": secret, "password": password, "passwordAgain": password_again}
        return await self.api.post("/auth/password/reset-complete", json=payload)

    async def verify_email(self, user_id: str, secret: str) -> ApiResult[Any]:
        return await self.api.post("/auth/email/verify", json={"userId": user_id, "secret": secret})

    async def aclose(self) -> None:
        await self.api.aclose()
