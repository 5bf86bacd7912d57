from __future__ import annotations

from typing import Any, Optional

import httpx

from ..config import DEFAULT_TIMEOUT, LIKE_SERVICE_URL
from ..http import ApiClient, ApiResult, AuthSession


class LikesService:
    def __init__(
        self,
        session: AuthSession,
        *,
        base_url: str = LIKE_SERVICE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api = ApiClient(base_url, session, timeout=DEFAULT_TIMEOUT, transport=transport)

    async def toggle_like(self, post_id: str) -> ApiResult[Any]:
        return await self.api.post(f"/posts/{post_id}/likes")

    async def check_like_status(self, post_id: str) -> ApiResult[Any]:
        return await self.api.get(f"/posts/{post_id}/likes/check")

    async def get_post_likes(self, post_id: str, page: int = 1, limit: int = 20) -> ApiResult[Any]:
        return await self.api.get(f"/posts/{post_id}/likes", params={"page": page, "limit": limit})

    async def get_like_stats(self, post_id: str) -> ApiResult[Any]:
        return await self.api.get(f"/posts/{post_id}/likes/stats")

    async def get_user_liked_posts(self, user_id: str, page: int = 1, limit: int = 20) -> ApiResult[Any]:
        return await self.api.get(f"/posts/users/{user_id}/likes", params={"page": page, "limit": limit})

    async def aclose(self) -> None:
        await self.api.aclose()
