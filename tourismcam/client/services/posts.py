from __future__ import annotations

from typing import Any, Optional

import httpx

from ..config import POST_SERVICE_URL, UPLOAD_TIMEOUT
from ..http import ApiClient, ApiResult, AuthSession


class PostsService:
    def __init__(
        self,
        session: AuthSession,
        *,
        base_url: str = POST_SERVICE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api = ApiClient(base_url, session, timeout=UPLOAD_TIMEOUT, transport=transport)

    async def create_post(self, data: dict[str, Any]) -> ApiResult[Any]:
        return await self.api.post("/posts", json=data)

    async def get_posts(self, page: int = 1, limit: int = 20, user_id: Optional[str] = None) -> ApiResult[Any]:
        return await self.api.get("/posts", params={"page": page, "limit": limit, "userId": user_id})

    async def get_post(self, post_id: str) -> ApiResult[Any]:
        return await self.api.get(f"/posts/{post_id}")

    async def update_post(self, post_id: str, data: dict[str, Any]) -> ApiResult[Any]:
        return await self.api.put(f"/posts/{post_id}", json=data)

    async def delete_post(self, post_id: str) -> ApiResult[Any]:
        return await self.api.delete(f"/posts/{post_id}")

    async def get_user_posts(self, user_id: str, page: int = 1, limit: int = 20) -> ApiResult[Any]:
        return await self.api.get(f"/posts/user/{user_id}", params={"page": page, "limit": limit})

    async def toggle_save(self, post_id: str) -> ApiResult[Any]:
        return await self.api.post(f"/posts/{post_id}/save")

    async def get_saved_posts(self, page: int = 1, limit: int = 20) -> ApiResult[Any]:
        return await self.api.get("/posts/saved", params={"page": page, "limit": limit})

    async def aclose(self) -> None:
        await self.api.aclose()
