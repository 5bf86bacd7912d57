from __future__ import annotations

from typing import Any, Optional

import httpx

from ..config import DEFAULT_TIMEOUT, POST_SERVICE_URL
from ..http import ApiClient, ApiResult, AuthSession


class CommentsService:
    def __init__(
        self,
        session: AuthSession,
        *,
        base_url: str = POST_SERVICE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api = ApiClient(base_url, session, timeout=DEFAULT_TIMEOUT, transport=transport)

    async def add_comment(self, post_id: str, content: str, parent_comment_id: Optional[str] = None) -> ApiResult[Any]:
        payload: dict[str, Any] = {"content": content}
        if parent_comment_id:
            payload["parentCommentId"] = parent_comment_id
        return await self.api.post(f"/posts/{post_id}/comments", json=payload)

    async def get_comments(
        self, post_id: str, page: int = 1, limit: int = 20, include_replies: bool = False
    ) -> ApiResult[Any]:
        params = {"page": page, "limit": limit, "includeReplies": "true" if include_replies else None}
        return await self.api.get(f"/posts/{post_id}/comments", params=params)

    async def update_comment(self, post_id: str, comment_id: str, content: str) -> ApiResult[Any]:
        return await self.api.put(f"/posts/{post_id}/comments/{comment_id}", json={"content": content})

    async def delete_comment(self, post_id: str, comment_id: str) -> ApiResult[Any]:
        return await self.api.delete(f"/posts/{post_id}/comments/{comment_id}")

    async def get_comment_replies(self, post_id: str, comment_id: str, page: int = 1, limit: int = 20) -> ApiResult[Any]:
        return await self.api.get(
            f"/posts/{post_id}/comments/{comment_id}/replies", params={"page": page, "limit": limit}
        )

    async def aclose(self) -> None:
        await self.api.aclose()
