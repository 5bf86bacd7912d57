from __future__ import annotations

import json
from typing import Any, Optional, Union

import httpx

from ..config import DEFAULT_TIMEOUT, POST_SERVICE_URL
from ..http import ApiClient, ApiResult, AuthSession

MISSING_PARAMS_ERROR = "At least one search parameter (q, tags, location, city, or country) must be provided."

Tags = Union[list[str], str]


class SearchService:
    """Post search. Works anonymously, so a 401 only logs a warning."""

    def __init__(
        self,
        session: AuthSession,
        *,
        base_url: str = POST_SERVICE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api = ApiClient(base_url, session, timeout=DEFAULT_TIMEOUT, invalidate_on_401=False, transport=transport)

    async def search_posts(
        self,
        q: Optional[str] = None,
        *,
        tags: Optional[Tags] = None,
        location: Optional[str] = None,
        city: Optional[str] = None,
        country: Optional[str] = None,
        sort_by: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> ApiResult[Any]:
        if not (q or tags or location or city or country):
            return ApiResult(error=MISSING_PARAMS_ERROR)
        params = {
            "q": q,
            "tags": json.dumps(tags) if isinstance(tags, list) else tags,
            "location": location,
            "city": city,
            "country": country,
            "sortBy": sort_by,
            "page": page,
            "limit": limit,
        }
        return await self.api.get("/posts/search", params=params)

    async def search_by_tags(self, tags: Tags, page: int = 1, limit: int = 20, sort_by: str = "newest") -> ApiResult[Any]:
        return await self.search_posts(tags=tags, page=page, limit=limit, sort_by=sort_by)

    async def search_by_location(self, location: str, page: int = 1, limit: int = 20, sort_by: str = "newest") -> ApiResult[Any]:
        return await self.search_posts(location=location, page=page, limit=limit, sort_by=sort_by)

    async def search_by_city(self, city: str, page: int = 1, limit: int = 20, sort_by: str = "newest") -> ApiResult[Any]:
        return await self.search_posts(city=city, page=page, limit=limit, sort_by=sort_by)

    async def search_by_country(self, country: str, page: int = 1, limit: int = 20, sort_by: str = "newest") -> ApiResult[Any]:
        return await self.search_posts(country=country, page=page, limit=limit, sort_by=sort_by)

    async def search_users(self, q: str, limit: int = 20) -> ApiResult[Any]:
        return await self.api.get("/users/search", params={"q": q, "limit": limit})

    async def aclose(self) -> None:
        await self.api.aclose()
