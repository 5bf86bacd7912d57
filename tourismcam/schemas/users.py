from __future__ import annotations

from pydantic import BaseModel


class UserProfile(BaseModel):
    id: str
    username: str
    name: str
    bio: str | None = None
    avatarUrl: str | None = None
    isVerified: bool = False
    postCount: int = 0
    totalLikesReceived: int = 0
    createdAt: str = ""


class UserSearchResponse(BaseModel):
    users: list[UserProfile]
