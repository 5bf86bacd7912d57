from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from ....db.repository import Repository
from ....schemas.users import UserProfile, UserSearchResponse
from ..deps import get_repository
from ..serializers import to_user_profile


router = APIRouter()


@router.get("/search", response_model=UserSearchResponse)
async def search_users(
    q: str = Query(default=""),
    limit: int = Query(default=20, ge=1, le=100),
    repo: Repository = Depends(get_repository),
) -> UserSearchResponse:
    if not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    users = await repo.search_users(q)
    return UserSearchResponse(users=[to_user_profile(u) for u in users[:limit]])


@router.get("/{user_id}", response_model=UserProfile)
async def get_user(user_id: str, repo: Repository = Depends(get_repository)) -> UserProfile:
    user = await repo.get_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return to_user_profile(user)
