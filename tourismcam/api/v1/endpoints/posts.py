from __future__ import annotations

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ....db.repository import SORT_ORDERS, Repository
from ....schemas.common import Envelope, Pagination, page_offset
from ....schemas.posts import (
    CommentCreate,
    CommentPublic,
    CommentsPage,
    CommentUpdate,
    LikeStats,
    LikeStatus,
    LikeToggle,
    LikesPage,
    PostCreate,
    PostData,
    PostsPage,
    PostUpdate,
    RecentLike,
    SaveToggle,
)
from ..deps import get_current_user, get_optional_user, get_repository, viewer_id
from ..serializers import to_comment_public, to_like_public, to_post_public


router = APIRouter()

Page = Query(default=1, ge=1)
Limit = Query(default=20, ge=1, le=100)


def _parse_tags(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    raw = raw.strip()
    if raw.startswith("["):
        try:
            values = json.loads(raw)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid tags parameter") from exc
        if not isinstance(values, list):
            raise HTTPException(status_code=400, detail="Invalid tags parameter")
        return [str(v) for v in values if str(v).strip()]
    return [t for t in (part.strip() for part in raw.split(",")) if t]


def _page(items: list[dict[str, Any]], page: int, limit: int, total: int) -> PostsPage:
    return PostsPage(posts=[to_post_public(p) for p in items], pagination=Pagination.build(page, limit, total))


async def _require_post(repo: Repository, post_id: str, user: Optional[dict[str, Any]]) -> dict[str, Any]:
    post = await repo.get_post_by_id(post_id, viewer_id(user))
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


async def _require_own_comment(repo: Repository, post_id: str, comment_id: str, user: dict[str, Any]) -> dict[str, Any]:
    comment = await repo.get_comment(comment_id)
    if comment is None or comment["post_id"] != post_id:
        raise HTTPException(status_code=404, detail="Comment not found")
    if comment["user_id"] != user["id"]:
        raise HTTPException(status_code=403, detail="Forbidden")
    return comment


@router.get("", response_model=Envelope[PostsPage])
async def list_posts(
    page: int = Page,
    limit: int = Limit,
    userId: Optional[str] = None,
    user: Optional[dict[str, Any]] = Depends(get_optional_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[PostsPage]:
    viewer = viewer_id(user)
    items = await repo.get_posts(limit, page_offset(page, limit), viewer, user_id=userId)
    total = await repo.count_posts(viewer, userId)
    return Envelope[PostsPage](data=_page(items, page, limit, total))


@router.post("", response_model=Envelope[PostData], status_code=201)
async def create_post(
    payload: PostCreate,
    user: dict[str, Any] = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[PostData]:
    created = await repo.create_post(
        user_id=user["id"],
        caption=payload.caption,
        image_url=payload.imageUrl,
        location=payload.location.model_dump() if payload.location else None,
        tags=payload.tags,
        is_public=payload.isPublic,
        status=payload.status,
        is_panoramic=payload.isPanoramic,
        image_metadata=payload.imageMetadata.model_dump() if payload.imageMetadata else None,
    )
    post = await _require_post(repo, created["id"], user)
    return Envelope[PostData](data=PostData(post=to_post_public(post)), message="Post created successfully")


@router.get("/search", response_model=Envelope[PostsPage])
async def search_posts(
    q: Optional[str] = None,
    tags: Optional[str] = None,
    location: Optional[str] = None,
    city: Optional[str] = None,
    country: Optional[str] = None,
    sortBy: str = "newest",
    page: int = Page,
    limit: int = Limit,
    user: Optional[dict[str, Any]] = Depends(get_optional_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[PostsPage]:
    tag_list = _parse_tags(tags)
    if not (q or tag_list or location or city or country):
        raise HTTPException(
            status_code=400,
            detail="At least one search parameter (q, tags, location, city, or country) must be provided.",
        )
    if sortBy not in SORT_ORDERS:
        raise HTTPException(status_code=400, detail=f"sortBy must be one of: {', '.join(SORT_ORDERS)}")
    matches = await repo.search_posts(
        q,
        tags=tag_list,
        location=location,
        city=city,
        country=country,
        sort_by=sortBy,
        viewer_id=viewer_id(user),
    )
    start = page_offset(page, limit)
    return Envelope[PostsPage](data=_page(matches[start : start + limit], page, limit, len(matches)))


@router.get("/saved", response_model=Envelope[PostsPage])
async def saved_posts(
    page: int = Page,
    limit: int = Limit,
    user: dict[str, Any] = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[PostsPage]:
    saved = await repo.get_saved_posts(user["id"])
    start = page_offset(page, limit)
    return Envelope[PostsPage](data=_page(saved[start : start + limit], page, limit, len(saved)))


@router.get("/user/{user_id}", response_model=Envelope[PostsPage])
async def user_posts(
    user_id: str,
    page: int = Page,
    limit: int = Limit,
    user: Optional[dict[str, Any]] = Depends(get_optional_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[PostsPage]:
    if await repo.get_user_by_id(user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    viewer = viewer_id(user)
    items = await repo.get_user_posts(user_id, viewer, limit, page_offset(page, limit))
    total = await repo.count_posts(viewer, user_id)
    return Envelope[PostsPage](data=_page(items, page, limit, total))


@router.get("/users/{user_id}/likes", response_model=Envelope[PostsPage])
async def user_liked_posts(
    user_id: str,
    page: int = Page,
    limit: int = Limit,
    user: Optional[dict[str, Any]] = Depends(get_optional_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[PostsPage]:
    items, total = await repo.get_user_liked_posts(user_id, viewer_id(user), limit, page_offset(page, limit))
    return Envelope[PostsPage](data=_page(items, page, limit, total))


@router.get("/{post_id}", response_model=Envelope[PostData])
async def get_post(
    post_id: str,
    user: Optional[dict[str, Any]] = Depends(get_optional_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[PostData]:
    post = await _require_post(repo, post_id, user)
    return Envelope[PostData](data=PostData(post=to_post_public(post)))


@router.put("/{post_id}", response_model=Envelope[PostData])
async def update_post(
    post_id: str,
    payload: PostUpdate,
    user: dict[str, Any] = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[PostData]:
    post = await _require_post(repo, post_id, user)
    if post["user_id"] != user["id"]:
        raise HTTPException(status_code=403, detail="Forbidden")
    changes = payload.model_dump(exclude_unset=True)
    fields: dict[str, Any] = {}
    if "caption" in changes and payload.caption is not None:
        fields["caption"] = payload.caption
    if "location" in changes:
        fields["location"] = changes["location"]
    if "tags" in changes and payload.tags is not None:
        fields["tags"] = payload.tags
    if "isPublic" in changes and payload.isPublic is not None:
        fields["is_public"] = payload.isPublic
    if "status" in changes and payload.status is not None:
        fields["status"] = payload.status
    if fields:
        await repo.update_post(post_id, **fields)
    updated = await _require_post(repo, post_id, user)
    return Envelope[PostData](data=PostData(post=to_post_public(updated)), message="Post updated successfully")


@router.delete("/{post_id}", response_model=Envelope[dict])
async def delete_post(
    post_id: str,
    user: dict[str, Any] = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[dict]:
    post = await _require_post(repo, post_id, user)
    if post["user_id"] != user["id"]:
        raise HTTPException(status_code=403, detail="Forbidden")
    await repo.soft_delete_post(post_id)
    return Envelope[dict](data={"postId": post_id}, message="Post deleted successfully")


@router.post("/{post_id}/likes", response_model=Envelope[LikeToggle])
async def toggle_like(
    post_id: str,
    user: dict[str, Any] = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[LikeToggle]:
    await _require_post(repo, post_id, user)
    liked = await repo.toggle_like(post_id, user["id"])
    if liked is None:
        raise HTTPException(status_code=404, detail="Post not found")
    data = LikeToggle(isLiked=liked, likesCount=await repo.likes_count(post_id), postId=post_id, userId=user["id"])
    return Envelope[LikeToggle](data=data, message="Post liked" if liked else "Post unliked")


@router.get("/{post_id}/likes", response_model=Envelope[LikesPage])
async def list_likes(
    post_id: str,
    page: int = Page,
    limit: int = Limit,
    user: Optional[dict[str, Any]] = Depends(get_optional_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[LikesPage]:
    await _require_post(repo, post_id, user)
    likes, total = await repo.list_likes(post_id, limit, page_offset(page, limit))
    return Envelope[LikesPage](
        data=LikesPage(likes=[to_like_public(x) for x in likes], pagination=Pagination.build(page, limit, total))
    )


@router.get("/{post_id}/likes/check", response_model=Envelope[LikeStatus])
async def check_like(
    post_id: str,
    user: Optional[dict[str, Any]] = Depends(get_optional_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[LikeStatus]:
    await _require_post(repo, post_id, user)
    if user is None:
        return Envelope[LikeStatus](data=LikeStatus(isLiked=False, postId=post_id))
    liked = await repo.is_liked(post_id, user["id"])
    return Envelope[LikeStatus](data=LikeStatus(isLiked=liked, postId=post_id, userId=user["id"]))


@router.get("/{post_id}/likes/stats", response_model=Envelope[LikeStats])
async def like_stats(
    post_id: str,
    user: Optional[dict[str, Any]] = Depends(get_optional_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[LikeStats]:
    await _require_post(repo, post_id, user)
    stats = await repo.like_stats(post_id)
    recent = [
        RecentLike(userId=like["user_id"], userName=like["user"]["username"], likedAt=like.get("created_at", ""))
        for like in stats["recent_likes"]
    ]
    return Envelope[LikeStats](data=LikeStats(postId=post_id, totalLikes=stats["total_likes"], recentLikes=recent))


@router.post("/{post_id}/save", response_model=Envelope[SaveToggle])
async def toggle_save(
    post_id: str,
    user: dict[str, Any] = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[SaveToggle]:
    await _require_post(repo, post_id, user)
    saved = await repo.toggle_saved_post(post_id, user["id"])
    if saved is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return Envelope[SaveToggle](data=SaveToggle(isSaved=saved, postId=post_id, userId=user["id"]))


@router.get("/{post_id}/comments", response_model=Envelope[CommentsPage])
async def list_comments(
    post_id: str,
    page: int = Page,
    limit: int = Limit,
    includeReplies: bool = False,
    user: Optional[dict[str, Any]] = Depends(get_optional_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[CommentsPage]:
    await _require_post(repo, post_id, user)
    comments, total = await repo.list_comments(
        post_id, limit, page_offset(page, limit), include_replies=includeReplies
    )
    return Envelope[CommentsPage](
        data=CommentsPage(
            comments=[to_comment_public(c) for c in comments],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.post("/{post_id}/comments", response_model=Envelope[CommentPublic], status_code=201)
async def add_comment(
    post_id: str,
    payload: CommentCreate,
    user: dict[str, Any] = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[CommentPublic]:
    await _require_post(repo, post_id, user)
    if payload.parentCommentId:
        parent = await repo.get_comment(payload.parentCommentId)
        if parent is None or parent["post_id"] != post_id:
            raise HTTPException(status_code=404, detail="Parent comment not found")
        if parent["parent_comment_id"]:
            raise HTTPException(status_code=400, detail="Replies cannot be nested more than one level")
    comment = await repo.create_comment(
        post_id=post_id,
        user_id=user["id"],
        content=payload.content.strip(),
        parent_comment_id=payload.parentCommentId,
    )
    if comment is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return Envelope[CommentPublic](data=to_comment_public(comment), message="Comment added successfully")


@router.put("/{post_id}/comments/{comment_id}", response_model=Envelope[CommentPublic])
async def update_comment(
    post_id: str,
    comment_id: str,
    payload: CommentUpdate,
    user: dict[str, Any] = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[CommentPublic]:
    await _require_own_comment(repo, post_id, comment_id, user)
    comment = await repo.update_comment(comment_id, payload.content.strip())
    if comment is None:
        raise HTTPException(status_code=404, detail="Comment not found")
    return Envelope[CommentPublic](data=to_comment_public(comment), message="Comment updated successfully")


@router.delete("/{post_id}/comments/{comment_id}", response_model=Envelope[dict])
async def delete_comment(
    post_id: str,
    comment_id: str,
    user: dict[str, Any] = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[dict]:
    await _require_own_comment(repo, post_id, comment_id, user)
    await repo.delete_comment(comment_id)
    return Envelope[dict](data={"commentId": comment_id}, message="Comment deleted successfully")


@router.get("/{post_id}/comments/{comment_id}/replies", response_model=Envelope[CommentsPage])
async def list_replies(
    post_id: str,
    comment_id: str,
    page: int = Page,
    limit: int = Limit,
    user: Optional[dict[str, Any]] = Depends(get_optional_user),
    repo: Repository = Depends(get_repository),
) -> Envelope[CommentsPage]:
    await _require_post(repo, post_id, user)
    parent = await repo.get_comment(comment_id)
    if parent is None or parent["post_id"] != post_id:
        raise HTTPException(status_code=404, detail="Comment not found")
    replies, total = await repo.list_replies(comment_id, limit, page_offset(page, limit))
    return Envelope[CommentsPage](
        data=CommentsPage(
            comments=[to_comment_public(r) for r in replies],
            pagination=Pagination.build(page, limit, total),
        )
    )
