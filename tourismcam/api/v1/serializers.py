from __future__ import annotations

from typing import Any

from ...schemas.auth import UserPublic
from ...schemas.posts import AuthorPublic, CommentPublic, LikePublic, PostPublic
from ...schemas.users import UserProfile


def to_user_public(user: dict[str, Any]) -> UserPublic:
    return UserPublic(
        id=user["id"],
        email=user["email"],
        name=user["name"],
        username=user.get("username") or None,
        phone=user.get("phone"),
        bio=user.get("bio"),
        role=user.get("role") or "user",
        avatarUrl=user.get("avatar_url"),
        isVerified=bool(user.get("is_verified")),
        postCount=int(user.get("post_count") or 0),
    )


def to_user_profile(user: dict[str, Any]) -> UserProfile:
    return UserProfile(
        id=user["id"],
        username=user["username"],
        name=user["name"],
        bio=user.get("bio"),
        avatarUrl=user.get("avatar_url"),
        isVerified=bool(user.get("is_verified")),
        postCount=int(user.get("post_count") or 0),
        totalLikesReceived=int(user.get("total_likes_received") or 0),
        createdAt=user.get("created_at", ""),
    )


def to_author(user: dict[str, Any]) -> AuthorPublic:
    return AuthorPublic(
        id=user["id"],
        username=user["username"],
        name=user.get("name") or "",
        avatarUrl=user.get("avatar_url"),
        isVerified=bool(user.get("is_verified")),
    )


def to_comment_public(comment: dict[str, Any]) -> CommentPublic:
    replies = comment.get("replies")
    return CommentPublic(
        id=comment["id"],
        postId=comment["post_id"],
        authorId=comment["user_id"],
        content=comment["content"],
        isEdited=comment["is_edited"],
        parentCommentId=comment.get("parent_comment_id"),
        repliesCount=max(comment.get("replies_count", 0), 0),
        createdAt=comment["created_at"],
        updatedAt=comment["updated_at"],
        author=to_author(comment["user"]),
        username=comment["username"],
        replies=[to_comment_public(r) for r in replies] if replies is not None else None,
    )


def to_post_public(post: dict[str, Any]) -> PostPublic:
    return PostPublic(
        id=post["id"],
        authorId=post["user_id"],
        caption=post["caption"],
        imageUrl=post["image_url"],
        location=post.get("location"),
        tags=post.get("tags") or [],
        isPublic=post["is_public"],
        status=post["status"],
        isPanoramic=post["is_panoramic"],
        likesCount=post["likes_count"],
        commentsCount=post["comments_count"],
        viewsCount=post["views_count"],
        imageMetadata=post.get("image_metadata"),
        createdAt=post["created_at"],
        updatedAt=post["updated_at"],
        author=to_author(post["user"]) if post.get("user") else None,
        isLikedByCurrentUser=bool(post.get("is_liked_by_current_user")),
        isSavedByCurrentUser=bool(post.get("is_saved_by_current_user")),
        recentComments=[to_comment_public(c) for c in post.get("recent_comments") or []],
    )


def to_like_public(like: dict[str, Any]) -> LikePublic:
    return LikePublic(
        id=like["id"],
        postId=like["post_id"],
        userId=like["user_id"],
        createdAt=like.get("created_at", ""),
        user=to_author(like["user"]) if like.get("user") else None,
    )
