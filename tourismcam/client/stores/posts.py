from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel, Field

from ..http import ApiResult
from ..services.comments import CommentsService
from ..services.likes import LikesService
from ..services.posts import PostsService
from ..services.search import SearchService
from ..storage import KeyValueStorage
from .base import Store


logger = logging.getLogger(__name__)

# every cached list that may hold a copy of a post
POST_LISTS = ("posts", "user_posts", "saved_posts", "search_results")


def encode_id_set(ids: Iterable[str]) -> list[str]:
    """Set of ids to a sorted JSON array."""
    return sorted(set(ids))


def decode_id_set(value: Any) -> set[str]:
    """JSON array back to a set; anything else decodes to an empty set."""
    if not isinstance(value, list):
        return set()
    return {str(v) for v in value}


def _envelope(result: ApiResult[Any]) -> Any:
    return (result.data or {}).get("data")


class PostsState(BaseModel):
    posts: list[dict[str, Any]] = Field(default_factory=list)
    current_post: Optional[dict[str, Any]] = None
    user_posts: list[dict[str, Any]] = Field(default_factory=list)
    saved_posts: list[dict[str, Any]] = Field(default_factory=list)

    search_results: list[dict[str, Any]] = Field(default_factory=list)
    search_loading: bool = False
    search_error: Optional[str] = None
    search_pagination: Optional[dict[str, Any]] = None
    last_search_params: Optional[dict[str, Any]] = None

    comments: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    comments_pagination: dict[str, dict[str, Any]] = Field(default_factory=dict)

    liked_posts: set[str] = Field(default_factory=set)

    loading: bool = False
    comments_loading: bool = False
    likes_loading: bool = False

    error: Optional[str] = None
    comments_error: Optional[str] = None
    likes_error: Optional[str] = None

    pagination: Optional[dict[str, Any]] = None


class PostsStore(Store[PostsState]):
    """
    Feed, search, comment and like cache.

    Likes are server-confirmed: nothing changes locally until the toggle
    returns the authoritative ``likesCount``. Comment add/delete are
    optimistic and undone by applying the inverse change when the call fails.
    """

    storage_name = "posts-store"

    def __init__(
        self,
        posts: PostsService,
        likes: LikesService,
        comments: CommentsService,
        search: SearchService,
        storage: Optional[KeyValueStorage] = None,
    ) -> None:
        super().__init__(PostsState(), storage)
        self.posts_service = posts
        self.likes_service = likes
        self.comments_service = comments
        self.search_service = search
        self._pending_ids = itertools.count(1)

    def partialize(self) -> dict[str, Any]:
        return {"likedPosts": encode_id_set(self.state.liked_posts)}

    def merge_persisted(self, persisted: dict[str, Any]) -> dict[str, Any]:
        return {"liked_posts": decode_id_set(persisted.get("likedPosts"))}

    # ---------------------------------------------------------------- helpers

    def _map_post(self, post_id: str, update: Callable[[str, dict[str, Any]], dict[str, Any]]) -> dict[str, Any]:
        """State changes applying ``update(container, post)`` to every cached copy of a post."""
        changes: dict[str, Any] = {}
        for name in POST_LISTS:
            items = getattr(self.state, name)
            if any(p.get("id") == post_id for p in items):
                changes[name] = [update(name, p) if p.get("id") == post_id else p for p in items]
        current = self.state.current_post
        if current is not None and current.get("id") == post_id:
            changes["current_post"] = update("current_post", current)
        return changes

    def _shift_comments_count(self, post_id: str, delta: int | dict[str, int]) -> tuple[dict[str, Any], dict[str, int]]:
        applied: dict[str, int] = {}

        def shift(container: str, post: dict[str, Any]) -> dict[str, Any]:
            step = delta.get(container, 0) if isinstance(delta, dict) else delta
            old = post.get("commentsCount", 0)
            new = max(0, old + step)
            applied[container] = new - old
            return {**post, "commentsCount": new}

        return self._map_post(post_id, shift), applied

    def _set_like(self, post_id: str, is_liked: bool, likes_count: Optional[int] = None) -> dict[str, Any]:
        def apply(_: str, post: dict[str, Any]) -> dict[str, Any]:
            updated = {**post, "isLikedByCurrentUser": is_liked}
            if likes_count is not None:
                updated["likesCount"] = likes_count
            return updated

        liked = set(self.state.liked_posts)
        if is_liked:
            liked.add(post_id)
        else:
            liked.discard(post_id)
        return {**self._map_post(post_id, apply), "liked_posts": liked}

    # ------------------------------------------------------------------ posts

    async def fetch_posts(self, page: int = 1, limit: int = 20, user_id: Optional[str] = None) -> None:
        self.set_state(loading=True, error=None)
        result = await self.posts_service.get_posts(page, limit, user_id)
        if result.ok:
            data = _envelope(result)
            self.set_state(posts=data["posts"], pagination=data["pagination"], loading=False)
        else:
            self.set_state(error=result.error or "Failed to fetch posts", loading=False)

    async def fetch_post(self, post_id: str) -> None:
        self.set_state(loading=True, error=None)
        result = await self.posts_service.get_post(post_id)
        if result.ok:
            self.set_state(current_post=_envelope(result)["post"], loading=False)
        else:
            self.set_state(error=result.error or "Failed to fetch post", loading=False)

    async def fetch_user_posts(self, user_id: str, page: int = 1, limit: int = 20) -> None:
        self.set_state(loading=True, error=None)
        result = await self.posts_service.get_user_posts(user_id, page, limit)
        if result.ok:
            data = _envelope(result)
            self.set_state(user_posts=data["posts"], pagination=data["pagination"], loading=False)
        else:
            self.set_state(error=result.error or "Failed to fetch user posts", loading=False)

    async def fetch_saved_posts(self, page: int = 1, limit: int = 20) -> None:
        self.set_state(loading=True, error=None)
        result = await self.posts_service.get_saved_posts(page, limit)
        if result.ok:
            self.set_state(saved_posts=_envelope(result)["posts"], loading=False)
        else:
            self.set_state(error=result.error or "Failed to fetch saved posts", loading=False)

    async def create_post(self, data: dict[str, Any]) -> bool:
        self.set_state(loading=True, error=None)
        result = await self.posts_service.create_post(data)
        if not result.ok:
            self.set_state(error=result.error or "Failed to create post", loading=False)
            return False
        self.set_state(posts=[_envelope(result)["post"], *self.state.posts], loading=False)
        return True

    async def update_post(self, post_id: str, data: dict[str, Any]) -> bool:
        self.set_state(loading=True, error=None)
        result = await self.posts_service.update_post(post_id, data)
        if not result.ok:
            self.set_state(error=result.error or "Failed to update post", loading=False)
            return False
        updated = _envelope(result)["post"]
        self.set_state(**self._map_post(post_id, lambda _, __: updated), loading=False)
        return True

    async def delete_post(self, post_id: str) -> bool:
        self.set_state(loading=True, error=None)
        result = await self.posts_service.delete_post(post_id)
        if not result.ok:
            self.set_state(error=result.error or "Failed to delete post", loading=False)
            return False
        changes: dict[str, Any] = {
            name: [p for p in getattr(self.state, name) if p.get("id") != post_id] for name in POST_LISTS
        }
        current = self.state.current_post
        if current is not None and current.get("id") == post_id:
            changes["current_post"] = None
        self.set_state(**changes, loading=False)
        return True

    async def toggle_save(self, post_id: str) -> bool:
        result = await self.posts_service.toggle_save(post_id)
        if not result.ok:
            self.set_state(error=result.error or "Failed to save post")
            return False
        is_saved = _envelope(result)["isSaved"]
        changes = self._map_post(post_id, lambda _, p: {**p, "isSavedByCurrentUser": is_saved})
        if not is_saved:
            changes["saved_posts"] = [p for p in self.state.saved_posts if p.get("id") != post_id]
        self.set_state(**changes)
        return True

    # ----------------------------------------------------------------- search

    async def search_posts(self, **params: Any) -> None:
        self.set_state(search_loading=True, search_error=None, last_search_params=params)
        result = await self.search_service.search_posts(**params)
        if result.ok:
            data = _envelope(result)
            self.set_state(search_results=data["posts"], search_pagination=data["pagination"], search_loading=False)
        else:
            self.set_state(search_error=result.error or "Failed to search posts", search_loading=False)

    async def load_more_search_results(self, **params: Any) -> None:
        pagination = self.state.search_pagination
        if not pagination or not pagination.get("hasNextPage"):
            return
        base = params or dict(self.state.last_search_params or {})
        next_params = {**base, "page": (pagination.get("page") or 1) + 1}
        self.set_state(search_loading=True, search_error=None)
        result = await self.search_service.search_posts(**next_params)
        if result.ok:
            data = _envelope(result)
            self.set_state(
                search_results=[*self.state.search_results, *data["posts"]],
                search_pagination=data["pagination"],
                last_search_params=next_params,
                search_loading=False,
            )
        else:
            self.set_state(search_error=result.error or "Failed to load more search results", search_loading=False)

    def clear_search_results(self) -> None:
        self.set_state(search_results=[], search_pagination=None, last_search_params=None, search_error=None)

    def clear_search_error(self) -> None:
        self.set_state(search_error=None)

    # --------------------------------------------------------------- comments

    async def fetch_comments(self, post_id: str, page: int = 1, limit: int = 20) -> None:
        self.set_state(comments_loading=True, comments_error=None)
        result = await self.comments_service.get_comments(post_id, page, limit, include_replies=True)
        if result.ok:
            data = _envelope(result)
            self.set_state(
                comments={**self.state.comments, post_id: data["comments"]},
                comments_pagination={**self.state.comments_pagination, post_id: data["pagination"]},
                comments_loading=False,
            )
        else:
            self.set_state(comments_error=result.error or "Failed to fetch comments", comments_loading=False)

    def _replace_comment(self, post_id: str, comment_id: str, replacement: Optional[dict[str, Any]]) -> dict[str, Any]:
        cached = self.state.comments.get(post_id, [])
        if replacement is None:
            updated = [c for c in cached if c.get("id") != comment_id]
        else:
            updated = [replacement if c.get("id") == comment_id else c for c in cached]
        return {"comments": {**self.state.comments, post_id: updated}}

    def _edit_replies(
        self,
        post_id: str,
        parent_id: str,
        edit: Callable[[list[dict[str, Any]]], list[dict[str, Any]]],
        delta: int = 0,
    ) -> dict[str, Any]:
        """Rewrite the cached replies of one top-level comment; no-op when it isn't cached."""
        cached = self.state.comments.get(post_id, [])
        if not any(c.get("id") == parent_id for c in cached):
            return {}
        updated = [
            {
                **c,
                "replies": edit(list(c.get("replies") or [])),
                "repliesCount": max((c.get("repliesCount") or 0) + delta, 0),
            }
            if c.get("id") == parent_id
            else c
            for c in cached
        ]
        return {"comments": {**self.state.comments, post_id: updated}}

    def _holds_reply(self, post_id: str, parent_id: str, reply_id: str) -> bool:
        for c in self.state.comments.get(post_id, []):
            if c.get("id") == parent_id:
                return any(r.get("id") == reply_id for r in c.get("replies") or [])
        return False

    async def add_comment(self, post_id: str, content: str, parent_comment_id: Optional[str] = None) -> bool:
        pending_id = f"pending-{next(self._pending_ids)}"
        placeholder = {"id": pending_id, "postId": post_id, "content": content, "parentCommentId": parent_comment_id}
        counts, applied = self._shift_comments_count(post_id, 1)
        if parent_comment_id:
            cached = self._edit_replies(post_id, parent_comment_id, lambda replies: [*replies, placeholder], 1)
        else:
            cached = {"comments": {**self.state.comments, post_id: [placeholder, *self.state.comments.get(post_id, [])]}}
        self.set_state(**counts, **cached, comments_loading=True, comments_error=None)

        result = await self.comments_service.add_comment(post_id, content, parent_comment_id)
        if result.ok:
            comment = _envelope(result)
            if parent_comment_id:
                swap = self._edit_replies(
                    post_id,
                    parent_comment_id,
                    lambda replies: [comment if r.get("id") == pending_id else r for r in replies],
                )
            else:
                swap = self._replace_comment(post_id, pending_id, comment)
            self.set_state(**swap, comments_loading=False)
            return True

        undo, _ = self._shift_comments_count(post_id, {k: -v for k, v in applied.items()})
        if parent_comment_id:
            drop = self._edit_replies(
                post_id,
                parent_comment_id,
                lambda replies: [r for r in replies if r.get("id") != pending_id],
                -1 if self._holds_reply(post_id, parent_comment_id, pending_id) else 0,
            )
        else:
            drop = self._replace_comment(post_id, pending_id, None)
        self.set_state(
            **undo,
            **drop,
            comments_error=result.error or "Failed to add comment",
            comments_loading=False,
        )
        return False

    async def update_comment(self, post_id: str, comment_id: str, content: str) -> bool:
        self.set_state(comments_loading=True, comments_error=None)
        result = await self.comments_service.update_comment(post_id, comment_id, content)
        if not result.ok:
            self.set_state(comments_error=result.error or "Failed to update comment", comments_loading=False)
            return False
        self.set_state(**self._replace_comment(post_id, comment_id, _envelope(result)), comments_loading=False)
        return True

    async def delete_comment(self, post_id: str, comment_id: str) -> bool:
        cached = list(self.state.comments.get(post_id, []))
        counts, applied = self._shift_comments_count(post_id, -1)
        self.set_state(
            **counts,
            **self._replace_comment(post_id, comment_id, None),
            comments_loading=True,
            comments_error=None,
        )

        result = await self.comments_service.delete_comment(post_id, comment_id)
        if result.ok:
            self.set_state(comments_loading=False)
            return True

        undo, _ = self._shift_comments_count(post_id, {k: -v for k, v in applied.items()})
        restored = self.state.comments.get(post_id, [])
        removed = [c for c in cached if c.get("id") == comment_id]
        if removed and not any(c.get("id") == comment_id for c in restored):
            position = cached.index(removed[0])
            restored = [*restored[:position], removed[0], *restored[position:]]
        self.set_state(
            **undo,
            comments={**self.state.comments, post_id: restored},
            comments_error=result.error or "Failed to delete comment",
            comments_loading=False,
        )
        return False

    # ------------------------------------------------------------------ likes

    async def toggle_like(self, post_id: str) -> bool:
        self.set_state(likes_loading=True, likes_error=None)
        result = await self.likes_service.toggle_like(post_id)
        if not result.ok:
            self.set_state(likes_error=result.error or "Failed to toggle like", likes_loading=False)
            return False
        data = _envelope(result)
        self.set_state(**self._set_like(post_id, data["isLiked"], data["likesCount"]), likes_loading=False)
        return True

    async def check_like_status(self, post_id: str) -> None:
        result = await self.likes_service.check_like_status(post_id)
        if not result.ok:
            logger.warning("Failed to check like status for %s: %s", post_id, result.error)
            return
        self.set_state(**self._set_like(post_id, _envelope(result)["isLiked"]))

    # ---------------------------------------------------------------- setters

    def clear_error(self) -> None:
        self.set_state(error=None)

    def clear_comments_error(self) -> None:
        self.set_state(comments_error=None)

    def clear_likes_error(self) -> None:
        self.set_state(likes_error=None)

    def set_loading(self, loading: bool) -> None:
        self.set_state(loading=loading)

    def set_comments_loading(self, loading: bool) -> None:
        self.set_state(comments_loading=loading)

    def set_likes_loading(self, loading: bool) -> None:
        self.set_state(likes_loading=loading)
